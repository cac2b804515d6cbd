"""Product store operations keyed by product id."""

import logging
import secrets
import string
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.db.models import Product
from catalog_sync.errors import ProductNotFoundError
from catalog_sync.normalize.currency import normalize_currency
from catalog_sync.normalize.product import PRODUCT_FIELDS, CanonicalProduct

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_product_id() -> str:
    return "product-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))


def to_canonical(row: Product) -> CanonicalProduct:
    """Convert a stored row to the canonical product shape."""
    return CanonicalProduct(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=Decimal(row.price) if row.price is not None else Decimal("0"),
        discounted_price=Decimal(row.discounted_price) if row.discounted_price else None,
        stock=row.stock or 0,
        currency=normalize_currency(row.currency),
        categories=list(row.categories or []),
        images=list(row.images or []),
        brand=row.brand or "",
        url=row.url or "",
    )


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Keep known columns and coerce currency to its code."""
    cleaned = {key: value for key, value in fields.items() if key in PRODUCT_FIELDS}
    if "currency" in cleaned:
        cleaned["currency"] = normalize_currency(cleaned["currency"]).value
    return cleaned


class ProductRepository:
    """
    Record store for products.

    Writes commit immediately; a failed write is rolled back before the
    exception propagates so the session stays usable for the next product.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_unique(self, product_id: str) -> Optional[CanonicalProduct]:
        """Get a product by id."""
        row = await self.session.get(Product, product_id)
        if row is None:
            logger.debug(f"Product not found (id={product_id})")
            return None
        return to_canonical(row)

    async def find_many(self, limit: Optional[int] = None, offset: int = 0) -> List[CanonicalProduct]:
        """List products ordered by id."""
        query = select(Product).order_by(Product.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [to_canonical(row) for row in result.scalars().all()]

    async def count(self) -> int:
        """Number of stored products."""
        result = await self.session.execute(select(func.count()).select_from(Product))
        return result.scalar_one()

    async def create(self, fields: Dict[str, Any], product_id: Optional[str] = None) -> CanonicalProduct:
        """
        Create a product.

        Args:
            fields: Column values (unknown keys are ignored)
            product_id: Explicit id; a product-xxxxxx id is generated if omitted

        Returns:
            The created product
        """
        row = Product(id=product_id or _new_product_id(), **_clean_fields(fields))
        self.session.add(row)
        return await self._commit(row)

    async def update(self, product_id: str, fields: Dict[str, Any]) -> CanonicalProduct:
        """
        Overwrite the given fields of an existing product.

        Raises:
            ProductNotFoundError: If no product has this id
        """
        row = await self.session.get(Product, product_id)
        if row is None:
            raise ProductNotFoundError(product_id)

        for key, value in _clean_fields(fields).items():
            setattr(row, key, value)
        return await self._commit(row)

    async def upsert(self, product: CanonicalProduct) -> CanonicalProduct:
        """
        Create the product or overwrite every field of the stored one.

        Args:
            product: Normalized product; its id is the key
        """
        fields = _clean_fields(product.to_fields())
        row = await self.session.get(Product, product.id)
        if row is None:
            row = Product(id=product.id, **fields)
            self.session.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
        return await self._commit(row)

    async def _commit(self, row: Product) -> CanonicalProduct:
        try:
            await self.session.flush()
            product = to_canonical(row)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return product
