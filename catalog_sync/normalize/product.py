"""Canonical product record produced by normalization."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from catalog_sync.normalize.currency import Currency, DEFAULT_CURRENCY

# Columns written on create and overwritten on update
PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "discounted_price",
    "stock",
    "brand",
    "categories",
    "images",
    "currency",
    "url",
)


@dataclass
class CanonicalProduct:
    """Normalized product ready for persistence."""

    id: str
    name: str
    description: str = ""
    price: Decimal = Decimal("0")
    discounted_price: Optional[Decimal] = None
    stock: int = 0
    currency: Currency = DEFAULT_CURRENCY
    categories: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    brand: str = ""
    url: str = ""

    @property
    def is_valid(self) -> bool:
        """Only products with an id and a name are persisted."""
        return bool(self.id) and bool(self.name)

    @property
    def discount_percentage(self) -> Optional[int]:
        """Whole-number discount relative to price, if there is a real discount."""
        if self.discounted_price is None or self.price <= 0:
            return None
        if self.discounted_price >= self.price:
            return None
        ratio = (self.price - self.discounted_price) / self.price * 100
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_fields(self) -> Dict[str, Any]:
        """Column values for the store, excluding the id."""
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "discounted_price": self.discounted_price,
            "stock": self.stock,
            "brand": self.brand,
            "categories": list(self.categories),
            "images": list(self.images),
            "currency": self.currency.value,
            "url": self.url,
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "discountedPrice": float(self.discounted_price) if self.discounted_price is not None else None,
            "discountPercentage": self.discount_percentage,
            "stock": self.stock,
            "currency": self.currency.value,
            "categories": list(self.categories),
            "images": list(self.images),
            "brand": self.brand,
            "url": self.url,
        }
