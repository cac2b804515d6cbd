"""Normalize raw feed product nodes into canonical product records."""

import hashlib
import logging
import random
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from catalog_sync.config import settings
from catalog_sync.ingest.feed_parser import DEFAULT_PARSER_CONFIG, FeedNode, ParserConfig, node_text
from catalog_sync.normalize.currency import DEFAULT_CURRENCY, normalize_currency
from catalog_sync.normalize.numbers import parse_locale_number, parse_stock
from catalog_sync.normalize.product import CanonicalProduct

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ProductNormalizer:
    """
    Map heterogeneous feed nodes onto CanonicalProduct.

    Aliases are tried in order: Ticimax (Turkish) names first, then
    common English names, matched case-insensitively like the product
    detection in feed_parser. Nothing here raises on bad data; missing or
    malformed values fall back to defaults with a warning.
    """

    ID_FIELDS = ("UrunKartiID", "UrunId", "ProductId", "Id")
    NAME_FIELDS = ("UrunAdi", "Name", "Title", "ProductName")
    DESCRIPTION_FIELDS = ("Aciklama", "Description")
    LEAD_TEXT_FIELDS = ("OnYazi", "ShortDescription")
    BRAND_FIELDS = ("Marka", "Brand", "Manufacturer")
    URL_FIELDS = ("UrunUrl", "Url", "Link")
    CATEGORY_FIELDS = ("Kategori", "Category")
    CATEGORY_PATH_FIELDS = ("KategoriTree", "CategoryPath")

    # (container, item) pairs
    IMAGE_CONTAINERS = (("Resimler", "Resim"), ("Images", "Image"))
    VARIANT_CONTAINERS = (("UrunSecenek", "Secenek"), ("Variants", "Variant"))

    PRICE_FIELDS = ("SatisFiyati", "Fiyat", "SalePrice", "Price")
    DISCOUNTED_PRICE_FIELDS = ("IndirimliFiyat", "DiscountedPrice")
    STOCK_FIELDS = ("StokAdedi", "Stock")
    CURRENCY_SYMBOL_FIELDS = ("ParaBirimi", "Currency")
    CURRENCY_CODE_FIELDS = ("ParaBirimiKodu", "CurrencyCode")

    def __init__(
        self,
        parser_config: ParserConfig = DEFAULT_PARSER_CONFIG,
        fallback_id_strategy: Optional[str] = None,
    ):
        self.config = parser_config
        self.fallback_id_strategy = fallback_id_strategy or settings.fallback_id_strategy

    def normalize(self, node: Dict[str, FeedNode]) -> CanonicalProduct:
        """
        Normalize one product node.

        Args:
            node: Product node from the parsed feed

        Returns:
            CanonicalProduct (may be invalid if the name is missing; callers
            check is_valid before persisting)
        """
        name = self._text(node, self.NAME_FIELDS)
        brand = self._text(node, self.BRAND_FIELDS)
        url = self._text(node, self.URL_FIELDS)

        product_id = self._text(node, self.ID_FIELDS)
        if not product_id:
            product_id = self._fallback_id(name, brand, url)
            logger.warning(f"Product without id, using fallback id {product_id} for '{name}'")

        product = CanonicalProduct(
            id=product_id,
            name=name,
            description=self._description(node),
            brand=brand,
            url=url,
            categories=self._categories(node),
            images=self._images(node),
        )

        primary_variant = self._primary_variant(node)
        if primary_variant is None:
            # Fully priced-out placeholder
            product.price = ZERO
            product.stock = 0
            product.currency = DEFAULT_CURRENCY
        else:
            self._apply_variant(product, primary_variant)

        # Final currency check
        product.currency = normalize_currency(product.currency)

        return product

    def normalize_many(self, nodes: Sequence[Dict[str, FeedNode]]) -> List[CanonicalProduct]:
        """Normalize nodes and keep only valid products, in document order."""
        products = []
        for node in nodes:
            product = self.normalize(node)
            if product.is_valid:
                products.append(product)
            else:
                logger.info(f"Skipping invalid product (id={product.id!r}, name={product.name!r})")
        return products

    def _first(self, node: Dict[str, Any], fields: Sequence[str]) -> Any:
        """First non-empty value among the aliases; exact key first, then any casing."""
        folded: Dict[str, str] = {}
        for key in node:
            folded.setdefault(key.lower(), key)

        for name in fields:
            key = name if name in node else folded.get(name.lower())
            if key is None:
                continue
            value = node[key]
            if value not in (None, "", [], {}):
                return value
        return None

    def _text(self, node: Dict[str, Any], fields: Sequence[str]) -> str:
        return node_text(self._first(node, fields), self.config).strip()

    def _fallback_id(self, name: str, brand: str, url: str) -> str:
        if self.fallback_id_strategy == "random":
            return f"{random.random():.8f}"[2:10]
        if not name:
            return ""
        digest = hashlib.sha1(f"{name}|{brand}|{url}".encode("utf-8")).hexdigest()
        return f"feed-{digest[:16]}"

    def _description(self, node: Dict[str, Any]) -> str:
        description = self._text(node, self.DESCRIPTION_FIELDS)
        if description:
            return description
        return self._text(node, self.LEAD_TEXT_FIELDS)

    def _categories(self, node: Dict[str, Any]) -> List[str]:
        categories = []
        category = self._text(node, self.CATEGORY_FIELDS)
        if category:
            categories.append(category)

        path = self._text(node, self.CATEGORY_PATH_FIELDS)
        if path:
            categories.extend(part.strip() for part in path.split("/"))

        return [c for c in categories if c]

    def _items(self, node: Dict[str, Any], containers) -> List[Any]:
        """Return a nested repeated field as a list, single value or not."""
        for container_name, item_name in containers:
            container = node.get(container_name)
            if not isinstance(container, dict):
                continue
            items = container.get(item_name)
            if items is None:
                continue
            return items if isinstance(items, list) else [items]
        return []

    def _images(self, node: Dict[str, Any]) -> List[str]:
        images = [node_text(item, self.config).strip() for item in self._items(node, self.IMAGE_CONTAINERS)]
        return [image for image in images if image]

    def _primary_variant(self, node: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """First option only; other variants are ignored."""
        variants = [v for v in self._items(node, self.VARIANT_CONTAINERS) if isinstance(v, dict)]
        if not variants:
            return None
        return variants[0]

    def _apply_variant(self, product: CanonicalProduct, variant: Dict[str, Any]) -> None:
        raw_price = self._first(variant, self.PRICE_FIELDS)
        if raw_price is None:
            product.price = ZERO
        else:
            parsed = parse_locale_number(node_text(raw_price, self.config))
            if not parsed.ok:
                logger.warning(f"Unparseable price for {product.id}: {parsed.error}")
            product.price = parsed.value_or(ZERO)

        raw_discount = self._first(variant, self.DISCOUNTED_PRICE_FIELDS)
        if raw_discount is not None:
            parsed = parse_locale_number(node_text(raw_discount, self.config))
            if parsed.ok and parsed.value > 0:
                product.discounted_price = parsed.value
            elif not parsed.ok:
                logger.warning(f"Unparseable discounted price for {product.id}: {parsed.error}")

        raw_stock = self._first(variant, self.STOCK_FIELDS)
        if raw_stock is not None:
            parsed = parse_stock(node_text(raw_stock, self.config))
            if not parsed.ok:
                logger.warning(f"Unparseable stock for {product.id}: {parsed.error}")
            product.stock = int(parsed.value_or(ZERO))

        symbol = self._text(variant, self.CURRENCY_SYMBOL_FIELDS)
        code = self._text(variant, self.CURRENCY_CODE_FIELDS)
        token = symbol or code
        product.currency = normalize_currency(token) if token else DEFAULT_CURRENCY
