"""Exception types raised by the catalog sync pipeline."""

from typing import Optional


class CatalogSyncError(RuntimeError):
    """Base class for catalog sync failures."""
    pass


class FeedAcquisitionError(CatalogSyncError):
    """Raised when no candidate feed URL produced a usable body."""

    def __init__(self, message: str, attempts: Optional[list] = None):
        super().__init__(message)
        self.attempts = attempts or []


class FeedParseError(CatalogSyncError):
    """Raised when the feed document cannot be parsed."""
    pass


class NoProductsFoundError(FeedParseError):
    """Raised when no product collection is found in a parsed feed."""
    pass


class ProductNotFoundError(CatalogSyncError):
    """Raised when a product id does not exist in the store."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id
