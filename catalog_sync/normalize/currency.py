"""Currency code normalization."""

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Currency(str, Enum):
    """Currencies the storefront can price in."""

    TRY = "TRY"
    USD = "USD"
    EUR = "EUR"


DEFAULT_CURRENCY = Currency.TRY

# Legacy tokens seen in feeds
CURRENCY_ALIASES = {
    "TL": Currency.TRY,
}


def normalize_currency(value: Any) -> Currency:
    """
    Map a feed currency token onto a Currency.

    "TL" becomes TRY; TRY, USD and EUR pass through; anything else falls
    back to TRY with a warning.
    """
    if isinstance(value, Currency):
        return value

    token = str(value).strip() if value is not None else ""

    if token in CURRENCY_ALIASES:
        return CURRENCY_ALIASES[token]

    try:
        return Currency(token)
    except ValueError:
        logger.warning(f"Unknown currency {token!r}, defaulting to {DEFAULT_CURRENCY.value}")
        return DEFAULT_CURRENCY
