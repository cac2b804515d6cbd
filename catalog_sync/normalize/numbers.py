"""Locale-aware number parsing for feed values.

Feed prices use a comma as the decimal separator ("11000,00"). Parsing
never raises: callers get a ParsedNumber and decide which default to use.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


@dataclass(frozen=True)
class ParsedNumber:
    """Either a parsed value or the reason parsing failed."""

    value: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def value_or(self, default: Decimal) -> Decimal:
        return self.value if self.ok else default


def parse_locale_number(raw: Any) -> ParsedNumber:
    """
    Parse a number written with a comma decimal separator.

    "11000,00" -> 11000.00, "1.250,50" -> 1250.50 (dot as thousands
    separator when a comma is present), "12.5" -> 12.5.

    Args:
        raw: Feed value (string, number or None)

    Returns:
        ParsedNumber holding the value or an error message
    """
    if raw is None:
        return ParsedNumber(error="missing value")
    if isinstance(raw, bool):
        return ParsedNumber(error=f"not a number: {raw!r}")
    if isinstance(raw, (int, float, Decimal)):
        value = Decimal(str(raw))
        if not value.is_finite():
            return ParsedNumber(error=f"not a number: {raw!r}")
        return ParsedNumber(value=value)

    text = str(raw).strip().replace(" ", "").replace("\u00a0", "")
    if not text:
        return ParsedNumber(error="empty value")

    if "," in text:
        text = text.replace(".", "").replace(",", ".", 1)

    if not _NUMBER_RE.match(text):
        return ParsedNumber(error=f"not a number: {raw!r}")

    try:
        return ParsedNumber(value=Decimal(text))
    except InvalidOperation:
        return ParsedNumber(error=f"not a number: {raw!r}")


def parse_stock(raw: Any) -> ParsedNumber:
    """Parse a stock count, truncating decimals and clamping at zero."""
    parsed = parse_locale_number(raw)
    if not parsed.ok:
        return parsed
    return ParsedNumber(value=Decimal(max(int(parsed.value), 0)))
