"""
Tolerant number parsing shared by the normalizer and the CSV importer.

One policy everywhere: accept ints, floats, Decimals and messy strings
("$1,234.50", " 12 ETH"), and fall back to a caller-chosen default
instead of raising.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


_NON_NUMERIC = re.compile(r"[^0-9.\-]")

DEFAULT_DECIMALS = 18


def parse_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Parse a value into a finite Decimal.

    Strings are tried as-is first (so "1e-5" survives), then again with
    every non-numeric character stripped.

    Args:
        value: Raw value
        default: Returned when the value is absent or unparsable

    Returns:
        Decimal or default
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return default
        try:
            result = Decimal(text)
        except InvalidOperation:
            cleaned = _NON_NUMERIC.sub("", text)
            try:
                result = Decimal(cleaned)
            except InvalidOperation:
                return default

    if not result.is_finite():
        return default
    return result


def parse_decimals(value: Any) -> int:
    """Token decimal exponent, defaulting to 18 when absent or unparsable."""
    parsed = parse_decimal(value)
    if parsed is None or parsed < 0 or parsed != parsed.to_integral_value():
        return DEFAULT_DECIMALS
    return int(parsed)


def scale_units(raw_value: Any, decimals: int = DEFAULT_DECIMALS) -> Optional[Decimal]:
    """Divide a raw integer amount by 10**decimals; None when unparsable."""
    raw = parse_decimal(raw_value)
    if raw is None:
        return None
    return raw.scaleb(-decimals)


def as_number(value: Any) -> Optional[Decimal]:
    """Decimal for real numeric values only (int/float/Decimal), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    return parse_decimal(value)
