"""String processing utilities for the fiscal dashboard tools.

Optimization: parse_amount() is called once per row per amount column while a
dashboard aggregates tens of thousands of rows.  Using pre-compiled patterns
and an early exit for numeric input keeps the aggregation pass cheap.
"""

import math

from utils.patterns import (
    BRACKET_WRAPPER,
    CURRENCY_SYMBOLS,
    THOUSANDS_SEPARATORS,
)


def parse_amount(val, scale: float = 1.0) -> float:
    """Convert a locale-formatted amount string into a number.

    Handles:
    - None, empty and whitespace-only strings -> 0
    - Numeric types -> float
    - Strings with currency symbols and thousands separators ("$1,500,000")
    - Anything that fails to parse -> 0 (never raises)

    Some source tables store amounts in millions; pass ``scale=1_000_000`` to
    convert those to dollars.  Scaling is applied after parsing and only to
    values that parsed successfully.

    Args:
        val: Raw cell value (any type)
        scale: Multiplier applied to the parsed value (default: 1.0)

    Returns:
        float: Parsed and scaled amount, or 0.0

    Examples:
        parse_amount("1,234.50") -> 1234.5
        parse_amount("$45") -> 45.0
        parse_amount("12.5", scale=1_000_000) -> 12500000.0
        parse_amount("n/a") -> 0.0
    """
    if val is None or isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        num = float(val)
    else:
        s = CURRENCY_SYMBOLS.sub('', str(val))
        s = THOUSANDS_SEPARATORS.sub('', s)
        if not s:
            return 0.0
        try:
            num = float(s)
        except (ValueError, TypeError):
            return 0.0
    if not math.isfinite(num):
        return 0.0
    return num * scale


def is_blank(val) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if val is None:
        return True
    return isinstance(val, str) and not val.strip()


def strip_brackets(s: str | None, default: str = "Unknown") -> str:
    """Remove a surrounding ``[...]`` wrapper and trim the result.

    Example:
        "[Town of Ithaca]" -> "Town of Ithaca"
        "[]" -> "Unknown"
    """
    if not s:
        return default
    cleaned = BRACKET_WRAPPER.sub('', s).strip()
    return cleaned or default
