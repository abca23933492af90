"""Output formatting utilities for the fiscal dashboard tools.

Provides reusable functions for:
- Compact currency amounts for rollup rows, headers and chat context
- Full currency, percentage and count display
- Tabular report output for the command line
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Any


# (threshold, suffix, decimal places), largest first
_COMPACT_TIERS = (
    (Decimal("1e12"), "T", 1),
    (Decimal("1e9"), "B", 1),
    (Decimal("1e6"), "M", 1),
    (Decimal("1e3"), "K", 0),
)


def _round_half_up(value: Decimal, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return f"{value.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def format_compact(value: Optional[float]) -> str:
    """Format a dollar amount as an abbreviated currency string.

    Thresholds at 1e12/1e9/1e6/1e3 select the T/B/M/K suffix.  T, B and M
    keep one decimal place; K and plain dollars are whole numbers.  Rounding
    is half-up and the output never depends on the process locale.

    Anything below 1e3, negative amounts included, is rendered as whole
    dollars after the "$" prefix.

    Args:
        value: Amount in dollars (None is treated as 0)

    Returns:
        Formatted string like "$1.2B" or "$45.0M"

    Examples:
        format_compact(999) -> "$999"
        format_compact(1500) -> "$2K"
        format_compact(2_500_000) -> "$2.5M"
        format_compact(3_400_000_000) -> "$3.4B"
        format_compact(-2_500_000) -> "$-2500000"
    """
    if value is None or not math.isfinite(value):
        return "$0"
    amount = Decimal(repr(float(value)))

    for threshold, suffix, places in _COMPACT_TIERS:
        if amount >= threshold:
            return f"${_round_half_up(amount / threshold, places)}{suffix}"

    text = _round_half_up(amount, 0)
    # Never render "-0"
    if Decimal(text) == 0:
        text = "0"
    return f"${text}"


def format_amount(value: Optional[float], precision: int = 0,
                 thousands_sep: bool = True) -> str:
    """Format a dollar amount in full for detail tables.

    Args:
        value: Amount in dollars (can be None)
        precision: Decimal places (default: 0 for whole dollars)
        thousands_sep: Add thousands separator (default: True)

    Returns:
        Formatted string like "$1,234,567"

    Examples:
        format_amount(1234567) -> "$1,234,567"
        format_amount(1234567, precision=2) -> "$1,234,567.00"
        format_amount(-500) -> "-$500"
        format_amount(None) -> "-"
    """
    if value is None:
        return "-"

    sign = "-" if value < 0 else ""
    if thousands_sep:
        return f"{sign}${abs(value):,.{precision}f}"
    return f"{sign}${abs(value):.{precision}f}"


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a percentage for display.

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:.{precision}f}%"


def format_count(value: Optional[int]) -> str:
    """Format a count with thousands separator.

    Examples:
        format_count(1234567) -> "1,234,567"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:,d}"


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to maximum length with ellipsis.

    Examples:
        truncate_text("Department of Health", 10) -> "Departm..."
        truncate_text("Short", 10) -> "Short"
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


class TableFormatter:
    """Formats data as aligned tabular output."""

    def __init__(self, columns: List[str], column_widths: Optional[List[int]] = None):
        """Initialize table formatter.

        Args:
            columns: List of column headers
            column_widths: Optional list of column widths (auto-calculated if None)
        """
        self.columns = columns
        self.column_widths = column_widths or [len(col) for col in columns]
        self.rows: List[List[str]] = []

    def add_row(self, values: List[Any]) -> None:
        """Add a row to the table.

        Raises:
            ValueError: If value count doesn't match column count
        """
        if len(values) != len(self.columns):
            raise ValueError(f"Expected {len(self.columns)} values, got {len(values)}")

        str_values = []
        for i, val in enumerate(values):
            str_val = str(val) if val is not None else "-"
            str_values.append(str_val)
            if len(str_val) > self.column_widths[i]:
                self.column_widths[i] = len(str_val)

        self.rows.append(str_values)

    def _format_row(self, values: List[str], is_header: bool = False) -> str:
        cells = []
        for i, val in enumerate(values):
            width = self.column_widths[i]
            # Amount columns ("$1.2B", "1,234", "12.5%") are right-aligned
            if not is_header and _looks_numeric(val):
                cells.append(val.rjust(width))
            else:
                cells.append(val.ljust(width))

        return "  ".join(cells).rstrip()

    def to_string(self, show_header: bool = True, show_separator: bool = True) -> str:
        """Format table as multi-line string."""
        lines = []

        if show_header:
            lines.append(self._format_row(self.columns, is_header=True))
            if show_separator:
                lines.append("  ".join("-" * w for w in self.column_widths))

        for row in self.rows:
            lines.append(self._format_row(row))

        return "\n".join(lines)

    def print_table(self, show_header: bool = True, show_separator: bool = True) -> None:
        """Print table to stdout."""
        print(self.to_string(show_header, show_separator))


def _looks_numeric(val: str) -> bool:
    stripped = val.lstrip("-$").rstrip("TBMK%").replace(",", "")
    try:
        float(stripped)
    except ValueError:
        return False
    return True
