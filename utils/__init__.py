"""Shared utilities for the fiscal dashboard tools."""

# Pattern definitions
from utils.patterns import (
    CURRENCY_SYMBOLS,
    FISCAL_YEAR_COLUMN,
)

# String utilities
from utils.strings import (
    parse_amount,
    is_blank,
    strip_brackets,
)

# HTTP utilities
from utils.http import (
    RetryStrategy,
    SessionManager,
)

# Output formatting
from utils.formatting import (
    format_compact,
    format_amount,
    format_percent,
    format_count,
    truncate_text,
    TableFormatter,
)

# Caching
from utils.cache import TTLCache

# Configuration
from utils.config import (
    Config,
    LoaderConfig,
    SourceConfig,
    AppConfig,
)

__all__ = [
    # Patterns
    "CURRENCY_SYMBOLS",
    "FISCAL_YEAR_COLUMN",
    # Strings
    "parse_amount",
    "is_blank",
    "strip_brackets",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    # Formatting
    "format_compact",
    "format_amount",
    "format_percent",
    "format_count",
    "truncate_text",
    "TableFormatter",
    # Cache
    "TTLCache",
    # Config
    "Config",
    "LoaderConfig",
    "SourceConfig",
    "AppConfig",
]
