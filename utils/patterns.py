"""Pre-compiled regex patterns for the fiscal dashboard tools.

All patterns are compiled once at module import.  The amount parser runs once
per row per amount column during every dashboard load, so it should never
recompile a pattern inside the loop.

Usage:
    from utils.patterns import CURRENCY_SYMBOLS, FISCAL_YEAR_COLUMN

    if FISCAL_YEAR_COLUMN.match(column):
        ...
"""

import re

# Currency symbols for stripping during numeric conversion
CURRENCY_SYMBOLS = re.compile(r'[\$€£¥₹₽]')

# Thousands separators and stray whitespace inside a number ("1, 500")
THOUSANDS_SEPARATORS = re.compile(r'[,\s]')

# Grantee names are sometimes stored wrapped in brackets: "[Town of Ithaca]"
BRACKET_WRAPPER = re.compile(r'^\[|\]$')

# Fiscal-year column names in the revenue table: "1991-92", "2022-23"
FISCAL_YEAR_COLUMN = re.compile(r'^(19|20)\d{2}-\d{2}$')

# PostgREST column names that must be double-quoted in a select list
NEEDS_QUOTING = re.compile(r'[^A-Za-z0-9_]')
