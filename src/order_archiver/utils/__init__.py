"""order-archiver utilities."""

from .normalize import (
    MONTH_NAMES,
    ParsedDate,
    collapse_whitespace,
    format_money,
    parse_date,
)

__all__ = [
    "MONTH_NAMES",
    "ParsedDate",
    "collapse_whitespace",
    "format_money",
    "parse_date",
]
