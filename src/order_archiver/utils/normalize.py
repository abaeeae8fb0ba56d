"""Normalization utilities for scraped order text.

Provides consistent handling of whitespace, dates and money amounts so
that every extraction strategy produces the same canonical forms.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

_WS_RE = re.compile(r"\s+")


@dataclass
class ParsedDate:
    """Structured date with validity tracking."""

    year: int | None = None
    month: int | None = None
    day: int | None = None
    original: str = ""  # Original string for reference

    @property
    def is_complete(self) -> bool:
        """True when year, month and day form a real calendar date."""
        if not (self.year and self.month and self.day):
            return False
        try:
            date(self.year, self.month, self.day)
        except ValueError:
            return False
        return True

    def to_iso(self) -> str | None:
        """Convert to YYYY-MM-DD, or None unless the date is complete."""
        if not self.is_complete:
            return None
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


# Month name mappings
MONTH_NAMES = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def parse_date(date_str: str) -> ParsedDate:
    """Parse a date string into structured components.

    Handles the formats order pages actually use:
    - US with month name: January 15, 2025 / Jan. 15 2025
    - Day first with month name: 15 January 2025
    - US numeric: 1/15/2025
    - ISO: 2025-01-15

    Args:
        date_str: Date string, already isolated from surrounding text

    Returns:
        ParsedDate with extracted components (possibly empty)
    """
    if not date_str:
        return ParsedDate(original=date_str or "")

    result = ParsedDate(original=date_str)
    text = collapse_whitespace(date_str).upper()

    # ISO format: YYYY-MM-DD
    iso_match = re.match(r"^(\d{4})-(\d{1,2})-(\d{1,2})$", text)
    if iso_match:
        result.year = int(iso_match.group(1))
        result.month = int(iso_match.group(2))
        result.day = int(iso_match.group(3))
        return result

    # US format with month name: January 15, 2025
    us_match = re.match(r"^([A-Z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})$", text)
    if us_match:
        result.month = MONTH_NAMES.get(us_match.group(1).lower())
        result.day = int(us_match.group(2))
        result.year = int(us_match.group(3))
        return result

    # Day first with month name: 15 January 2025
    dmy_match = re.match(r"^(\d{1,2})\s+([A-Z]{3,9})\.?,?\s+(\d{4})$", text)
    if dmy_match:
        result.day = int(dmy_match.group(1))
        result.month = MONTH_NAMES.get(dmy_match.group(2).lower())
        result.year = int(dmy_match.group(3))
        return result

    # Numeric M/D/YYYY; order pages are US-first so ambiguity resolves to month first
    numeric_match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", text)
    if numeric_match:
        a, b = int(numeric_match.group(1)), int(numeric_match.group(2))
        result.year = int(numeric_match.group(3))
        if a > 12:
            result.day, result.month = a, b
        else:
            result.month, result.day = a, b
        return result

    return result


def format_money(amount: str | None) -> str | None:
    """Canonicalize a bare amount ("1,234.5") to "$1234.50".

    Returns None when the amount is not a number.
    """
    if not amount:
        return None
    cleaned = amount.replace(",", "").replace("$", "").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return f"${value.quantize(Decimal('0.01'))}"
