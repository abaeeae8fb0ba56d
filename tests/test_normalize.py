"""Tests for date and money normalization."""
from __future__ import annotations

import pytest

from order_archiver.utils import collapse_whitespace, format_money, parse_date


class TestParseDate:
    """Tests for parse_date."""

    @pytest.mark.parametrize(
        "text",
        ["January 15, 2025", "Jan 15 2025", "Jan. 15, 2025", "15 January 2025", "1/15/2025", "2025-01-15"],
    )
    def test_supported_formats(self, text):
        assert parse_date(text).to_iso() == "2025-01-15"

    def test_day_first_numeric_when_unambiguous(self):
        assert parse_date("15/1/2025").to_iso() == "2025-01-15"

    def test_impossible_date_is_incomplete(self):
        parsed = parse_date("February 30, 2025")
        assert parsed.day == 30
        assert not parsed.is_complete
        assert parsed.to_iso() is None

    def test_unknown_month_name(self):
        assert parse_date("Smarch 3, 2025").to_iso() is None

    def test_empty(self):
        parsed = parse_date("")
        assert parsed.to_iso() is None
        assert parsed.original == ""


class TestFormatMoney:
    """Tests for format_money."""

    def test_two_decimals(self):
        assert format_money("29.99") == "$29.99"

    def test_pads_and_strips_grouping(self):
        assert format_money("1,234.5") == "$1234.50"
        assert format_money("7") == "$7.00"

    def test_rejects_garbage(self):
        assert format_money("abc") is None
        assert format_money("") is None
        assert format_money(None) is None

    def test_rejects_negative(self):
        assert format_money("-3.00") is None


def test_collapse_whitespace():
    assert collapse_whitespace("  a \n\t b  ") == "a b"
    assert collapse_whitespace(None) == ""
