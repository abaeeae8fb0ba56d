"""Tests for page format detection and selector schemas."""
from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from order_archiver.formats import FormatTag, detect_format, sniff_format
from order_archiver.selectors import DEFAULT_SCHEMA, registered_formats, selectors_for


class TestDetectFormat:
    """Tests for detect_format."""

    @pytest.mark.parametrize(
        "context, expected",
        [
            ("https://www.amazon.com/your-orders/orders?timeFilter=year-2025", FormatTag.YOUR_ORDERS),
            ("https://www.amazon.com/your-orders", FormatTag.YOUR_ORDERS),
            ("https://www.amazon.com/gp/css/order-history?ref_=nav", FormatTag.CSS),
            ("https://www.amazon.com/gp/your-account/order-history", FormatTag.YOUR_ACCOUNT),
            ("https://www.amazon.com/gp/legacy/order-history", FormatTag.YOUR_ACCOUNT),
            ("www.amazon.co.uk/gp/css/order-history", FormatTag.CSS),
            ("/your-orders/orders", FormatTag.YOUR_ORDERS),
        ],
    )
    def test_known_paths(self, context, expected):
        assert detect_format(context) is expected

    @pytest.mark.parametrize(
        "context",
        ["", None, "https://www.amazon.com/", "not a url at all", "https://[::1", "/your-orders-archive"],
    )
    def test_unrecognised_is_default(self, context):
        assert detect_format(context) is FormatTag.DEFAULT

    def test_query_string_does_not_count(self):
        assert detect_format("https://example.com/search?q=/gp/css/order-history") is FormatTag.DEFAULT


class TestSniffFormat:
    """Tests for markup sniffing."""

    def test_marker_found(self):
        soup = BeautifulSoup('<div class="a-box-group order"></div>', "html.parser")
        assert sniff_format(soup) is FormatTag.CSS

    def test_no_marker(self):
        soup = BeautifulSoup("<p>hello</p>", "html.parser")
        assert sniff_format(soup) is FormatTag.DEFAULT

    def test_none_root(self):
        assert sniff_format(None) is FormatTag.DEFAULT


class TestSelectorSchemas:
    """Tests for the selector registry."""

    def test_every_format_registered(self):
        assert set(registered_formats()) == set(FormatTag)

    def test_schema_tags_match(self):
        for tag in FormatTag:
            assert selectors_for(tag).tag is tag

    def test_lookup_by_string(self):
        assert selectors_for("css").tag is FormatTag.CSS

    def test_unknown_tag_gets_default(self):
        assert selectors_for("mystery") is DEFAULT_SCHEMA
        assert selectors_for(None) is DEFAULT_SCHEMA

    def test_your_orders_container(self):
        assert selectors_for(FormatTag.YOUR_ORDERS).container == ".order-card.js-order-card"
