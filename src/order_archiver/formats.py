"""Page format detection.

Order history pages come in several generations of markup. The format is
chosen from the navigation context (the page address); when that is
inconclusive the default schema applies, optionally refined by sniffing
markup markers.
"""
from __future__ import annotations

import re
from enum import Enum
from urllib.parse import urlsplit

import structlog
from bs4 import Tag

from order_archiver.dom import safe_select_one

logger = structlog.get_logger(__name__)


class FormatTag(str, Enum):
    """Known order page formats."""

    YOUR_ORDERS = "your-orders"  # Current single-page order history
    CSS = "css"  # /gp/css order history
    YOUR_ACCOUNT = "your-account"  # Oldest account-area history
    DEFAULT = "default"  # Nothing recognised


# Checked in order; first match wins
_PATH_PATTERNS: tuple[tuple[re.Pattern[str], FormatTag], ...] = (
    (re.compile(r"/your-orders(?:/|$)", re.I), FormatTag.YOUR_ORDERS),
    (re.compile(r"/gp/css/order-history", re.I), FormatTag.CSS),
    (re.compile(r"/gp/your-account/order-history", re.I), FormatTag.YOUR_ACCOUNT),
    (re.compile(r"/gp/legacy/order-history", re.I), FormatTag.YOUR_ACCOUNT),
)

# Markup markers, checked in order
_MARKERS: tuple[tuple[str, FormatTag], ...] = (
    (".yohtmlc-shipment-level-connections", FormatTag.YOUR_ORDERS),
    (".order-actions, .a-box-group", FormatTag.CSS),
    (".delivery-box", FormatTag.YOUR_ACCOUNT),
    ('[data-testid*="order"]', FormatTag.YOUR_ORDERS),
)


def _path_of(navigation_context: str) -> str:
    text = navigation_context.strip()
    if "://" in text or text.startswith("//"):
        return urlsplit(text).path or "/"
    # Bare host + path ("www.amazon.com/gp/css/...") or a path alone
    return text.split("?", 1)[0].split("#", 1)[0]


def detect_format(navigation_context: str | None) -> FormatTag:
    """Choose the page format from the navigation context.

    Pure and total: anything unrecognised, empty or malformed yields
    ``FormatTag.DEFAULT``.
    """
    if not navigation_context or not isinstance(navigation_context, str):
        return FormatTag.DEFAULT
    try:
        path = _path_of(navigation_context)
    except ValueError:
        return FormatTag.DEFAULT
    for pattern, tag in _PATH_PATTERNS:
        if pattern.search(path):
            return tag
    return FormatTag.DEFAULT


def sniff_format(root: Tag | None) -> FormatTag:
    """Guess the format from markup markers under ``root``."""
    if root is None:
        return FormatTag.DEFAULT
    try:
        for selector, tag in _MARKERS:
            if safe_select_one(root, selector) is not None:
                return tag
    except Exception:
        logger.exception("formats.sniff_failed")
    return FormatTag.DEFAULT
