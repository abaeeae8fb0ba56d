"""Small, failure-tolerant helpers over BeautifulSoup trees.

Selector lookups never raise: an invalid selector or an odd node logs a
warning and behaves like "nothing matched".
"""
from __future__ import annotations

from functools import lru_cache
from typing import Iterator

import soupsieve
import structlog
from bs4 import Tag

from order_archiver.utils.normalize import collapse_whitespace

logger = structlog.get_logger(__name__)


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> soupsieve.SoupSieve:
    return soupsieve.compile(selector)


def is_element(node: object) -> bool:
    # BeautifulSoup objects are Tags too, but they are documents, not elements
    return isinstance(node, Tag) and node.name != "[document]"


def safe_select(node: Tag, selector: str | None) -> list[Tag]:
    """Descendants of ``node`` matching ``selector`` in document order."""
    if not selector or not isinstance(node, Tag):
        return []
    try:
        return list(compile_selector(selector).select(node))
    except soupsieve.SelectorSyntaxError:
        logger.warning("dom.invalid_selector", selector=selector)
        return []


def safe_select_one(node: Tag, selector: str | None) -> Tag | None:
    if not selector or not isinstance(node, Tag):
        return None
    try:
        return compile_selector(selector).select_one(node)
    except soupsieve.SelectorSyntaxError:
        logger.warning("dom.invalid_selector", selector=selector)
        return None


def safe_matches(node: object, selector: str | None) -> bool:
    if not selector or not is_element(node):
        return False
    try:
        return bool(compile_selector(selector).match(node))
    except soupsieve.SelectorSyntaxError:
        logger.warning("dom.invalid_selector", selector=selector)
        return False


def matching_self_or_descendants(node: object, selector: str) -> Iterator[Tag]:
    """Yield ``node`` when it matches, then every matching descendant."""
    if not isinstance(node, Tag):
        return
    if safe_matches(node, selector):
        yield node
    yield from safe_select(node, selector)


def flatten_text(node: Tag | None) -> str:
    """All text under ``node`` with whitespace collapsed."""
    if node is None:
        return ""
    return collapse_whitespace(node.get_text(" ", strip=True))


def element_text(node: Tag | None, selector: str | None) -> str | None:
    """Flattened text of the first descendant matching ``selector``."""
    if node is None:
        return None
    found = safe_select_one(node, selector)
    if found is None:
        return None
    text = flatten_text(found)
    return text or None


def is_attached(node: Tag | None, root: Tag | None) -> bool:
    """True when ``node`` is ``root`` or sits somewhere beneath it."""
    if node is None or root is None:
        return False
    if node is root:
        return True
    return any(parent is root for parent in node.parents)


def element_index(node: Tag) -> int:
    """Position of ``node`` among its parent's element children."""
    parent = node.parent
    if parent is None:
        return 0
    index = 0
    for child in parent.children:
        if child is node:
            return index
        if isinstance(child, Tag):
            index += 1
    return index
