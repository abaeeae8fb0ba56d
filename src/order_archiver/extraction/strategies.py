"""Per-field extraction strategies and the chain runner.

Each field has an ordered tuple of named strategies. A strategy looks at
one container (structurally, through the schema's selectors) or at its
flattened text (through regular expressions) and returns a value or None.
``run_chain`` evaluates a chain in order and the first value wins, so the
heuristic priority order is plain data that tests can inspect.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

import structlog
from bs4 import Tag

from order_archiver.config import DEFAULT_IDENTITY_ATTRIBUTES
from order_archiver.dom import element_text, flatten_text, safe_select, safe_select_one
from order_archiver.extraction.models import UNKNOWN, LineItem
from order_archiver.selectors import SelectorSchema
from order_archiver.utils.normalize import format_money, parse_date

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FieldContext:
    """Everything a strategy may look at for one container."""

    container: Tag
    schema: SelectorSchema
    text: str
    max_line_items: int = 10
    status_snippet_length: int = 80
    identity_attributes: tuple[str, ...] = DEFAULT_IDENTITY_ATTRIBUTES


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    func: Callable[[FieldContext], T | None]

    def __call__(self, ctx: FieldContext) -> T | None:
        return self.func(ctx)


def run_chain(chain: Sequence[Strategy[T]], ctx: FieldContext) -> tuple[T | None, str | None]:
    """Evaluate ``chain`` in order.

    Returns the first non-empty value and the name of the strategy that
    produced it, or ``(None, None)`` when every strategy missed. A strategy
    that raises counts as a miss.
    """
    for strategy in chain:
        try:
            value = strategy(ctx)
        except Exception:
            logger.warning("extract.strategy_failed", strategy=strategy.name, exc_info=True)
            continue
        if value:
            return value, strategy.name
    return None, None


# =============================================================================
# Patterns
# =============================================================================

_ORDER_NUMBER = r"\d{3}-\d{7}-\d{7}"

LABELLED_ORDER_RE = re.compile(
    rf"order\s*(?:number|no\.?)?\s*#?\s*:?\s*({_ORDER_NUMBER})(?![\d-])", re.I
)
TRIPLET_RE = re.compile(rf"(?<![\w-])({_ORDER_NUMBER})(?![\w-])")
# Digital and gift orders carry letters in the first group (D01-...)
ALPHANUMERIC_ORDER_RE = re.compile(
    r"(?<![\w-])(?=[A-Z0-9-]*\d)([A-Z0-9]{3}-[A-Z0-9]{7}-[A-Z0-9]{7})(?![\w-])"
)

_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
_NAMED_DATE = rf"{_MONTH}\.?\s+\d{{1,2}},?\s+\d{{4}}|\d{{1,2}}\s+{_MONTH}\.?,?\s+\d{{4}}"

LABELLED_DATE_RE = re.compile(
    rf"(?:order\s+placed|ordered\s+on|placed\s+on|order\s+date)\s*:?\s*(?:on\s+)?({_NAMED_DATE})\b",
    re.I,
)
NAMED_MONTH_DATE_RE = re.compile(rf"\b({_NAMED_DATE})\b", re.I)
SLASH_DATE_RE = re.compile(r"(?<![\d/])(\d{1,2}/\d{1,2}/\d{4})(?![\d/])")
ISO_DATE_RE = re.compile(r"(?<![\d-])(\d{4}-\d{1,2}-\d{1,2})(?![\d-])")

_AMOUNT = r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?"

LABELLED_TOTAL_RE = re.compile(rf"\b(?:grand\s+|order\s+)?total\s*:?\s*\$\s?({_AMOUNT})", re.I)
CURRENCY_RE = re.compile(rf"\$\s?({_AMOUNT})")

QUANTITY_RE = re.compile(r"\b(?:qty|quantity)\s*:?\s*(\d{1,3})\b", re.I)

# Longer phrases first so "Not yet shipped" never reads as "Shipped"
STATUS_VOCABULARY: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (label, re.compile(rf"\b{pattern}\b", re.I))
    for label, pattern in (
        ("Return complete", r"return\s+complete"),
        ("Return started", r"return\s+started"),
        ("Refund issued", r"refund\s+issued"),
        ("Out for delivery", r"out\s+for\s+delivery"),
        ("Not yet shipped", r"not\s+yet\s+shipped"),
        ("Preparing for shipment", r"preparing\s+for\s+shipment"),
        ("Payment declined", r"payment\s+declined"),
        ("Delivered", r"delivered"),
        ("Arriving", r"arriving"),
        ("Shipped", r"shipped"),
        ("Cancelled", r"cancell?ed"),
        ("Returned", r"returned"),
        ("Refunded", r"refunded"),
    )
)

# Words describing the page chrome rather than a product
LINE_ITEM_DENYLIST: tuple[str, ...] = (
    "order", "orders", "ordered", "placed", "total", "subtotal", "grand total",
    "tax", "shipping", "ship to", "delivered", "arriving", "shipped", "invoice",
    "details", "view", "buy it again", "track package", "return", "returns",
    "item", "items", "payment", "refund", "refunded", "cancelled", "canceled",
)

_CHROME_RE = re.compile(
    "|".join(
        [r"\b(?:" + "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in LINE_ITEM_DENYLIST) + r")\b"]
        + [_ORDER_NUMBER, _NAMED_DATE, r"\d{1,2}/\d{1,2}/\d{4}", r"\d{4}-\d{1,2}-\d{1,2}"]
    ),
    re.I,
)
_NAME_STRIP = " \t:#-,.|/()*"
_MAX_NAME_LENGTH = 200


# =============================================================================
# Helpers
# =============================================================================


def _first_group(pattern: re.Pattern[str], text: str | None) -> str | None:
    if not text:
        return None
    match = pattern.search(text)
    return match.group(1) if match else None


def _first_date(pattern: re.Pattern[str], text: str | None) -> str | None:
    # A match that is not a real calendar date is skipped, not fatal
    if not text:
        return None
    for match in pattern.finditer(text):
        iso = parse_date(match.group(1)).to_iso()
        if iso:
            return iso
    return None


def order_number_in(text: str | None) -> str | None:
    for pattern in (LABELLED_ORDER_RE, TRIPLET_RE, ALPHANUMERIC_ORDER_RE):
        value = _first_group(pattern, text)
        if value:
            return value
    return None


def date_in(text: str | None) -> str | None:
    for pattern in (LABELLED_DATE_RE, NAMED_MONTH_DATE_RE, SLASH_DATE_RE, ISO_DATE_RE):
        value = _first_date(pattern, text)
        if value:
            return value
    return None


def money_in(text: str | None, labelled_first: bool = False) -> str | None:
    patterns = (LABELLED_TOTAL_RE, CURRENCY_RE) if labelled_first else (CURRENCY_RE,)
    for pattern in patterns:
        value = format_money(_first_group(pattern, text))
        if value:
            return value
    # Structural price cells sometimes drop the currency sign
    if text and not labelled_first:
        bare = re.fullmatch(rf"\s*({_AMOUNT})\s*", text)
        if bare:
            return format_money(bare.group(1))
    return None


def status_in(text: str | None) -> str | None:
    if not text:
        return None
    for label, pattern in STATUS_VOCABULARY:
        if pattern.search(text):
            return label
    return None


def quantity_in(text: str | None) -> int | None:
    if not text:
        return None
    match = QUANTITY_RE.search(text) or re.search(r"\b(\d{1,3})\b", text)
    if not match:
        return None
    value = int(match.group(1))
    return value if value >= 1 else None


def _attribute_value(node: Tag, attribute: str) -> str | None:
    value = node.get(attribute)
    if isinstance(value, list):
        value = " ".join(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def clean_item_name(segment: str) -> tuple[str | None, int]:
    """Isolate a product name from the text preceding a price.

    Everything up to the last page-chrome token (denylisted words, order
    numbers, dates) is discarded. Returns ``(name, quantity)``.
    """
    quantity = 1
    qty = QUANTITY_RE.search(segment)
    if qty:
        quantity = max(int(qty.group(1)), 1)
        segment = f"{segment[:qty.start()]} {segment[qty.end():]}"
    cut = 0
    for match in _CHROME_RE.finditer(segment):
        cut = match.end()
    name = " ".join(segment[cut:].split()).strip(_NAME_STRIP)
    if len(name) < 2 or len(name) > _MAX_NAME_LENGTH or not re.search(r"[A-Za-z]", name):
        return None, quantity
    return name, quantity


# =============================================================================
# Identifier
# =============================================================================


def _identifier_from_attribute(ctx: FieldContext) -> str | None:
    attributes = ctx.identity_attributes
    for attribute in attributes:
        value = _attribute_value(ctx.container, attribute)
        if value:
            return value
    selector = ", ".join(f"[{attribute}]" for attribute in attributes)
    node = safe_select_one(ctx.container, selector)
    if node is None:
        return None
    for attribute in attributes:
        value = _attribute_value(node, attribute)
        if value:
            return value
    return None


def _identifier_from_selector(ctx: FieldContext) -> str | None:
    return order_number_in(element_text(ctx.container, ctx.schema.order_id))


IDENTIFIER_CHAIN: tuple[Strategy[str], ...] = (
    Strategy("attribute", _identifier_from_attribute),
    Strategy("selector", _identifier_from_selector),
    Strategy("text:labelled", lambda ctx: _first_group(LABELLED_ORDER_RE, ctx.text)),
    Strategy("text:triplet", lambda ctx: _first_group(TRIPLET_RE, ctx.text)),
    Strategy("text:alphanumeric", lambda ctx: _first_group(ALPHANUMERIC_ORDER_RE, ctx.text)),
)


# =============================================================================
# Order date
# =============================================================================


DATE_CHAIN: tuple[Strategy[str], ...] = (
    Strategy("selector", lambda ctx: date_in(element_text(ctx.container, ctx.schema.order_date))),
    Strategy("text:labelled", lambda ctx: _first_date(LABELLED_DATE_RE, ctx.text)),
    Strategy("text:named-month", lambda ctx: _first_date(NAMED_MONTH_DATE_RE, ctx.text)),
    Strategy("text:slash", lambda ctx: _first_date(SLASH_DATE_RE, ctx.text)),
    Strategy("text:iso", lambda ctx: _first_date(ISO_DATE_RE, ctx.text)),
)


# =============================================================================
# Total
# =============================================================================


TOTAL_CHAIN: tuple[Strategy[str], ...] = (
    Strategy("selector", lambda ctx: money_in(element_text(ctx.container, ctx.schema.total))),
    Strategy("text:labelled", lambda ctx: format_money(_first_group(LABELLED_TOTAL_RE, ctx.text))),
    Strategy("text:currency", lambda ctx: format_money(_first_group(CURRENCY_RE, ctx.text))),
)


# =============================================================================
# Status
# =============================================================================


def _status_from_selector(ctx: FieldContext) -> str | None:
    text = element_text(ctx.container, ctx.schema.status)
    if not text:
        return None
    return status_in(text) or text[: ctx.status_snippet_length].strip()


STATUS_CHAIN: tuple[Strategy[str], ...] = (
    Strategy("selector", _status_from_selector),
    Strategy("text:vocabulary", lambda ctx: status_in(ctx.text)),
)


# =============================================================================
# Line items
# =============================================================================


def _line_items_from_selectors(ctx: FieldContext) -> list[LineItem]:
    items: list[LineItem] = []
    for node in safe_select(ctx.container, ctx.schema.items):
        price_text = element_text(node, ctx.schema.item_price)
        price = money_in(price_text)
        name = element_text(node, ctx.schema.item_name)
        if not name:
            text = flatten_text(node)
            if price_text:
                text = text.replace(price_text, " ")
            name, _ = clean_item_name(text)
        if not name:
            continue
        quantity = quantity_in(element_text(node, ctx.schema.item_quantity)) or 1
        items.append(LineItem(name=name[:_MAX_NAME_LENGTH], price=price or UNKNOWN, quantity=quantity))
        if len(items) >= ctx.max_line_items:
            break
    return items


def _line_items_from_text(ctx: FieldContext) -> list[LineItem]:
    items: list[LineItem] = []
    cursor = 0
    for match in CURRENCY_RE.finditer(ctx.text):
        segment = ctx.text[cursor:match.start()]
        cursor = match.end()
        name, quantity = clean_item_name(segment)
        if not name:
            continue
        price = format_money(match.group(1)) or UNKNOWN
        items.append(LineItem(name=name, price=price, quantity=quantity))
        if len(items) >= ctx.max_line_items:
            break
    return items


LINE_ITEM_CHAIN: tuple[Strategy[list[LineItem]], ...] = (
    Strategy("selector", _line_items_from_selectors),
    Strategy("text:priced-segments", _line_items_from_text),
)
