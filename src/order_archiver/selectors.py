"""Selector schemas: the structural lookup rules for each page format."""
from __future__ import annotations

from dataclasses import dataclass

from order_archiver.formats import FormatTag


@dataclass(frozen=True)
class SelectorSchema:
    """CSS selectors locating order containers and their fields.

    Field selectors are evaluated relative to one container. Any of them may
    be None when the format has no dependable markup for that field.
    """

    tag: FormatTag
    container: str
    order_id: str | None = None
    order_date: str | None = None
    total: str | None = None
    status: str | None = None
    items: str | None = None
    item_name: str | None = None
    item_price: str | None = None
    item_quantity: str | None = None


DEFAULT_SCHEMA = SelectorSchema(
    tag=FormatTag.DEFAULT,
    container=".order-card.js-order-card, .order-card, [data-order-id], .order",
    order_id=".order-id, [data-order-id], .yohtmlc-order-id",
    order_date=".order-date, [data-order-date]",
    total=".order-total, [data-order-total]",
    status=".order-status, [data-order-status]",
    items=".order-item, [data-item]",
    item_name=".item-name, .product-title",
    item_price=".item-price, .a-color-price",
    item_quantity=".item-quantity, .item-view-qty",
)

_SCHEMAS: dict[FormatTag, SelectorSchema] = {
    FormatTag.YOUR_ORDERS: SelectorSchema(
        tag=FormatTag.YOUR_ORDERS,
        container=".order-card.js-order-card",
        order_id=".yohtmlc-order-id span.a-color-secondary[dir='ltr'], .yohtmlc-order-id",
        order_date=".order-header .a-column:first-child .a-size-base, .yohtmlc-order-date",
        total=".yohtmlc-order-total .a-size-base, .yohtmlc-order-total",
        status=".delivery-box__primary-text, .yohtmlc-shipment-status-primaryText",
        items=".yohtmlc-item, .item-box",
        item_name=".yohtmlc-product-title, .a-link-normal",
        item_price=".a-color-price",
        item_quantity=".product-image__qty, .item-view-qty",
    ),
    FormatTag.CSS: SelectorSchema(
        tag=FormatTag.CSS,
        container=".a-box-group.order, .order",
        order_id=".order-info .a-color-secondary.value[dir='ltr'], .order-id",
        order_date=".order-info .a-column:first-child .value",
        total=".order-info .a-column:nth-child(2) .value",
        status=".shipment .a-text-bold, .shipment-is-delivered",
        items=".shipment .a-fixed-left-grid",
        item_name=".a-link-normal",
        item_price=".a-color-price",
        item_quantity=".item-view-qty",
    ),
    FormatTag.YOUR_ACCOUNT: SelectorSchema(
        tag=FormatTag.YOUR_ACCOUNT,
        container=".order-card.js-order-card, .order",
        order_id=".order-id, [data-order-id]",
        order_date=".order-date, [data-order-date]",
        total=".order-total, [data-order-total]",
        status=".delivery-box .a-text-bold, .order-status",
        items=".delivery-box .a-fixed-left-grid, .order-item",
        item_name=".a-link-normal, .item-name",
        item_price=".a-color-price, .item-price",
        item_quantity=".item-view-qty, .item-quantity",
    ),
    FormatTag.DEFAULT: DEFAULT_SCHEMA,
}


def selectors_for(tag: FormatTag | str | None) -> SelectorSchema:
    """Schema for ``tag``; anything unknown resolves to the default schema."""
    if isinstance(tag, str) and not isinstance(tag, FormatTag):
        try:
            tag = FormatTag(tag)
        except ValueError:
            return DEFAULT_SCHEMA
    return _SCHEMAS.get(tag, DEFAULT_SCHEMA)


def registered_formats() -> list[FormatTag]:
    return list(_SCHEMAS)
