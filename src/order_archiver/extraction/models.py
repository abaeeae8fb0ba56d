"""Order records produced by extraction.

Pydantic models for the structured result of one order container. Fields
that cannot be extracted hold the ``UNKNOWN`` sentinel instead of failing
the record.
"""
from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from order_archiver.formats import FormatTag

UNKNOWN = "unknown"

_WELL_FORMED_ID_RE = re.compile(r"^\d{3}-\d{7}-\d{7}$")


def is_well_formed_identifier(value: Any) -> bool:
    """True only for the exact ``DDD-DDDDDDD-DDDDDDD`` order number shape.

    Consumers use this to decide how far to trust ``OrderRecord.identifier``;
    the extractor never rejects a record because of it.
    """
    if not isinstance(value, str) or not value:
        return False
    return _WELL_FORMED_ID_RE.fullmatch(value) is not None


# =============================================================================
# Line items
# =============================================================================


class LineItem(BaseModel):
    """One purchased product within an order."""

    name: str = Field(description="Product title as shown on the page")
    price: str = Field(default=UNKNOWN, description="$-prefixed unit price")
    quantity: int = Field(default=1, ge=1)


# =============================================================================
# Order record
# =============================================================================


class OrderRecord(BaseModel):
    """The extracted representation of one order container."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    identifier: str = Field(default=UNKNOWN, description="Order number")
    ordered_on: str = Field(default=UNKNOWN, description="YYYY-MM-DD")
    total: str = Field(default=UNKNOWN, description="$-prefixed decimal")
    status: str = Field(default=UNKNOWN)
    line_items: list[LineItem] = Field(default_factory=list)
    schema_tag: FormatTag = Field(default=FormatTag.DEFAULT)

    # Stamped by the lifecycle dispatcher; None for a bare extract()
    identity: str | None = Field(default=None)

    # Field names that degraded to UNKNOWN, with the reason
    diagnostics: list[str] = Field(default_factory=list)

    # Back-reference to the originating element; never serialized
    source_ref: Any = Field(default=None, exclude=True, repr=False)

    @computed_field
    @property
    def has_trusted_identifier(self) -> bool:
        return is_well_formed_identifier(self.identifier)

    @property
    def missing_fields(self) -> list[str]:
        """Scalar fields still holding the sentinel."""
        return [
            name
            for name in ("identifier", "ordered_on", "total", "status")
            if getattr(self, name) == UNKNOWN
        ]
