"""Field extractor: one candidate container in, one OrderRecord out."""
from __future__ import annotations

from typing import Sequence

import structlog
from bs4 import Tag

from order_archiver.config import CONFIG, TrackerConfig
from order_archiver.dom import flatten_text, is_element
from order_archiver.exceptions import ExtractionError
from order_archiver.extraction.models import UNKNOWN, LineItem, OrderRecord
from order_archiver.extraction.strategies import (
    DATE_CHAIN,
    IDENTIFIER_CHAIN,
    LINE_ITEM_CHAIN,
    STATUS_CHAIN,
    TOTAL_CHAIN,
    FieldContext,
    Strategy,
    run_chain,
)
from order_archiver.selectors import SelectorSchema

logger = structlog.get_logger(__name__)


class OrderExtractor:
    """Applies the per-field strategy chains to a container.

    Every scalar field degrades independently to ``UNKNOWN``; a miss is
    recorded in ``OrderRecord.diagnostics`` and never aborts the other
    fields.

    Example:
        >>> extractor = OrderExtractor()
        >>> record = extractor.extract(card, selectors_for(FormatTag.YOUR_ORDERS))
        >>> record.total
        '$29.99'
    """

    scalar_chains: dict[str, Sequence[Strategy[str]]] = {
        "identifier": IDENTIFIER_CHAIN,
        "ordered_on": DATE_CHAIN,
        "total": TOTAL_CHAIN,
        "status": STATUS_CHAIN,
    }
    line_item_chain: Sequence[Strategy[list[LineItem]]] = LINE_ITEM_CHAIN

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or CONFIG

    def extract(self, container: Tag, schema: SelectorSchema) -> OrderRecord:
        """Extract one record from ``container`` using ``schema``.

        Raises:
            ExtractionError: if ``container`` is not a document element
        """
        if not is_element(container):
            raise ExtractionError(f"expected an element, got {type(container).__name__}")

        ctx = FieldContext(
            container=container,
            schema=schema,
            text=flatten_text(container),
            max_line_items=self.config.max_line_items,
            status_snippet_length=self.config.status_snippet_length,
            identity_attributes=tuple(self.config.identity_attributes),
        )

        values: dict[str, str] = {}
        diagnostics: list[str] = []
        for field, chain in self.scalar_chains.items():
            value, source = run_chain(chain, ctx)
            if value is None:
                values[field] = UNKNOWN
                diagnostics.append(f"{field}: no strategy matched")
                logger.debug("extract.field_unknown", field=field, schema=schema.tag.value)
            else:
                values[field] = value
                logger.debug("extract.field", field=field, strategy=source)

        items, _ = run_chain(self.line_item_chain, ctx)

        return OrderRecord(
            **values,
            line_items=items or [],
            schema_tag=schema.tag,
            diagnostics=diagnostics,
            source_ref=container,
        )
