"""Order extraction module.

Turns one order container into an ``OrderRecord`` through explicit,
ordered strategy chains: structural selector lookups first, then regular
expressions over the container's flattened text.

Key Components:
- OrderExtractor: runs the chains for every field
- OrderRecord / LineItem: typed extraction results
- run_chain / Strategy: the chain runner and its unit of heuristic

Example:
    >>> from order_archiver.extraction import OrderExtractor
    >>> from order_archiver.selectors import selectors_for
    >>>
    >>> record = OrderExtractor().extract(card, selectors_for("your-orders"))
    >>> record.identifier, record.has_trusted_identifier
    ('112-8383531-6014102', True)
"""
from .models import (
    UNKNOWN,
    LineItem,
    OrderRecord,
    is_well_formed_identifier,
)
from .strategies import (
    DATE_CHAIN,
    IDENTIFIER_CHAIN,
    LINE_ITEM_CHAIN,
    LINE_ITEM_DENYLIST,
    STATUS_CHAIN,
    STATUS_VOCABULARY,
    TOTAL_CHAIN,
    FieldContext,
    Strategy,
    run_chain,
)
from .extractor import OrderExtractor

__all__ = [
    # Models
    "UNKNOWN",
    "LineItem",
    "OrderRecord",
    "is_well_formed_identifier",
    # Strategy chains
    "FieldContext",
    "Strategy",
    "run_chain",
    "IDENTIFIER_CHAIN",
    "DATE_CHAIN",
    "TOTAL_CHAIN",
    "STATUS_CHAIN",
    "LINE_ITEM_CHAIN",
    "LINE_ITEM_DENYLIST",
    "STATUS_VOCABULARY",
    # Extractor
    "OrderExtractor",
]
