"""Order Archiver - order record extraction and change tracking.

Finds order containers in order-history pages, extracts structured
records from them and follows them as the page re-renders, notifying
collaborators once per detection and once per removal.
"""

__version__ = "0.1.0"

__all__ = ["OrderTracker", "parse_document", "OrderRecord", "LineItem", "FormatTag", "ObservableDocument"]


# Lazy imports keep `import order_archiver` free of bs4/pydantic setup cost
def __getattr__(name: str):
    if name in ("OrderTracker", "parse_document"):
        from order_archiver import engine
        return getattr(engine, name)
    if name in ("OrderRecord", "LineItem"):
        from order_archiver import extraction
        return getattr(extraction, name)
    if name == "FormatTag":
        from order_archiver.formats import FormatTag
        return FormatTag
    if name == "ObservableDocument":
        from order_archiver.feeds import ObservableDocument
        return ObservableDocument
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
