from __future__ import annotations

from dataclasses import dataclass


class OrderArchiverError(Exception):
    """Base class for errors raised by the extraction engine."""


@dataclass
class SubscriptionError(OrderArchiverError):
    """Raised when the host change feed cannot be subscribed to.

    The engine reports this once and keeps working in scan-only mode.
    """

    reason: str
    feed: str | None = None

    def __str__(self) -> str:  # pragma: no cover - human readable
        if self.feed:
            return f"{self.reason} (feed={self.feed})"
        return self.reason


@dataclass
class DetachedNodeError(OrderArchiverError):
    """Raised when a candidate container left the observed tree before its
    identity could be computed.
    """

    tag_name: str | None = None

    def __str__(self) -> str:  # pragma: no cover - human readable
        return f"<{self.tag_name or '?'}> is no longer attached to the observed root"


@dataclass
class ExtractionError(OrderArchiverError):
    """Raised when extraction is handed something that is not a document element."""

    reason: str

    def __str__(self) -> str:  # pragma: no cover - human readable
        return self.reason
