"""Order tracker: the collaborator-facing facade.

Wires the format detector, selector registry, extractor, observer and
lifecycle dispatcher together for one observation root.

Example:
    >>> doc = ObservableDocument(html)
    >>> tracker = OrderTracker(doc.root, url, feed=doc, on_detected=save)
    >>> tracker.scan_all()
    >>> tracker.start()
"""
from __future__ import annotations

import structlog
from bs4 import BeautifulSoup, Tag

from order_archiver.config import CONFIG, TrackerConfig
from order_archiver.dispatcher import DetectedCallback, LifecycleDispatcher, RemovedCallback
from order_archiver.exceptions import SubscriptionError
from order_archiver.extraction import OrderExtractor, OrderRecord
from order_archiver.feeds import ChangeFeed
from order_archiver.formats import FormatTag, detect_format, sniff_format
from order_archiver.observer import ChangeBatch, ChangeObserver
from order_archiver.selectors import SelectorSchema, selectors_for

logger = structlog.get_logger(__name__)


class OrderTracker:
    """Detects order containers under ``root`` and tracks their lifecycle.

    Args:
        root: Observation root (usually ``<body>``)
        navigation_context: Page address used to choose the format
        feed: Host change feed; without one the tracker is scan-only
        on_detected: Called as ``(record, container)`` once per detection
        on_removed: Called as ``(identity, container)`` once per removal
        config: Overrides the environment-derived ``CONFIG``
    """

    def __init__(
        self,
        root: Tag,
        navigation_context: str = "",
        *,
        feed: ChangeFeed | None = None,
        on_detected: DetectedCallback | None = None,
        on_removed: RemovedCallback | None = None,
        config: TrackerConfig | None = None,
    ) -> None:
        self.root = root
        self.navigation_context = navigation_context or ""
        self.config = config or CONFIG
        self.feed = feed

        tag = detect_format(self.navigation_context)
        if tag is FormatTag.DEFAULT and self.config.sniff_markup:
            tag = sniff_format(root)
        self._format_tag = tag
        self._schema = selectors_for(tag)

        self._observer: ChangeObserver | None = ChangeObserver(feed) if feed is not None else None
        self._dispatcher = LifecycleDispatcher(
            self._schema,
            root,
            extractor=OrderExtractor(self.config),
            on_detected=on_detected,
            on_removed=on_removed,
            identity_attributes=self.config.identity_attributes,
        )
        self._subscription_reported = False
        logger.debug("tracker.created", format=tag.value, context=self.navigation_context)

    @property
    def format_tag(self) -> FormatTag:
        return self._format_tag

    @property
    def schema(self) -> SelectorSchema:
        return self._schema

    # ------------------------------------------------------------------ live

    def start(self) -> bool:
        """Begin live tracking. Returns False when the feed is unavailable."""
        if self._observer is None:
            self._report_subscription_failure("no change feed supplied")
            return False
        try:
            self._observer.observe(self.root, self._on_batch)
        except SubscriptionError as e:
            self._report_subscription_failure(str(e))
            return False
        return True

    def stop(self) -> None:
        """Stop tracking and forget every known identity. Idempotent."""
        if self._observer is not None:
            self._observer.stop()
        self._dispatcher.clear()

    def is_observing(self) -> bool:
        return self._observer is not None and self._observer.is_observing

    def _on_batch(self, batch: ChangeBatch) -> None:
        detected = self._dispatcher.dispatch(batch)
        logger.debug(
            "tracker.batch",
            added=len(batch.added),
            removed=len(batch.removed),
            detected=len(detected),
        )

    def _report_subscription_failure(self, reason: str) -> None:
        if self._subscription_reported:
            return
        self._subscription_reported = True
        logger.warning("tracker.subscription_failed", reason=reason)

    # ------------------------------------------------------------------ scan

    def scan_all(self) -> list[OrderRecord]:
        """Extract every container currently in the tree.

        Notifies only for identities not already known.
        """
        records = self._dispatcher.admit([self.root], include_known=True)
        logger.info("tracker.scanned", records=len(records), known=len(self._dispatcher))
        return records

    def known_count(self) -> int:
        return len(self._dispatcher)

    def reset_known_identities(self) -> None:
        """Forget known identities without emitting removal notifications."""
        self._dispatcher.reset()


def parse_document(
    markup: str,
    navigation_context: str = "",
    parser: str = "html.parser",
    config: TrackerConfig | None = None,
) -> list[OrderRecord]:
    """One-shot extraction of every order in a saved page."""
    soup = BeautifulSoup(markup, parser)
    tracker = OrderTracker(soup.body or soup, navigation_context, config=config)
    return tracker.scan_all()
