"""Change observer: a thin adapter between a host change feed and the engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

import structlog
from bs4 import Tag

from order_archiver.dom import is_element
from order_archiver.exceptions import SubscriptionError
from order_archiver.feeds import ChangeFeed, MutationRecord, Subscription

logger = structlog.get_logger(__name__)


@dataclass
class ChangeBatch:
    """Element nodes inserted and removed in one host notification."""

    added: list[Tag] = field(default_factory=list)
    removed: list[Tag] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: Iterable[MutationRecord]) -> "ChangeBatch":
        """Collect element nodes only, keeping first-seen order, no repeats."""
        batch = cls()
        seen_added: set[int] = set()
        seen_removed: set[int] = set()
        for record in records:
            for node in record.added_nodes:
                if is_element(node) and id(node) not in seen_added:
                    seen_added.add(id(node))
                    batch.added.append(node)
            for node in record.removed_nodes:
                if is_element(node) and id(node) not in seen_removed:
                    seen_removed.add(id(node))
                    batch.removed.append(node)
        return batch

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)


class ChangeObserver:
    """Subscribes once to a feed and forwards filtered batches.

    Does no scheduling of its own: each host delivery becomes exactly one
    ``on_batch`` call, in delivery order.
    """

    def __init__(self, feed: ChangeFeed) -> None:
        self.feed = feed
        self._subscription: Subscription | None = None
        self._on_batch: Callable[[ChangeBatch], None] | None = None
        self._observing = False

    @property
    def is_observing(self) -> bool:
        return self._observing

    def observe(self, root: Tag, on_batch: Callable[[ChangeBatch], None]) -> None:
        """Start forwarding batches for the subtree under ``root``.

        A no-op when already observing.

        Raises:
            SubscriptionError: if the feed rejects the subscription; the
                observer is left not observing
        """
        if self._observing:
            return
        self._on_batch = on_batch
        try:
            self._subscription = self.feed.subscribe(root, self._deliver)
        except SubscriptionError:
            self._on_batch = None
            raise
        except Exception as e:
            self._on_batch = None
            raise SubscriptionError(str(e) or type(e).__name__, feed=type(self.feed).__name__) from e
        self._observing = True
        logger.debug("observer.started", feed=type(self.feed).__name__)

    def stop(self) -> None:
        """Unsubscribe. Safe to call repeatedly, or from inside ``on_batch``."""
        if not self._observing and self._subscription is None:
            return
        self._observing = False
        self._on_batch = None
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                subscription.disconnect()
            except Exception:
                logger.warning("observer.disconnect_failed", exc_info=True)
        logger.debug("observer.stopped")

    def _deliver(self, records: list[MutationRecord]) -> None:
        on_batch = self._on_batch
        if not self._observing or on_batch is None:
            return
        batch = ChangeBatch.from_records(records)
        if not batch:
            return
        try:
            on_batch(batch)
        except Exception:
            logger.exception("observer.batch_failed", added=len(batch.added), removed=len(batch.removed))
