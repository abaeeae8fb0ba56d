"""Host document adapters that deliver change notifications.

The engine never polls. A host hands it a ``ChangeFeed``; subscribing
returns a ``Subscription`` and from then on the host delivers lists of
``MutationRecord``s (one list per batch) to the callback.

Two feeds ship with the package:
- ObservableDocument: owns a BeautifulSoup tree, records every insertion
  and removal made through it and delivers them as one batch per
  ``flush()``, the way a browser coalesces notifications.
- QueueChangeFeed: a channel. Batches are published onto an
  ``asyncio.Queue`` and a single consumer task drains them in order.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence, Union

import structlog
from bs4 import BeautifulSoup, PageElement, Tag

from order_archiver.dom import is_attached
from order_archiver.exceptions import SubscriptionError

logger = structlog.get_logger(__name__)

Markup = Union[str, PageElement]


@dataclass(frozen=True)
class MutationRecord:
    """One child-list change under ``target``."""

    target: Tag | None
    added_nodes: tuple[PageElement, ...] = ()
    removed_nodes: tuple[PageElement, ...] = ()


BatchCallback = Callable[[list[MutationRecord]], None]


class Subscription(Protocol):
    def disconnect(self) -> None: ...


class ChangeFeed(Protocol):
    def subscribe(self, root: Tag, callback: BatchCallback) -> Subscription: ...


# =============================================================================
# Synchronous document feed
# =============================================================================


@dataclass(eq=False)
class _DocumentSubscription:
    root: Tag
    callback: BatchCallback
    pending: list[MutationRecord] = field(default_factory=list)
    active: bool = True

    def disconnect(self) -> None:
        self.active = False
        self.pending = []


class ObservableDocument:
    """A BeautifulSoup tree whose child-list mutations can be observed.

    Mutations are queued per subscription (only when they happen beneath
    that subscription's root) and delivered by ``flush()``.
    """

    def __init__(self, markup: str | BeautifulSoup = "", parser: str = "html.parser") -> None:
        self._parser = parser
        self.soup = markup if isinstance(markup, BeautifulSoup) else BeautifulSoup(markup, parser)
        self._subscriptions: list[_DocumentSubscription] = []

    @property
    def root(self) -> Tag:
        """The ``<body>`` element when there is one, else the document."""
        return self.soup.body or self.soup

    @property
    def pending(self) -> int:
        return sum(len(s.pending) for s in self._subscriptions if s.active)

    def subscribe(self, root: Tag, callback: BatchCallback) -> Subscription:
        subscription = _DocumentSubscription(root=root, callback=callback)
        self._subscriptions.append(subscription)
        return subscription

    # ------------------------------------------------------------------ edits

    def _fragment(self, markup: Markup) -> list[PageElement]:
        if isinstance(markup, str):
            return list(BeautifulSoup(markup, self._parser).contents)
        return [markup]

    def _record(self, record: MutationRecord) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.active]
        for subscription in self._subscriptions:
            if record.target is not None and is_attached(record.target, subscription.root):
                subscription.pending.append(record)

    def append(self, parent: Tag, markup: Markup) -> list[PageElement]:
        """Append ``markup`` (an HTML string or a node) to ``parent``."""
        nodes = self._fragment(markup)
        for node in nodes:
            parent.append(node)
        self._record(MutationRecord(target=parent, added_nodes=tuple(nodes)))
        return nodes

    def remove(self, node: PageElement) -> PageElement:
        """Detach ``node`` from the tree."""
        parent = node.parent
        if parent is None:
            return node
        node.extract()
        self._record(MutationRecord(target=parent, removed_nodes=(node,)))
        return node

    def replace(self, old: PageElement, markup: Markup) -> list[PageElement]:
        """Swap ``old`` for ``markup`` at the same position (a re-render)."""
        parent = old.parent
        if parent is None:
            raise ValueError("cannot replace a detached node")
        position = parent.index(old)
        old.extract()
        nodes = self._fragment(markup)
        for offset, node in enumerate(nodes):
            parent.insert(position + offset, node)
        self._record(MutationRecord(target=parent, added_nodes=tuple(nodes), removed_nodes=(old,)))
        return nodes

    def flush(self) -> int:
        """Deliver every queued batch. Returns the number of batches delivered."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.active or not subscription.pending:
                continue
            batch, subscription.pending = subscription.pending, []
            subscription.callback(batch)
            delivered += 1
        return delivered


# =============================================================================
# Channel feed
# =============================================================================


class _TaskSubscription:
    def __init__(self, feed: "QueueChangeFeed", task: asyncio.Task) -> None:
        self._feed = feed
        self._task = task

    def disconnect(self) -> None:
        self._feed._release(self._task)


def _in_scope(record: MutationRecord, root: Tag) -> bool:
    return record.target is None or is_attached(record.target, root)


class QueueChangeFeed:
    """Batches travel on an ``asyncio.Queue`` to a single consumer task.

    The consumer processes each batch to completion before taking the next,
    so batches are handled strictly in publication order. Subscribing
    requires a running event loop.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[list[MutationRecord]] = asyncio.Queue(maxsize)
        self._consumer: asyncio.Task | None = None

    def publish(self, records: Sequence[MutationRecord]) -> None:
        self._queue.put_nowait(list(records))

    async def put(self, records: Sequence[MutationRecord]) -> None:
        await self._queue.put(list(records))

    async def join(self) -> None:
        """Wait until every published batch has been processed."""
        await self._queue.join()

    def subscribe(self, root: Tag, callback: BatchCallback) -> Subscription:
        if self._consumer is not None and not self._consumer.done():
            raise SubscriptionError("channel already has a consumer", feed=type(self).__name__)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SubscriptionError("no running event loop", feed=type(self).__name__) from e
        self._consumer = loop.create_task(self._drain(root, callback))
        return _TaskSubscription(self, self._consumer)

    def _release(self, task: asyncio.Task) -> None:
        """Detach ``task`` as the consumer and discard batches it will never see.

        The channel is free for a new consumer immediately, even while the
        cancelled task is still unwinding (or is the caller).
        """
        if not task.done():
            task.cancel()
        if self._consumer is not task:
            # A later consumer owns whatever is queued now
            return
        self._consumer = None
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug("feed.batches_dropped", count=dropped)

    async def _drain(self, root: Tag, callback: BatchCallback) -> None:
        while True:
            records = await self._queue.get()
            try:
                scoped = [r for r in records if _in_scope(r, root)]
                if scoped:
                    callback(scoped)
            except Exception:
                logger.exception("feed.batch_failed")
            finally:
                self._queue.task_done()
