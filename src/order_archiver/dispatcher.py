"""Lifecycle dispatcher: the authoritative table of known order identities.

Each identity moves ``Unseen -> Known -> Unseen``. The dispatcher
guarantees at most one "detected" notification per detection episode and
at most one "removed" notification per removal, always after a detection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Sequence

import structlog
from bs4 import Tag

from order_archiver.config import DEFAULT_IDENTITY_ATTRIBUTES
from order_archiver.dom import is_attached, matching_self_or_descendants, safe_matches
from order_archiver.exceptions import DetachedNodeError
from order_archiver.extraction import OrderExtractor, OrderRecord
from order_archiver.identity import attribute_identity, identity_of
from order_archiver.observer import ChangeBatch
from order_archiver.selectors import SelectorSchema

logger = structlog.get_logger(__name__)

DetectedCallback = Callable[[OrderRecord, Tag], None]
RemovedCallback = Callable[[str, Tag], None]


@dataclass
class KnownOrder:
    """A Known identity and the container currently representing it."""

    identity: str
    record: OrderRecord
    node: Tag


class LifecycleDispatcher:
    """Deduplicates candidate containers and notifies collaborators.

    The identity table belongs to this instance alone; separate engines
    never share state.
    """

    def __init__(
        self,
        schema: SelectorSchema,
        root: Tag,
        extractor: OrderExtractor | None = None,
        on_detected: DetectedCallback | None = None,
        on_removed: RemovedCallback | None = None,
        identity_attributes: Sequence[str] = DEFAULT_IDENTITY_ATTRIBUTES,
    ) -> None:
        self.schema = schema
        self.root = root
        self.extractor = extractor or OrderExtractor()
        self.on_detected = on_detected
        self.on_removed = on_removed
        self.identity_attributes = tuple(identity_attributes)
        self._known: dict[str, KnownOrder] = {}
        self._identity_by_node: dict[int, str] = {}
        # Bumped by clear(); a batch started under an older epoch stops notifying
        self._epoch = 0

    # ----------------------------------------------------------------- queries

    def __len__(self) -> int:
        return len(self._known)

    def __contains__(self, identity: object) -> bool:
        return identity in self._known

    def known_identities(self) -> list[str]:
        return list(self._known)

    def known_order(self, identity: str) -> KnownOrder | None:
        return self._known.get(identity)

    # -------------------------------------------------------------- candidates

    def candidates(self, nodes: Iterable[Tag]) -> Iterator[Tag]:
        """Outermost containers in ``nodes`` and their subtrees, each once."""
        seen: set[int] = set()
        selector = self.schema.container
        for node in nodes:
            for container in matching_self_or_descendants(node, selector):
                if id(container) in seen:
                    continue
                seen.add(id(container))
                if self._has_container_ancestor(container, selector):
                    continue
                yield container

    def _has_container_ancestor(self, container: Tag, selector: str) -> bool:
        for parent in container.parents:
            if parent is self.root:
                return False
            if safe_matches(parent, selector):
                return True
        return False

    def _identity_for(self, container: Tag) -> str:
        remembered = self._identity_by_node.get(id(container))
        if remembered is not None:
            known = self._known.get(remembered)
            if known is not None and known.node is container:
                return remembered
        return identity_of(container, self.root, self.identity_attributes)

    # -------------------------------------------------------------- transitions

    def dispatch(self, batch: ChangeBatch) -> list[OrderRecord]:
        """Handle one observer batch: insertions first, then removals."""
        detected = self.admit(batch.added)
        self.release(batch.removed)
        return detected

    def admit(self, nodes: Iterable[Tag], include_known: bool = False) -> list[OrderRecord]:
        """Process an "added" group.

        Returns the newly detected records, or with ``include_known`` a
        freshly extracted record for every candidate (known ones included).
        """
        epoch = self._epoch
        records: list[OrderRecord] = []
        for container in self.candidates(nodes):
            if self._epoch != epoch:
                break
            try:
                record = self._admit_one(container, include_known)
            except DetachedNodeError:
                logger.debug("dispatcher.candidate_vanished", tag=container.name)
                continue
            except Exception:
                logger.exception("dispatcher.candidate_failed", tag=container.name)
                continue
            if record is not None:
                records.append(record)
        return records

    def _admit_one(self, container: Tag, include_known: bool) -> OrderRecord | None:
        if not is_attached(container, self.root):
            raise DetachedNodeError(tag_name=container.name)
        identity = self._identity_for(container)
        known = self._known.get(identity)

        if known is not None:
            if known.node is not container and not is_attached(known.node, self.root):
                # Re-rendered: same logical order on a new node
                self._identity_by_node.pop(id(known.node), None)
                known.node = container
                self._identity_by_node[id(container)] = identity
                logger.debug("dispatcher.rebound", identity=identity)
            if not include_known:
                return None
            record = self.extractor.extract(container, self.schema)
            record.identity = identity
            return record

        record = self.extractor.extract(container, self.schema)
        record.identity = identity
        record.source_ref = container
        self._known[identity] = KnownOrder(identity=identity, record=record, node=container)
        self._identity_by_node[id(container)] = identity
        logger.info("dispatcher.detected", identity=identity, identifier=record.identifier)
        self._notify(self.on_detected, record, container)
        return record

    def release(self, nodes: Iterable[Tag]) -> list[str]:
        """Process a "removed" group. Returns the identities released."""
        epoch = self._epoch
        released: list[str] = []
        for container in self.candidates(nodes):
            if self._epoch != epoch:
                break
            try:
                identity = self._release_one(container)
            except Exception:
                logger.exception("dispatcher.candidate_failed", tag=container.name)
                continue
            if identity is not None:
                released.append(identity)
        return released

    def _release_one(self, container: Tag) -> str | None:
        if is_attached(container, self.root):
            # Moved within the tree rather than removed
            return None
        identity = self._identity_by_node.get(id(container)) or attribute_identity(
            container, self.identity_attributes
        )
        if identity is None:
            return None
        known = self._known.get(identity)
        if known is None:
            return None
        if known.node is not container and is_attached(known.node, self.root):
            # Another node still represents this order
            return None
        del self._known[identity]
        self._identity_by_node.pop(id(known.node), None)
        self._identity_by_node.pop(id(container), None)
        logger.info("dispatcher.removed", identity=identity)
        self._notify(self.on_removed, identity, container)
        return identity

    def _notify(self, callback: Callable | None, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("dispatcher.callback_failed", callback=getattr(callback, "__name__", repr(callback)))

    # ------------------------------------------------------------ bookkeeping

    def reset(self) -> None:
        """Forget every identity without emitting removal notifications."""
        self._known.clear()
        self._identity_by_node.clear()

    def clear(self) -> None:
        """Forget every identity and silence any batch still in progress."""
        self.reset()
        self._epoch += 1
