"""Stable identities for order containers.

Rules:
- A stable attribute carried by the container itself (``data-order-id`` and
  friends, in priority order) is used verbatim.
- Otherwise the identity is a fingerprint of the container's flattened text
  and its structural path: ``tag:index`` steps from the container up to,
  but excluding, the observation root, joined with "/".

Fingerprints are truncated SHA-256 digests of the canonical parts joined
with "\n". They only need to be deterministic; two containers with the same
text at the same structural position get the same identity. That collision
is an accepted limitation: such containers are indistinguishable to the
engine and are treated as one logical order.
"""
from __future__ import annotations

import hashlib
from typing import Iterable, Sequence

from bs4 import Tag

from order_archiver.config import DEFAULT_IDENTITY_ATTRIBUTES
from order_archiver.dom import element_index, flatten_text, is_attached
from order_archiver.exceptions import DetachedNodeError

IDENTITY_PREFIX = "order-"
_DIGEST_LENGTH = 16


def _sha256(parts: Iterable[str]) -> str:
    canonical = "\n".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint(text: str, path: str) -> str:
    return IDENTITY_PREFIX + _sha256(["order", text, path])[:_DIGEST_LENGTH]


def attribute_identity(
    container: Tag, attributes: Sequence[str] = DEFAULT_IDENTITY_ATTRIBUTES
) -> str | None:
    """First non-empty identity attribute on ``container``, verbatim."""
    for attribute in attributes:
        value = container.get(attribute)
        if isinstance(value, list):
            value = " ".join(value)
        if isinstance(value, str) and value.strip():
            return value
    return None


def structural_path(container: Tag, root: Tag | None = None) -> str:
    """``tag:index`` steps from ``container`` upward, stopping below ``root``."""
    steps: list[str] = []
    node: Tag | None = container
    while node is not None and node is not root and node.name != "[document]":
        steps.append(f"{node.name}:{element_index(node)}")
        node = node.parent
    return "/".join(steps)


def identity_of(
    container: Tag,
    root: Tag | None = None,
    attributes: Sequence[str] = DEFAULT_IDENTITY_ATTRIBUTES,
) -> str:
    """Identity for ``container``.

    Raises:
        DetachedNodeError: if ``root`` is given and ``container`` is no
            longer beneath it, so its position cannot be trusted
    """
    stable = attribute_identity(container, attributes)
    if stable is not None:
        return stable
    if root is not None and not is_attached(container, root):
        raise DetachedNodeError(tag_name=getattr(container, "name", None))
    return fingerprint(flatten_text(container), structural_path(container, root))
