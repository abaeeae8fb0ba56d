from __future__ import annotations

import os
from dataclasses import dataclass, field


def _i(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, default))
    except Exception:
        return default
    return value if value > 0 else default


def _b(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return default


def _csv(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    values = tuple(part.strip() for part in raw.split(",") if part.strip())
    return values or default


def _level(name: str, default: str) -> str:
    raw = (os.getenv(name) or default).strip().upper()
    return raw if raw in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else default


DEFAULT_IDENTITY_ATTRIBUTES = ("data-order-id", "data-order-number", "data-order-reference")


@dataclass(frozen=True)
class TrackerConfig:
    """Tracker settings. Defaults are read from the environment per instance,
    so a `.env` loaded before construction takes effect.
    """

    # Upper bound on line items per record
    max_line_items: int = field(default_factory=lambda: _i("ORDER_ARCHIVER_MAX_LINE_ITEMS", 10))
    # Raw status snippets longer than this are truncated
    status_snippet_length: int = field(
        default_factory=lambda: _i("ORDER_ARCHIVER_STATUS_SNIPPET_LENGTH", 80)
    )

    # Sniff markup when the navigation context does not name a format
    sniff_markup: bool = field(default_factory=lambda: _b("ORDER_ARCHIVER_SNIFF_MARKUP", True))

    # Container attributes trusted as identity, in priority order
    identity_attributes: tuple[str, ...] = field(
        default_factory=lambda: _csv("ORDER_ARCHIVER_IDENTITY_ATTRIBUTES", DEFAULT_IDENTITY_ATTRIBUTES)
    )

    log_level: str = field(default_factory=lambda: _level("ORDER_ARCHIVER_LOG_LEVEL", "INFO"))


# Snapshot taken at import; callers that load a .env later build their own
CONFIG = TrackerConfig()
