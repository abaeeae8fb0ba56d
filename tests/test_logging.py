from __future__ import annotations

import json

import pytest
import structlog

from order_archiver.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    configure_logging("INFO")


def test_json_events_on_stderr_filtered_by_level(capsys) -> None:
    assert configure_logging("warning") == "WARNING"
    log = structlog.get_logger("order_archiver.test")

    log.info("tracker.scanned", records=1)
    log.warning("tracker.subscription_failed", reason="no change feed supplied")

    captured = capsys.readouterr()
    assert captured.out == ""
    lines = [line for line in captured.err.splitlines() if line.strip()]
    assert len(lines) == 1
    event = json.loads(lines[0])
    assert event["event"] == "tracker.subscription_failed"
    assert event["level"] == "warning"
    assert event["reason"] == "no change feed supplied"
    assert "timestamp" in event


def test_level_defaults_to_tracker_config(monkeypatch) -> None:
    monkeypatch.setenv("ORDER_ARCHIVER_LOG_LEVEL", "error")
    assert configure_logging() == "ERROR"


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError):
        configure_logging("LOUD")
