from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from order_archiver.cli import app

PAGE = """
<html><body>
<div class="order-card js-order-card">
  Order #112-8383531-6014102 Delivered on January 15, 2025 Total: $29.99
  Sample Product 1 $19.99 Sample Product 2 $10.00
</div>
</body></html>
"""

URL = "https://www.amazon.com/your-orders/orders"


def _page(tmp_path: Path) -> Path:
    path = tmp_path / "orders.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


def test_cli_scan_json(tmp_path: Path) -> None:
    runner = CliRunner()
    args = ["scan", str(_page(tmp_path)), "--url", URL, "--json", "--log-level", "WARNING"]
    result = runner.invoke(app, args, catch_exceptions=False)
    assert result.exit_code == 0

    records = json.loads(result.output)
    assert len(records) == 1
    assert records[0]["identifier"] == "112-8383531-6014102"
    assert records[0]["ordered_on"] == "2025-01-15"
    assert records[0]["schema_tag"] == "your-orders"
    assert records[0]["has_trusted_identifier"] is True
    assert len(records[0]["line_items"]) == 2
    assert records[0]["identity"].startswith("order-")


def test_cli_scan_table(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["scan", str(_page(tmp_path)), "--url", URL], catch_exceptions=False)
    assert result.exit_code == 0
    assert "your-orders" in result.output
    assert "1 orders" in result.output


def test_cli_scan_no_orders(tmp_path: Path) -> None:
    path = tmp_path / "empty.html"
    path.write_text("<html><body><p>Nothing</p></body></html>", encoding="utf-8")
    result = CliRunner().invoke(app, ["scan", str(path)], catch_exceptions=False)
    assert result.exit_code == 0
    assert "No orders found" in result.output


def test_cli_scan_missing_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["scan", str(tmp_path / "nope.html")])
    assert result.exit_code == 1


def test_cli_invalid_log_level(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["scan", str(_page(tmp_path)), "--log-level", "LOUD"])
    assert result.exit_code == 2


def test_cli_detect_format() -> None:
    result = CliRunner().invoke(app, ["detect-format", "https://www.amazon.com/gp/css/order-history"])
    assert result.exit_code == 0
    assert "css" in result.output


ENV_NAMES = ("ORDER_ARCHIVER_MAX_LINE_ITEMS", "ORDER_ARCHIVER_LOG_LEVEL")


@pytest.fixture()
def dotenv_dir(tmp_path: Path, monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    # load_dotenv writes straight into os.environ
    for name in ENV_NAMES:
        os.environ.pop(name, None)


def test_cli_scan_reads_dotenv(dotenv_dir: Path) -> None:
    (dotenv_dir / ".env").write_text(
        "ORDER_ARCHIVER_MAX_LINE_ITEMS=1\nORDER_ARCHIVER_LOG_LEVEL=ERROR\n", encoding="utf-8"
    )
    page = _page(dotenv_dir)

    result = CliRunner().invoke(app, ["scan", str(page), "--url", URL, "--json"], catch_exceptions=False)
    assert result.exit_code == 0

    # No --log-level given: the .env level applies, so no INFO events interleave
    records = json.loads(result.output)
    assert len(records[0]["line_items"]) == 1
    assert records[0]["line_items"][0]["name"] == "Sample Product 1"


def test_cli_dotenv_invalid_log_level_falls_back(dotenv_dir: Path) -> None:
    (dotenv_dir / ".env").write_text("ORDER_ARCHIVER_LOG_LEVEL=LOUD\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["detect-format", "/your-orders"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "your-orders" in result.output
