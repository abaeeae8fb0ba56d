"""CLI interface for Order Archiver."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import TrackerConfig

app = typer.Typer(
    name="order-archiver",
    help="Extract order records from saved order-history pages",
    add_completion=False,
)
console = Console()


def _setup(log_level: Optional[str]) -> TrackerConfig:
    """Load .env from the working directory, then build config and logging."""
    from dotenv import find_dotenv, load_dotenv

    from .logging import LOG_LEVELS, configure_logging

    load_dotenv(find_dotenv(usecwd=True))
    config = TrackerConfig()
    level = (log_level or config.log_level).upper()
    if level not in LOG_LEVELS:
        console.print(f"[red]Invalid log level. Choose from: {list(LOG_LEVELS)}[/red]")
        raise typer.Exit(2)
    configure_logging(level)
    return config


@app.command()
def scan(
    path: Path = typer.Argument(..., help="Saved order-history HTML page"),
    url: str = typer.Option("", "--url", "-u", help="Address the page was saved from"),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: ORDER_ARCHIVER_LOG_LEVEL)"
    ),
):
    """Extract every order found in a saved page."""
    config = _setup(log_level)

    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)

    from .engine import parse_document

    records = parse_document(path.read_text(encoding="utf-8", errors="replace"), url, config=config)

    if as_json:
        typer.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return

    if not records:
        console.print("[yellow]No orders found[/yellow]")
        return

    table = Table(title=f"Orders in {path.name}")
    table.add_column("Order")
    table.add_column("Date")
    table.add_column("Total")
    table.add_column("Status")
    table.add_column("Items", justify="right")
    table.add_column("Identity", style="dim")

    for record in records:
        order = record.identifier if record.has_trusted_identifier else f"[yellow]{record.identifier}[/yellow]"
        table.add_row(
            order,
            record.ordered_on,
            record.total,
            record.status,
            str(len(record.line_items)),
            record.identity or "",
        )

    console.print(table)
    console.print(f"[dim]Format: {records[0].schema_tag.value}, {len(records)} orders[/dim]")


@app.command()
def detect_format(
    context: str = typer.Argument(..., help="Page address or path"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: ORDER_ARCHIVER_LOG_LEVEL)"
    ),
):
    """Show which page format an address maps to."""
    config = _setup(log_level)

    from .formats import detect_format as detect
    from .selectors import selectors_for

    tag = detect(context)
    schema = selectors_for(tag)

    table = Table(title="Page Format")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Format", tag.value)
    table.add_row("Container selector", schema.container)
    table.add_row("Sniff fallback", "on" if config.sniff_markup else "off")
    console.print(table)


if __name__ == "__main__":
    app()
