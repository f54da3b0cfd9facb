"""Typer-based CLI for DataLocker with Pydantic v2 configuration."""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from DataLocker.config import DataLockerConfig, load_config
from DataLocker.errors import MalformedURLError, SourceStatus, UrlListError
from DataLocker.history import HistoryLinker
from DataLocker.logging_setup import configure_logging
from DataLocker.paths import SourcePaths
from DataLocker.runner import Orchestrator
from DataLocker.urllist import read_url_list

console = Console()
app = typer.Typer(help="DataLocker: deduplicated, versioned URL snapshots")

EXIT_CONFIG_ERROR = 1
EXIT_SOURCE_FAILURES = 2

_STATUS_STYLES = {
    SourceStatus.STORED: "green",
    SourceStatus.NOT_MODIFIED: "cyan",
    SourceStatus.REMOTE_ERROR: "yellow",
    SourceStatus.LOCKED: "magenta",
    SourceStatus.MALFORMED: "red",
    SourceStatus.FAILED: "red",
}


def _load(config: Optional[str], root: Optional[Path]) -> DataLockerConfig:
    overrides: Dict[str, Any] = {}
    if root is not None:
        overrides["root"] = str(root)
    try:
        return load_config(path=config, cli_overrides=overrides)
    except ValueError as e:
        console.print(f"[red]✗ Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)


@app.command()
def run(
    root: Optional[Path] = typer.Argument(None, help="Storage root (default: /tmp/datalocker)"),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="DATALOCKER_CONFIG",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Fetch every URL in <root>/.urllist and record new content."""
    cfg = _load(config, root)
    configure_logging(cfg.logging, cfg.root, verbose=verbose)

    try:
        urls = read_url_list(cfg.url_list_path)
    except UrlListError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    with Orchestrator.from_config(cfg) as orchestrator:
        result = orchestrator.run(urls)

    table = Table(title="Sources")
    table.add_column("URL", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for outcome in result.outcomes:
        style = _STATUS_STYLES[outcome.status]
        table.add_row(
            escape(outcome.url),
            f"[{style}]{outcome.status.value}[/{style}]",
            escape(outcome.detail or ""),
        )
    console.print(table)

    counts = result.counts()
    console.print(
        Panel(
            "\n".join(f"{status.value}: {counts[status]}" for status in SourceStatus),
            title=f"Run Summary ({result.total} sources)",
        )
    )
    if result.has_failures:
        raise typer.Exit(code=EXIT_SOURCE_FAILURES)


@app.command()
def history(
    url: str = typer.Argument(..., help="Source URL"),
    root: Optional[Path] = typer.Argument(None, help="Storage root"),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="DATALOCKER_CONFIG",
    ),
) -> None:
    """List the dated history references recorded for URL."""
    cfg = _load(config, root)
    try:
        entries = HistoryLinker(SourcePaths(cfg.root)).entries(url)
    except MalformedURLError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    if not entries:
        console.print(f"[yellow]No history for {escape(url)}[/yellow]")
        return

    table = Table(title=f"History: {escape(url)}")
    table.add_column("Fetched (UTC)", style="cyan")
    table.add_column("Bytes", justify="right")
    table.add_column("Path", style="green")
    for entry in entries:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            str(entry.path.stat().st_size),
            escape(str(entry.path)),
        )
    console.print(table)


@app.command()
def print_config(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="DATALOCKER_CONFIG",
    ),
    raw: bool = typer.Option(False, "--raw", help="Raw JSON"),
) -> None:
    """Print merged effective config."""
    cfg = _load(config, None)
    data = json.dumps(cfg.model_dump(mode="json"), indent=2)
    if raw:
        typer.echo(data)
    else:
        console.print(Panel(data, title="DataLocker Config", expand=False))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
