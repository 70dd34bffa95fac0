"""quicksearch cache commands.

Commands:
  quicksearch cache status    show freshness of the stored corpus
  quicksearch cache info      detailed diagnostics of the cache database
  quicksearch cache clear     remove the stored corpus
  quicksearch cache rebuild   rescan the source and store a fresh corpus
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from quicksearch.cli.common import build_engine, console, load_cli_config, open_cache
from quicksearch.cli.errors import err_no_cache, err_rebuild_failed
from quicksearch.corpus.sources import JsonFileSource
from quicksearch.errors import CacheUnavailable

cache_app = typer.Typer(
    name="cache",
    help="Inspect and manage the persistent corpus cache.",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Cache database (default: cache.path from config)."),
]


def _fmt_age(age_ms: float | None) -> str:
    if age_ms is None:
        return "-"
    return f"{round(age_ms / 60_000)}m"


def _fmt_timestamp(timestamp_ms: float | None) -> str:
    if timestamp_ms is None:
        return "-"
    return datetime.fromtimestamp(timestamp_ms / 1000.0).isoformat(timespec="seconds")


@cache_app.command("status")
def cache_status_cmd(
    source: Annotated[
        Path | None,
        typer.Option("--source", "-s", help="Record file to check the cached count against."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Show whether the stored corpus is fresh, stale, or missing."""
    cfg = load_cli_config()
    cache = open_cache(cfg, db)
    cached = cache.load()
    if cached is None:
        console.print(err_no_cache(str(db or cfg.cache.path)))
        raise typer.Exit(0)

    live_count = JsonFileSource(source).current_record_count() if source else None
    valid = cache.is_valid(cached.meta, live_count)
    age = _fmt_age(cache.now_ms() - cached.meta.timestamp_ms)
    label = "[green]fresh[/]" if valid else "[yellow]stale[/]"

    lines = [
        f"Status:   {label}",
        f"Records:  [bold]{cached.meta.record_count}[/]",
        f"Age:      {age}",
    ]
    if live_count is not None:
        lines.append(f"Live:     {live_count}")
    console.print(Panel("\n".join(lines), title="[bold]Corpus Cache[/]", expand=False))


@cache_app.command("info")
def cache_info_cmd(db: _DbOption = None) -> None:
    """Print detailed diagnostics about the cache database."""
    cfg = load_cli_config()
    info = open_cache(cfg, db).info()

    table = Table(title="Cache Info", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("exists", "yes" if info.exists else "no")
    if info.exists:
        table.add_row("records", str(info.record_count))
        table.add_row("size", f"{info.size_bytes / 1024:.1f} KB")
        table.add_row("meta size", f"{info.meta_size_bytes} B")
        table.add_row("written", _fmt_timestamp(info.timestamp_ms))
        table.add_row("age", _fmt_age(info.age_ms))
        table.add_row("schema", info.schema_version or "-")
        table.add_row("valid", "[green]yes[/]" if info.is_valid else "[yellow]no[/]")
    else:
        table.add_row("reason", info.error or "-")
    console.print(table)


@cache_app.command("clear")
def cache_clear_cmd(db: _DbOption = None) -> None:
    """Remove the stored corpus. The next search rescans the source."""
    cfg = load_cli_config()
    open_cache(cfg, db).clear()
    console.print("[green]✓[/] Cache cleared.")


@cache_app.command("rebuild")
def cache_rebuild_cmd(
    source: Annotated[
        Path,
        typer.Option("--source", "-s", help="JSON file with the records to scan."),
    ],
    db: _DbOption = None,
) -> None:
    """Clear the cache, rescan SOURCE, and store a fresh corpus."""
    cfg = load_cli_config()
    engine = build_engine(cfg, source, db)
    try:
        count = asyncio.run(engine.rebuild_cache())
    except CacheUnavailable as exc:
        console.print(err_rebuild_failed(str(source), str(exc)))
        raise typer.Exit(1) from exc
    console.print(f"[green]✓[/] Cache rebuilt: {count} records.")
