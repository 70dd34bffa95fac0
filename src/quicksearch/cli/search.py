"""quicksearch search: rank a record file against one query."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from quicksearch.cli.common import build_engine, console, load_cli_config
from quicksearch.cli.errors import err_source_unavailable
from quicksearch.errors import SourceUnavailable
from quicksearch.search.matcher import rank_matches
from quicksearch.search.query import normalize_query


def search_cmd(
    query: Annotated[
        str,
        typer.Argument(help="Search text (quote multi-word queries)."),
    ],
    source: Annotated[
        Path,
        typer.Option("--source", "-s", help="JSON file with the records to search."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Cache database (default: cache.path from config)."),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Maximum results to show."),
    ] = None,
    scores: Annotated[
        bool,
        typer.Option("--scores", help="Show the relevance score of each result."),
    ] = False,
) -> None:
    """Search the records in SOURCE and print ranked results."""
    cfg = load_cli_config(limit)
    engine = build_engine(cfg, source, db)

    try:
        session = engine.open_session()
    except SourceUnavailable as exc:
        console.print(err_source_unavailable(str(source), str(exc)))
        raise typer.Exit(1) from exc

    try:
        results = session.search(query)
        shown_query = escape(session.current_query)
    finally:
        engine.close_session(session)

    if not results:
        console.print(f"[yellow]No matches for[/] '{shown_query}'.")
        raise typer.Exit(0)

    table = Table(title=f"Results for '{shown_query}'", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Status")
    if scores:
        table.add_column("Score", justify="right")

    key = normalize_query(session.current_query)
    shown_scores: dict[str, int] = {}
    if scores and key:
        matches = rank_matches(session.corpus.records, key, cfg.search.max_display_items, cfg.pins)
        shown_scores = {m.record.id: m.score for m in matches}
    for index, record in enumerate(results, start=1):
        status = "[green]active[/]" if record.is_enabled else "[dim]inactive[/]"
        row = [str(index), escape(record.name), escape(record.version or ""), status]
        if scores:
            row.append(str(shown_scores.get(record.id, "-")))
        table.add_row(*row)

    console.print(table)
    console.print(f"[dim]{engine.cache_status_text()}[/]")
