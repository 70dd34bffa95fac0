"""quicksearch rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from quicksearch.cli.errors import err_source_unavailable
    console.print(err_source_unavailable("plugins.json", str(exc)))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_source_unavailable(source: str, detail: str) -> str:
    """Record source cannot be scanned and no valid cache exists."""
    return (
        f"[red]Error:[/] Cannot read records from '{source}'.\n"
        f"  {detail}\n"
        "  Pass a JSON export with:  --source <file.json>"
    )


def err_rebuild_failed(source: str, detail: str) -> str:
    """Explicit cache rebuild requested but the source is unreadable."""
    return (
        f"[red]Error:[/] Cache rebuild failed for '{source}'.\n"
        f"  {detail}\n"
        "  The existing cache was cleared. Fix the source file, then run:\n"
        f"    quicksearch cache rebuild --source {source}"
    )


def err_no_cache(db_path: str) -> str:
    """No usable snapshot stored in the cache database."""
    return (
        f"[yellow]No cached corpus found at '{db_path}'.[/]\n"
        "  Run:  quicksearch cache rebuild --source <file.json>"
    )


def err_config(detail: str) -> str:
    """quicksearch.yaml or the global config holds an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix quicksearch.yaml (or ~/.quicksearch/config.yaml) and retry."
    )
