"""quicksearch CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from quicksearch.cli.cache import cache_app
from quicksearch.cli.search import search_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("quicksearch")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"quicksearch {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="quicksearch",
    help=(
        "quicksearch: fuzzy search over a cached record set.\n\n"
        "  quicksearch search  Rank records from a JSON file against a query.\n"
        "  quicksearch cache   Inspect, clear, or rebuild the persistent cache."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log cache and search decisions."),
    ] = False,
) -> None:
    """quicksearch: fuzzy search over a cached record set."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True)],
        )


app.command("search")(search_cmd)
app.add_typer(cache_app, name="cache")


@app.command("version")
def version_cmd() -> None:
    """Show the installed quicksearch version."""
    typer.echo(f"quicksearch {_installed_version()}")


if __name__ == "__main__":
    app()
