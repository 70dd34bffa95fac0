"""Shared wiring for CLI commands: config, cache and engine construction."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from quicksearch.cache.persistent import PersistentCache
from quicksearch.cli.errors import err_config
from quicksearch.config import ConfigError, QuickSearchConfig, load_config
from quicksearch.corpus.sources import JsonFileSource
from quicksearch.engine import QuickSearchEngine

console = Console()


def load_cli_config(limit: int | None = None) -> QuickSearchConfig:
    """Load layered config and apply CLI flag overrides (highest priority)."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if limit is not None:
        cfg.search.max_display_items = limit
    return cfg


def open_cache(cfg: QuickSearchConfig, db: Path | None) -> PersistentCache:
    path = db if db is not None else Path(cfg.cache.path)
    return PersistentCache(
        path,
        schema_version=cfg.cache.schema_version,
        max_age_ms=cfg.cache.max_age_ms,
    )


def build_engine(cfg: QuickSearchConfig, source: Path, db: Path | None) -> QuickSearchEngine:
    return QuickSearchEngine(
        JsonFileSource(source),
        cache=open_cache(cfg, db),
        config=cfg,
    )
