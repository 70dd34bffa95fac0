"""quicksearch configuration loader.

Priority (high → low):
  1. CLI flags              (applied by the caller, not here)
  2. Environment variables  (QUICKSEARCH_CACHE_PATH, QUICKSEARCH_CACHE_MAX_AGE_MS)
  3. Per-project quicksearch.yaml
  4. Global ~/.quicksearch/config.yaml
  5. Hardcoded defaults

Unknown keys are warned about and ignored; they are never merged into the
result. All YAML reads use yaml.safe_load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from quicksearch.search.matcher import DEFAULT_PINS, PinRule

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".quicksearch"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "quicksearch.yaml"

_KNOWN_SECTIONS: frozenset[str] = frozenset(["search", "cache", "pins"])
_KNOWN_PIN_KEYS: frozenset[str] = frozenset(["name", "query_contains", "bonus", "allow_fuzzy"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class SearchCfg:
    """Search-box behaviour (quicksearch.yaml: search:)."""

    debounce_delay_ms: int = 250
    max_display_items: int = 20
    max_query_length: int = 100


@dataclass
class CacheCfg:
    """Persistent corpus cache (quicksearch.yaml: cache:).

    Attributes:
        path: SQLite file holding the corpus snapshot.
        max_age_ms: Snapshots older than this are rebuilt.
        schema_version: Snapshots written under another value are ignored.
        integrity_check_delay_ms: Delay before the background spot check
            that runs after a session opens from cache.
    """

    path: str = ".quicksearch.db"
    max_age_ms: int = 3_600_000
    schema_version: str = "1.1"
    integrity_check_delay_ms: int = 100


@dataclass
class QuickSearchConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    search: SearchCfg = field(default_factory=SearchCfg)
    cache: CacheCfg = field(default_factory=CacheCfg)
    pins: list[PinRule] = field(default_factory=lambda: list(DEFAULT_PINS))


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(
    data: dict[str, Any], known: frozenset[str], source: Path, section: str = ""
) -> None:
    """Emit a UserWarning for unrecognised keys."""
    for key in data:
        if key not in known:
            where = f"{section}.{key}" if section else key
            warnings.warn(
                f"Unknown config key '{where}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _check_layer(data: Any, source: Path) -> dict[str, Any]:
    """Validate the shape of one YAML layer and warn about unknown keys."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{source}' must contain a mapping at top level.")

    _warn_unknown_keys(data, _KNOWN_SECTIONS, source)
    for name, cfg_cls in (("search", SearchCfg), ("cache", CacheCfg)):
        if name not in data:
            continue
        section = data[name]
        if not isinstance(section, dict):
            raise ConfigError(f"Config section '{name}' in '{source}' must be a mapping.")
        _warn_unknown_keys(section, frozenset(f.name for f in fields(cfg_cls)), source, name)

    if "pins" in data:
        pins = data["pins"]
        if not isinstance(pins, list):
            raise ConfigError(f"Config key 'pins' in '{source}' must be a list.")
        for pin in pins:
            if not isinstance(pin, dict):
                raise ConfigError(f"Each entry of 'pins' in '{source}' must be a mapping.")
            _warn_unknown_keys(pin, _KNOWN_PIN_KEYS, source, "pins[]")

    return data


def _validate(cfg: QuickSearchConfig) -> None:
    if cfg.search.max_display_items < 1:
        raise ConfigError("search.max_display_items must be >= 1")
    if cfg.search.max_query_length < 1:
        raise ConfigError("search.max_query_length must be >= 1")
    if cfg.search.debounce_delay_ms < 0:
        raise ConfigError("search.debounce_delay_ms must be >= 0")
    if cfg.cache.max_age_ms < 0:
        raise ConfigError("cache.max_age_ms must be >= 0")
    if cfg.cache.integrity_check_delay_ms < 0:
        raise ConfigError("cache.integrity_check_delay_ms must be >= 0")
    if not cfg.cache.schema_version:
        raise ConfigError("cache.schema_version must not be empty")
    for pin in cfg.pins:
        if not pin.name:
            raise ConfigError("pins[].name must not be empty")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc


def _parse_pin(raw: dict[str, Any]) -> PinRule:
    return PinRule(
        name=str(raw.get("name", "")).strip().lower(),
        query_contains=str(raw.get("query_contains", "")).lower(),
        bonus=_as_int(raw.get("bonus", 500), "pins[].bonus"),
        allow_fuzzy=bool(raw.get("allow_fuzzy", True)),
    )


def _cfg_from_dict(data: dict[str, Any]) -> QuickSearchConfig:
    """Build a *QuickSearchConfig* from a merged raw YAML dict."""
    cfg = QuickSearchConfig()

    if "search" in data:
        s = data["search"]
        cfg.search = SearchCfg(
            debounce_delay_ms=_as_int(
                s.get("debounce_delay_ms", cfg.search.debounce_delay_ms),
                "search.debounce_delay_ms",
            ),
            max_display_items=_as_int(
                s.get("max_display_items", cfg.search.max_display_items),
                "search.max_display_items",
            ),
            max_query_length=_as_int(
                s.get("max_query_length", cfg.search.max_query_length),
                "search.max_query_length",
            ),
        )

    if "cache" in data:
        c = data["cache"]
        cfg.cache = CacheCfg(
            path=str(c.get("path", cfg.cache.path)),
            max_age_ms=_as_int(c.get("max_age_ms", cfg.cache.max_age_ms), "cache.max_age_ms"),
            schema_version=str(c.get("schema_version", cfg.cache.schema_version)),
            integrity_check_delay_ms=_as_int(
                c.get("integrity_check_delay_ms", cfg.cache.integrity_check_delay_ms),
                "cache.integrity_check_delay_ms",
            ),
        )

    if "pins" in data:
        cfg.pins = [_parse_pin(p) for p in data["pins"]]

    return cfg


def _apply_env_overrides(cfg: QuickSearchConfig) -> QuickSearchConfig:
    """Apply QUICKSEARCH_* environment variable overrides."""
    if path := os.environ.get("QUICKSEARCH_CACHE_PATH"):
        cfg.cache.path = path
    if max_age := os.environ.get("QUICKSEARCH_CACHE_MAX_AGE_MS"):
        cfg.cache.max_age_ms = _as_int(max_age, "QUICKSEARCH_CACHE_MAX_AGE_MS")
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> QuickSearchConfig:
    """Load and return a merged *QuickSearchConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *quicksearch.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *QuickSearchConfig* with env var overrides applied.

    Raises:
        ConfigError: If a layer is malformed or a value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _check_layer(
            yaml.safe_load(global_path.read_text(encoding="utf-8")), global_path
        )
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _check_layer(
            yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")), project_cfg_path
        )
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
