"""Tests for quicksearch search and the top-level CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from quicksearch.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("quicksearch.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.delenv("QUICKSEARCH_CACHE_PATH", raising=False)
    monkeypatch.delenv("QUICKSEARCH_CACHE_MAX_AGE_MS", raising=False)


@pytest.fixture
def records_file(tmp_path: Path) -> Path:
    path = tmp_path / "plugins.json"
    path.write_text(
        json.dumps(
            [
                {"name": "Akismet Anti-Spam", "version": "5.3", "active": True},
                {"name": "WooCommerce", "version": "8.5.1", "active": True},
                {"name": "WooCommerce Stripe Gateway", "version": "7.9"},
                {"name": "WP Mail SMTP", "version": "4.0"},
                {"name": "Jetpack", "version": "13.1"},
            ]
        ),
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# quicksearch --version / version
# ---------------------------------------------------------------------------


def test_version_flag_exits_zero() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "quicksearch" in result.output.lower()


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "quicksearch" in result.output


# ---------------------------------------------------------------------------
# quicksearch search
# ---------------------------------------------------------------------------


def test_search_prints_ranked_results(tmp_path: Path, records_file: Path) -> None:
    result = runner.invoke(
        app, ["search", "woo", "--source", str(records_file), "--db", str(tmp_path / "c.db")]
    )
    assert result.exit_code == 0, result.output
    assert "WooCommerce" in result.output
    assert "Jetpack" not in result.output
    assert result.output.index("WooCommerce") < result.output.index("Stripe")


def test_search_creates_cache(tmp_path: Path, records_file: Path) -> None:
    db = tmp_path / "c.db"
    runner.invoke(app, ["search", "wp smtp", "--source", str(records_file), "--db", str(db)])
    assert db.exists()


def test_search_default_db_from_config(tmp_path: Path, records_file: Path) -> None:
    (tmp_path / "quicksearch.yaml").write_text("cache:\n  path: custom.db\n", encoding="utf-8")
    result = runner.invoke(app, ["search", "jet", "--source", str(records_file)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "custom.db").exists()


def test_search_with_scores(tmp_path: Path, records_file: Path) -> None:
    result = runner.invoke(
        app,
        ["search", "WooCommerce", "--source", str(records_file), "--db", str(tmp_path / "c.db"), "--scores"],
    )
    assert result.exit_code == 0, result.output
    assert "1000" in result.output


def test_search_limit(tmp_path: Path, records_file: Path) -> None:
    result = runner.invoke(
        app,
        ["search", "woo", "--source", str(records_file), "--db", str(tmp_path / "c.db"), "--limit", "1"],
    )
    assert result.exit_code == 0, result.output
    assert "Stripe" not in result.output


def test_search_no_matches(tmp_path: Path, records_file: Path) -> None:
    result = runner.invoke(
        app, ["search", "zzzzqqq", "--source", str(records_file), "--db", str(tmp_path / "c.db")]
    )
    assert result.exit_code == 0
    assert "No matches" in result.output


def test_search_missing_source_fails(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["search", "woo", "--source", str(tmp_path / "missing.json"), "--db", str(tmp_path / "c.db")],
    )
    assert result.exit_code == 1
    assert "Error" in result.output


def test_search_invalid_config_fails(tmp_path: Path, records_file: Path) -> None:
    (tmp_path / "quicksearch.yaml").write_text("search:\n  max_display_items: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["search", "woo", "--source", str(records_file)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
