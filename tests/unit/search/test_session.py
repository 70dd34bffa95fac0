"""Tests for the query session controller."""

from __future__ import annotations

import asyncio

from quicksearch.corpus.models import RawRecord
from quicksearch.corpus.store import Corpus
from quicksearch.search.matcher import rank
from quicksearch.search.session import SearchSession, SessionState


def _names(records) -> list[str]:
    return [r.name for r in records]


# ---------------------------------------------------------------------------
# Immediate search paths
# ---------------------------------------------------------------------------


def test_new_session_shows_corpus_head(corpus):
    session = SearchSession(corpus, max_results=5)
    assert session.state is SessionState.OPEN
    assert session.results == corpus.head(5)


def test_first_query_runs_full_search(corpus):
    session = SearchSession(corpus)
    results = session.search("w")
    assert session.last_mode == "full"
    assert results == rank(corpus.records, "w")


def test_extended_query_filters_incrementally(corpus):
    session = SearchSession(corpus)
    session.search("w")
    results = session.search("wo")
    assert session.last_mode == "incremental"
    assert results == rank(corpus.records, "wo")


def test_small_incremental_pool_falls_back_to_full_corpus(corpus):
    session = SearchSession(corpus)
    session.search("w")
    session.search("wo")
    results = session.search("woo")
    assert session.last_mode == "incremental-fallback"
    assert results == rank(corpus.records, "woo")


def test_typo_after_prefix_still_finds_record(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    results = session.search("woocomerce")
    assert session.last_mode == "incremental-fallback"
    assert results[0].name == "WooCommerce"


def test_incremental_fallback_reaches_records_outside_previous_results():
    corpus = Corpus.from_raw(
        RawRecord(name=name)
        for name in ("Alpha Tools", "Alfa", "Alpine", "Alto", "Ally", "Alps", "Xlpha")
    )
    session = SearchSession(corpus)
    # Six prefix hits: the fuzzy tier never runs, so "Xlpha" is left out.
    assert "Xlpha" not in _names(session.search("al"))
    results = session.search("alpha")
    assert session.last_mode == "incremental-fallback"
    assert "Xlpha" in _names(results)


def test_truncated_previous_results_are_not_narrowed():
    corpus = Corpus.from_raw(
        [RawRecord(name=f"Wo a{i}") for i in range(20)] + [RawRecord(name="Wo")]
    )
    session = SearchSession(corpus, max_results=20)
    # "w" fills the window, so the exact "Wo" is cut off.
    assert "Wo" not in _names(session.search("w"))
    results = session.search("wo")
    assert session.last_mode == "full"
    assert results == rank(corpus.records, "wo")
    assert results[0].name == "Wo"


def test_repeated_query_served_from_cache(corpus):
    session = SearchSession(corpus)
    first = session.search("woo")
    session.search("")
    again = session.search("woo")
    assert session.last_mode == "cache"
    assert again == first


def test_blank_query_resets_incremental_state(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    results = session.search("   ")
    assert session.last_mode == "empty"
    assert results == corpus.head(20)
    assert session.previous_query == ""
    assert session.previous_results == []


def test_unrelated_query_runs_full_search(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    session.search("jet")
    assert session.last_mode == "full"


def test_query_is_sanitized(corpus):
    session = SearchSession(corpus)
    session.search("<woo>")
    assert session.current_query == "woo"
    assert session.search_log == ["woo"]


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def test_selection_wraps(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    assert len(session.results) == 4
    assert session.move_selection(-1) == 3
    assert session.move_selection(1) == 0
    assert session.move_selection(5) == 1


def test_new_search_resets_selection(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    session.move_selection(2)
    session.search("wooc")
    assert session.selection == 0


def test_moving_selection_never_searches(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    session.move_selection(1)
    assert session.search_log == ["woo"]


def test_selection_on_empty_results(corpus):
    session = SearchSession(corpus)
    session.search("zzzzqqq")
    assert session.move_selection(1) == 0
    assert session.confirm() is None
    assert session.selected_action() is None


def test_selected_action(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    session.move_selection(1)
    record = session.selected()
    assert session.selected_action() == record.action_ref


# ---------------------------------------------------------------------------
# Debounced input
# ---------------------------------------------------------------------------


def test_debounce_coalesces_keystrokes(corpus):
    delivered: list[tuple[str, list]] = []

    async def scenario() -> SearchSession:
        session = SearchSession(
            corpus,
            debounce_delay_ms=10,
            on_results=lambda s, results, query: delivered.append((query, results)),
        )
        for text in ("w", "wo", "woo"):
            session.submit(text)
        assert session.search_pending
        assert session.state is SessionState.SEARCHING
        await asyncio.sleep(0.1)
        return session

    session = asyncio.run(scenario())
    assert session.search_log == ["woo"]
    assert len(delivered) == 1
    assert delivered[0][0] == "woo"
    assert delivered[0][1][0].name == "WooCommerce"
    assert session.state is SessionState.SETTLED


def test_confirm_cancels_pending_search(corpus):
    async def scenario() -> tuple[SearchSession, object]:
        session = SearchSession(corpus, debounce_delay_ms=10)
        session.submit("woo")
        record = session.confirm()
        await asyncio.sleep(0.05)
        return session, record

    session, record = asyncio.run(scenario())
    assert not session.search_pending
    assert session.search_log == []
    assert record == corpus[0]


def test_close_cancels_and_ignores_input(corpus):
    async def scenario() -> SearchSession:
        session = SearchSession(corpus, debounce_delay_ms=10)
        session.submit("woo")
        session.close()
        session.submit("jet")
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.IDLE
    assert not session.is_open
    assert session.search_log == []


# ---------------------------------------------------------------------------
# Corpus replacement
# ---------------------------------------------------------------------------


def test_replace_corpus_drops_cached_results(corpus):
    session = SearchSession(corpus)
    session.search("woo")
    session.replace_corpus(Corpus.from_raw([RawRecord(name="Woo Blocks")]))
    results = session.search("woo")
    assert session.last_mode == "full"
    assert _names(results) == ["Woo Blocks"]
