"""Tests for the tiered matcher and ranker."""

from __future__ import annotations

import pytest

from quicksearch.corpus.models import RawRecord, Record
from quicksearch.corpus.store import Corpus
from quicksearch.search.matcher import (
    EXACT_SCORE,
    PinRule,
    collect_candidates,
    fuzzy_threshold,
    levenshtein,
    rank,
    rank_matches,
    score_record,
    token_score,
)


def _names(records) -> list[str]:
    return [r.name for r in records]


# ---------------------------------------------------------------------------
# Edit distance
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("abc", "", 3),
        ("same", "same", 0),
        ("woocommerce", "woocomerce", 1),
    ],
)
def test_levenshtein(a, b, expected):
    assert levenshtein(a, b) == expected
    assert levenshtein(b, a) == expected


def test_fuzzy_threshold_uses_shorter_length():
    assert fuzzy_threshold("woocommerce", "woo") == 2
    assert fuzzy_threshold("woocommerce", "woocomerce") == 4


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_exact_match_ranks_first_with_top_score(corpus):
    matches = rank_matches(corpus.records, "WooCommerce")
    assert matches[0].record.name == "WooCommerce"
    assert matches[0].score == EXACT_SCORE
    assert all(m.score < EXACT_SCORE for m in matches[1:])


def test_short_query_pins_main_record(corpus):
    results = rank(corpus.records, "woo")
    assert results[0].name == "WooCommerce"
    assert set(_names(results[1:4])) == {
        "WooCommerce Stripe Gateway",
        "WooCommerce PayPal Payments",
        "WooCommerce Subscriptions",
    }


def test_without_pins_ties_break_by_position():
    corpus = Corpus.from_raw(
        [RawRecord(name="WooCommerce Blocks"), RawRecord(name="WooCommerce")]
    )
    assert _names(rank(corpus.records, "woo", pins=())) == ["WooCommerce Blocks", "WooCommerce"]
    assert _names(rank(corpus.records, "woo"))[0] == "WooCommerce"


def test_multi_word_non_adjacent(corpus):
    results = rank(corpus.records, "wp smtp")
    assert results[0].name == "WP Mail SMTP"


def test_empty_query_returns_head():
    corpus = Corpus.from_raw(RawRecord(name=f"Plugin {i}") for i in range(30))
    results = rank(corpus.records, "   ")
    assert len(results) == 20
    assert [r.position for r in results] == list(range(20))


def test_no_match_returns_empty(corpus):
    assert rank(corpus.records, "zzzzqqq") == []


def test_fuzzy_typo(corpus):
    assert rank(corpus.records, "woocomerce")[0].name == "WooCommerce"


def test_prefix_outranks_fuzzy_only():
    corpus = Corpus.from_raw([RawRecord(name="Redirct"), RawRecord(name="Redirection")])
    matches = rank_matches(corpus.records, "redirect")
    assert _names(m.record for m in matches) == ["Redirection", "Redirct"]
    assert matches[0].score > matches[1].score


def test_description_only_match_is_tie_breaker(corpus):
    matches = rank_matches(corpus.records, "toolkit")
    assert len(matches) == 1
    assert matches[0].record.name == "WooCommerce"
    assert matches[0].score < 100


def test_ranking_is_idempotent(corpus):
    assert rank(corpus.records, "pay") == rank(corpus.records, "pay")


def test_results_truncated():
    corpus = Corpus.from_raw(RawRecord(name=f"Plugin {i}") for i in range(30))
    assert len(rank(corpus.records, "plugin", max_results=5)) == 5
    assert rank(corpus.records, "plugin", max_results=0) == []


def test_query_is_case_and_whitespace_insensitive(corpus):
    assert rank(corpus.records, "  WP   SMTP ") == rank(corpus.records, "wp smtp")


# ---------------------------------------------------------------------------
# Scoring details
# ---------------------------------------------------------------------------


def test_long_name_penalty_and_simple_bonus():
    short = Record(position=0, name="Mail Log")
    long = Record(position=1, name="Mail Log Extra Tools Pro")
    connective = Record(position=2, name="Mail Log for Teams")
    assert score_record(short, "mail") == 520
    assert score_record(long, "mail") == 510
    assert score_record(connective, "mail") == 495


def test_substring_position_bonus():
    r = Record(position=0, name="Akismet")
    # "smet" at index 3: 100 + (50 - 3) + 20
    assert score_record(r, "smet", pins=()) == 167


def test_non_exact_score_capped_below_exact():
    pin = PinRule(name="woocommerce", query_contains="woo", bonus=5000)
    r = Record(position=0, name="WooCommerce")
    assert score_record(r, "woo", pins=(pin,)) == EXACT_SCORE - 1


def test_pin_rule_fuzzy_fallback():
    rule = PinRule(name="woocommerce", query_contains="xyz")
    r = Record(position=0, name="WooCommerce")
    assert rule.applies(r, "woocomerce") is True
    strict = PinRule(name="woocommerce", query_contains="xyz", allow_fuzzy=False)
    assert strict.applies(r, "woocomerce") is False


# ---------------------------------------------------------------------------
# Token tier
# ---------------------------------------------------------------------------


def test_token_score_order_bonus():
    r = Record(position=0, name="WP Mail SMTP")
    assert token_score(r, ["wp", "smtp"]) == 400
    assert token_score(r, ["smtp", "wp"]) == 350


def test_token_score_requires_all_tokens_for_short_queries():
    r = Record(position=0, name="WP Mail SMTP")
    assert token_score(r, ["wp", "gmail"]) is None


def test_token_score_tolerates_one_miss_for_long_queries():
    r = Record(position=0, name="WP Mail SMTP")
    # 150 + 100 + 100 + 50 (order) - round(150 / 3)
    assert token_score(r, ["wp", "mail", "xyz"]) == 350
    assert token_score(r, ["wp", "abc", "xyz"]) is None


def test_token_score_single_token_needs_multi_word_name():
    assert token_score(Record(position=0, name="Jetpack"), ["jet"]) is None
    assert token_score(Record(position=0, name="Jetpack Boost"), ["boo"]) is not None


def test_token_score_spanning_word_boundary():
    r = Record(position=0, name="WP Mail SMTP")
    assert token_score(r, ["ilsm"]) == 180


def test_collect_candidates_skips_fuzzy_when_enough_found():
    corpus = Corpus.from_raw(
        [RawRecord(name=f"Cache {i}") for i in range(6)] + [RawRecord(name="Cachr")]
    )
    found = collect_candidates(corpus.records, "cache")
    assert "Cachr" not in _names(found)


def test_collect_candidates_uses_fuzzy_when_few_found():
    corpus = Corpus.from_raw([RawRecord(name="Cache 1"), RawRecord(name="Cachr")])
    found = collect_candidates(corpus.records, "cache")
    assert _names(found) == ["Cache 1", "Cachr"]


def test_description_matches_never_crowd_out_name_matches():
    corpus = Corpus.from_raw(
        [RawRecord(name=f"Plugin {i}", description="wp smtp helper") for i in range(20)]
        + [RawRecord(name="WP Mail SMTP")]
    )
    assert "WP Mail SMTP" in _names(collect_candidates(corpus.records, "wp smtp", 20))
    assert rank(corpus.records, "wp smtp", 20)[0].name == "WP Mail SMTP"


def test_fuzzy_score_only_for_fuzzy_tier_records():
    corpus = Corpus.from_raw(
        [RawRecord(name=f"{'x' * 50} for cache{i}") for i in range(5)]
        + [RawRecord(name="Cachr", description="cache tools")]
    )
    matches = rank_matches(corpus.records, "cache")
    assert matches[-1].record.name == "Cachr"
    # description bonus + simple-name bonus, no fuzzy credit
    assert matches[-1].score == 30
    assert all(m.score == 100 for m in matches[:-1])


def test_score_record_without_fuzzy():
    r = Record(position=0, name="Cachr", description="cache tools")
    assert score_record(r, "cache", pins=()) == 120
    assert score_record(r, "cache", pins=(), allow_fuzzy=False) == 30
