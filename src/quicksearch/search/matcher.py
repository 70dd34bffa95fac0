"""Tiered matcher and relevance ranker.

Candidate tiers, each run only while fewer than ``max_results`` candidates
have been collected:

  1. exact        name == q                         1000 (terminal)
  2. prefix       name startswith q                  500
  3. first word   first name word == q               400
  4. whole word   \\bq\\b in name                      300
  5. substring    q in name                          100 + max(50 - pos, 0)
  6. tokens       every query token hits a name word 150 + sum(token scores)
  7. description  q (or every token) in description  tie-breaker bonus only
  8. fuzzy        levenshtein <= ceil(min_len * 0.4) 120 - 20 * distance
                  (only when tiers 1-7 found fewer than 5 candidates)

Description-only records come after every name tier, so they can never push
a name match out of the result window. Only records admitted by the fuzzy
tier are scored as fuzzy matches.

Post-tier adjustments: description bonus (only below 100), long-name
penalty, simple-name bonus, pinning rules. Non-exact scores are capped
below the exact score. Ordering: score desc, then corpus position.

Everything here is a pure function of its inputs.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from quicksearch.corpus.models import Record
from quicksearch.search.query import normalize_query

DEFAULT_MAX_RESULTS = 20

EXACT_SCORE = 1000
PREFIX_SCORE = 500
FIRST_WORD_SCORE = 400
WHOLE_WORD_SCORE = 300
SUBSTRING_SCORE = 100
SUBSTRING_POSITION_BONUS = 50
TOKEN_BASE_SCORE = 150
TOKEN_ORDER_BONUS = 50
FUZZY_BASE_SCORE = 120
FUZZY_DISTANCE_PENALTY = 20
FUZZY_RATIO = 0.4
FUZZY_CANDIDATE_FLOOR = 5

DESCRIPTION_BONUS = 10
DESCRIPTION_TOKENS_BONUS = 15
LONG_NAME_WORDS = 3
LONG_NAME_PENALTY = 5
SIMPLE_NAME_BONUS = 20

# Per-token sub-scores for the token tier, strongest first.
_TOKEN_EXACT = 100
_TOKEN_PREFIX = 80
_TOKEN_INSIDE = 60
_TOKEN_EXTENDS = 40
_TOKEN_SPANNING = 30


@dataclass(frozen=True)
class PinRule:
    """Score bonus keeping one record on top for a family of queries.

    Attributes:
        name: Lowercase record name the rule applies to (exact match).
        query_contains: The rule fires when the query contains this text.
        bonus: Points added to the record's score.
        allow_fuzzy: Also fire when the query is within fuzzy distance of
            ``name``.
    """

    name: str
    query_contains: str
    bonus: int = 500
    allow_fuzzy: bool = True

    def applies(self, record: Record, query: str) -> bool:
        if record.name_lower != self.name.lower():
            return False
        if self.query_contains and self.query_contains.lower() in query:
            return True
        if self.allow_fuzzy:
            return levenshtein(record.name_lower, query) <= fuzzy_threshold(
                record.name_lower, query
            )
        return False


# Many near-duplicate "WooCommerce ..." extensions would otherwise bury the
# main plugin for short "woo" queries.
DEFAULT_PINS: tuple[PinRule, ...] = (PinRule(name="woocommerce", query_contains="woo"),)


@dataclass(frozen=True)
class RankedMatch:
    """A matched record with its final relevance score."""

    record: Record
    score: int


# ------------------------------------------------------------------
# Edit distance
# ------------------------------------------------------------------


def levenshtein(a: str, b: str) -> int:
    """Classic Levenshtein distance (insert/delete/substitute cost 1)."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            )
        previous = current
    return previous[-1]


def fuzzy_threshold(name: str, query: str) -> int:
    """Maximum accepted edit distance between *name* and *query*."""
    return math.ceil(min(len(name), len(query)) * FUZZY_RATIO)


def is_fuzzy_match(record: Record, query: str) -> bool:
    return levenshtein(record.name_lower, query) <= fuzzy_threshold(record.name_lower, query)


# ------------------------------------------------------------------
# Token tier
# ------------------------------------------------------------------


def _best_token_hit(token: str, record: Record) -> tuple[int, int]:
    """Return (sub_score, name_word_index) for one query token; (0, -1) if none."""
    best, best_index = 0, -1
    for index, word in enumerate(record.name_words):
        if word == token:
            score = _TOKEN_EXACT
        elif word.startswith(token):
            score = _TOKEN_PREFIX
        elif token in word:
            score = _TOKEN_INSIDE
        elif len(word) >= 2 and token.startswith(word):
            score = _TOKEN_EXTENDS
        else:
            continue
        if score > best:
            best, best_index = score, index
    if best:
        return best, best_index

    # Token spanning a word boundary, e.g. "mailsmtp" in "wp mail smtp".
    compact = "".join(record.name_words)
    pos = compact.find(token)
    if pos < 0:
        return 0, -1
    offset = 0
    for index, word in enumerate(record.name_words):
        if pos < offset + len(word):
            return _TOKEN_SPANNING, index
        offset += len(word)
    return 0, -1


def token_score(record: Record, tokens: Sequence[str]) -> int | None:
    """Score the token tier, or None when it does not apply.

    Every token must hit some name word; queries of three or more tokens
    may miss one, paying a proportional penalty. Single-token queries only
    apply to multi-word names.
    """
    if not tokens:
        return None
    if len(tokens) == 1 and record.word_count < 2:
        return None

    hits = [_best_token_hit(token, record) for token in tokens]
    matched = [(score, index) for score, index in hits if score]
    unmatched = len(tokens) - len(matched)
    allowed_misses = 1 if len(tokens) >= 3 else 0
    if not matched or unmatched > allowed_misses:
        return None

    score = TOKEN_BASE_SCORE + sum(s for s, _ in matched)
    if len(tokens) > 1:
        indices = [index for _, index in matched]
        if all(a <= b for a, b in zip(indices, indices[1:])):
            score += TOKEN_ORDER_BONUS
    score -= round(TOKEN_BASE_SCORE * unmatched / len(tokens))
    return score


def _all_tokens_in(text: str, tokens: Sequence[str]) -> bool:
    return bool(tokens) and all(token in text for token in tokens)


# ------------------------------------------------------------------
# Scoring
# ------------------------------------------------------------------


def _name_score(
    record: Record,
    query: str,
    tokens: Sequence[str],
    word_re: re.Pattern[str],
    allow_fuzzy: bool,
) -> int:
    name = record.name_lower
    if name.startswith(query):
        return PREFIX_SCORE
    if record.name_words and record.name_words[0] == query:
        return FIRST_WORD_SCORE
    if word_re.search(record.name):
        return WHOLE_WORD_SCORE
    pos = name.find(query)
    if pos >= 0:
        return SUBSTRING_SCORE + max(SUBSTRING_POSITION_BONUS - pos, 0)
    tiered = token_score(record, tokens)
    if tiered is not None:
        return tiered
    if not allow_fuzzy:
        return 0
    distance = levenshtein(name, query)
    if distance <= fuzzy_threshold(name, query):
        return FUZZY_BASE_SCORE - distance * FUZZY_DISTANCE_PENALTY
    return 0


def _whole_word_re(query: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(query) + r"\b", re.IGNORECASE)


def score_record(
    record: Record,
    query: str,
    pins: Iterable[PinRule] = DEFAULT_PINS,
    *,
    allow_fuzzy: bool = True,
    _word_re: re.Pattern[str] | None = None,
) -> int:
    """Return the relevance score of *record* for *query*.

    *query* is normalized here, so raw user text is accepted. With
    ``allow_fuzzy=False`` a name that only matches within edit distance
    scores nothing for its name.
    """
    q = normalize_query(query)
    if record.name_lower == q:
        return EXACT_SCORE

    tokens = q.split()
    score = _name_score(record, q, tokens, _word_re or _whole_word_re(q), allow_fuzzy)

    # Description is a tie-breaker only, never a primary signal.
    if score < SUBSTRING_SCORE:
        if q in record.description_lower:
            score += DESCRIPTION_BONUS
        elif len(tokens) > 1 and _all_tokens_in(record.description_lower, tokens):
            score += DESCRIPTION_TOKENS_BONUS

    if record.word_count > LONG_NAME_WORDS:
        score -= (record.word_count - LONG_NAME_WORDS) * LONG_NAME_PENALTY

    if not record.has_connective:
        score += SIMPLE_NAME_BONUS

    for pin in pins:
        if pin.applies(record, q):
            score += pin.bonus

    return min(score, EXACT_SCORE - 1)


# ------------------------------------------------------------------
# Candidate collection
# ------------------------------------------------------------------


def _tier_predicates(query: str, tokens: Sequence[str], word_re: re.Pattern[str]) -> list[Callable[[Record], bool]]:
    multi = len(tokens) > 1

    def exact(r: Record) -> bool:
        return r.name_lower == query

    def prefix(r: Record) -> bool:
        return r.name_lower.startswith(query)

    def first_word(r: Record) -> bool:
        return bool(r.name_words) and r.name_words[0] == query

    def whole_word(r: Record) -> bool:
        return word_re.search(r.name) is not None

    def substring(r: Record) -> bool:
        return query in r.name_lower

    def token(r: Record) -> bool:
        return token_score(r, tokens) is not None

    def description(r: Record) -> bool:
        if query in r.description_lower:
            return True
        return multi and _all_tokens_in(r.description_lower, tokens)

    return [exact, prefix, first_word, whole_word, substring, token, description]


def _collect(
    pool: Sequence[Record],
    query: str,
    max_results: int,
) -> tuple[list[Record], set[str]]:
    """Return (candidates, ids admitted by the fuzzy tier)."""
    tokens = query.split()
    word_re = _whole_word_re(query)
    collected: list[Record] = []
    seen: set[str] = set()

    for predicate in _tier_predicates(query, tokens, word_re):
        if len(collected) >= max_results:
            break
        for record in pool:
            if record.id in seen or not predicate(record):
                continue
            collected.append(record)
            seen.add(record.id)
            if len(collected) >= max_results:
                break

    fuzzy_ids: set[str] = set()
    if len(collected) < FUZZY_CANDIDATE_FLOOR:
        for record in pool:
            if len(collected) >= max_results:
                break
            if record.id not in seen and is_fuzzy_match(record, query):
                collected.append(record)
                seen.add(record.id)
                fuzzy_ids.add(record.id)

    return collected, fuzzy_ids


def collect_candidates(
    pool: Sequence[Record],
    query: str,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[Record]:
    """Run the tiers over *pool* and return matching records (unranked).

    *query* must already be normalized (see ``normalize_query``).
    """
    return _collect(pool, query, max_results)[0]


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def rank_matches(
    pool: Sequence[Record],
    query: str,
    max_results: int = DEFAULT_MAX_RESULTS,
    pins: Iterable[PinRule] = DEFAULT_PINS,
) -> list[RankedMatch]:
    """Return up to *max_results* scored matches, best first.

    A blank query returns the head of *pool* in order, unscored (score 0).
    """
    if max_results <= 0:
        return []
    q = normalize_query(query)
    if not q:
        return [RankedMatch(record=r, score=0) for r in list(pool)[:max_results]]

    pins = tuple(pins)
    word_re = _whole_word_re(q)
    candidates, fuzzy_ids = _collect(pool, q, max_results)
    scored = [
        RankedMatch(
            record=r,
            score=score_record(r, q, pins, allow_fuzzy=r.id in fuzzy_ids, _word_re=word_re),
        )
        for r in candidates
    ]
    scored.sort(key=lambda m: (-m.score, m.record.position))
    return scored[:max_results]


def rank(
    pool: Sequence[Record],
    query: str,
    max_results: int = DEFAULT_MAX_RESULTS,
    pins: Iterable[PinRule] = DEFAULT_PINS,
) -> list[Record]:
    """Return up to *max_results* matching records, best first."""
    return [m.record for m in rank_matches(pool, query, max_results, pins)]
