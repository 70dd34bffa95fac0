"""Query input sanitization.

Sanitization never fails: hostile or oversized input is cleaned and
truncated, not rejected.
"""

from __future__ import annotations

import re
import unicodedata

MAX_QUERY_LENGTH = 100

_STRIP_CHARS_RE = re.compile(r"[<>]")


def sanitize_query(text: object, max_length: int = MAX_QUERY_LENGTH) -> str:
    """Return a display-safe query string.

    Removes ``<``/``>`` and control characters (tabs and newlines become
    spaces), collapses whitespace runs, trims, and caps the length.
    Non-string input yields ``""``.
    """
    if not isinstance(text, str):
        return ""
    cleaned = _STRIP_CHARS_RE.sub("", text)
    cleaned = "".join(
        " " if ch.isspace() else ch
        for ch in cleaned
        if ch.isspace() or unicodedata.category(ch) != "Cc"
    )
    cleaned = " ".join(cleaned.split())
    return cleaned[:max_length].rstrip()


def normalize_query(text: str) -> str:
    """Lowercase + whitespace-collapsed form used for matching and cache keys."""
    return " ".join(text.lower().split())
