"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from quicksearch.corpus.models import RawRecord
from quicksearch.corpus.store import Corpus
from quicksearch.db.connection import Database
from quicksearch.db.schema import initialize

PLUGINS: list[tuple[str, str]] = [
    ("Akismet Anti-Spam", "Protects your blog from spam."),
    ("WooCommerce", "An eCommerce toolkit that helps you sell anything."),
    ("WooCommerce Stripe Gateway", "Take credit card payments on your store."),
    ("WooCommerce PayPal Payments", "PayPal checkout for your store."),
    ("WP Mail SMTP", "Make email delivery easy. Connect with SMTP or Gmail."),
    ("Yoast SEO", "The first true all-in-one SEO solution."),
    ("Contact Form 7", "Just another contact form plugin. Simple but flexible."),
    ("Wordfence Security", "Firewall and malware scan."),
    ("Jetpack", "Security, performance, and marketing tools."),
    ("Redirection", "Manage 301 redirections and keep track of 404 errors."),
    ("WooCommerce Subscriptions", "Sell products with recurring payments."),
    ("UpdraftPlus - Backup/Restore", "Backup and restoration made easy."),
]


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".quicksearch.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def raw_records() -> list[RawRecord]:
    return [
        RawRecord(
            name=name,
            description=description,
            version="1.0",
            is_enabled=i % 2 == 0,
            action_ref=f"/wp-admin/options.php?plugin={i}",
            source_ref=f"row-{i}",
        )
        for i, (name, description) in enumerate(PLUGINS)
    ]


@pytest.fixture
def corpus(raw_records) -> Corpus:
    return Corpus.from_raw(raw_records)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
