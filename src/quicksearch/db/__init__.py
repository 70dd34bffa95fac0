"""quicksearch database layer."""

from quicksearch.db.connection import Database
from quicksearch.db.migrations import MIGRATIONS, run_migrations
from quicksearch.db.repository import BlobRepository
from quicksearch.db.schema import initialize

__all__ = [
    "BlobRepository",
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
