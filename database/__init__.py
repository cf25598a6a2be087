"""
Database module for catalog entry storage.

Provides SQLAlchemy models, async session management and the entry
repository.
"""

from .models import ANONYMOUS_OWNER_KEY, Base, EntryRecord, Owner, SequenceCounter
from .repository import EntryRepository
from .session import DatabaseManager, init_database

__all__ = [
    "ANONYMOUS_OWNER_KEY",
    "Base",
    "EntryRecord",
    "Owner",
    "SequenceCounter",
    "EntryRepository",
    "DatabaseManager",
    "init_database",
]
