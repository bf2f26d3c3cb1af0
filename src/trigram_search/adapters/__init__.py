"""Adapters layer - trigram index and owner store implementations."""

from .owner_repository import AbstractOwnerRepository, InMemoryOwnerRepository, SqliteOwnerRepository
from .sqlite_trigram_index import SqliteTrigramIndex
from .trigram_index import AbstractTrigramIndex, FakeTrigramIndex


__all__ = [
    "AbstractOwnerRepository",
    "AbstractTrigramIndex",
    "FakeTrigramIndex",
    "InMemoryOwnerRepository",
    "SqliteOwnerRepository",
    "SqliteTrigramIndex",
]
