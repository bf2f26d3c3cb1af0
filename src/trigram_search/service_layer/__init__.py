"""Service layer - indexing and query orchestration.

- indexer: single-record and batched trigram reindexing
- query_engine: fuzzy lookup, ranking, distance filtering and limiting
- searchable: per-field registration table dispatching to both
"""

from .indexer import TrigramIndexer
from .query_engine import FuzzyQueryEngine
from .searchable import FuzzySearchable


__all__ = [
    "FuzzyQueryEngine",
    "FuzzySearchable",
    "TrigramIndexer",
]
