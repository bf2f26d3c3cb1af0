"""trigram-search - fuzzy text search over record collections using scored trigram indexes."""

from trigram_search.adapters import (
    AbstractOwnerRepository,
    AbstractTrigramIndex,
    FakeTrigramIndex,
    InMemoryOwnerRepository,
    SqliteOwnerRepository,
    SqliteTrigramIndex,
)
from trigram_search.config import Settings
from trigram_search.domain import (
    BatchReindexError,
    BulkReindexResult,
    DistanceRule,
    FuzzyQueryOptions,
    FuzzySearchConfig,
    TrigramMatch,
    TrigramRow,
    TrigramSearchError,
    TrigramStoreError,
    TrigramValidationError,
    UnknownFuzzyFieldError,
)
from trigram_search.search.distance import DistanceMetric, JaroWinklerMetric, LevenshteinMetric
from trigram_search.search.trigrams import ScoredTrigramSource, TrigramSource
from trigram_search.service_layer import FuzzyQueryEngine, FuzzySearchable, TrigramIndexer


__version__ = "0.1.0"

__all__ = [
    "AbstractOwnerRepository",
    "AbstractTrigramIndex",
    "BatchReindexError",
    "BulkReindexResult",
    "DistanceMetric",
    "DistanceRule",
    "FakeTrigramIndex",
    "FuzzyQueryEngine",
    "FuzzyQueryOptions",
    "FuzzySearchConfig",
    "FuzzySearchable",
    "InMemoryOwnerRepository",
    "JaroWinklerMetric",
    "LevenshteinMetric",
    "ScoredTrigramSource",
    "Settings",
    "SqliteOwnerRepository",
    "SqliteTrigramIndex",
    "TrigramIndexer",
    "TrigramMatch",
    "TrigramRow",
    "TrigramSearchError",
    "TrigramSource",
    "TrigramStoreError",
    "TrigramValidationError",
    "UnknownFuzzyFieldError",
    "__version__",
]
