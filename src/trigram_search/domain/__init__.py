"""Domain layer - pure trigram search concepts with no infrastructure dependencies.

This layer contains:
- Value Objects: TrigramRow, TrigramMatch, FuzzySearchConfig, query options
- Errors: the exception hierarchy shared by adapters and services
- Record helpers: uniform access to owner ids and field values
"""

from trigram_search.domain.errors import (
    BatchReindexError,
    TrigramSearchError,
    TrigramStoreError,
    TrigramValidationError,
    UnknownFuzzyFieldError,
)
from trigram_search.domain.model import (
    TRIGRAM_LENGTH,
    BulkReindexResult,
    FuzzySearchConfig,
    OwnerId,
    TrigramMatch,
    TrigramRow,
    field_text,
    owner_id_of,
    read_attribute,
)
from trigram_search.domain.search import DistanceRule, FuzzyQueryOptions


__all__ = [
    "TRIGRAM_LENGTH",
    "BatchReindexError",
    "BulkReindexResult",
    "DistanceRule",
    "FuzzyQueryOptions",
    "FuzzySearchConfig",
    "OwnerId",
    "TrigramMatch",
    "TrigramRow",
    "TrigramSearchError",
    "TrigramStoreError",
    "TrigramValidationError",
    "UnknownFuzzyFieldError",
    "field_text",
    "owner_id_of",
    "read_attribute",
]
