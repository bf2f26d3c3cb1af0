"""Domain model - trigram rows, field registrations and record access.

Following the same Cosmic Python split as the rest of the package:
- Value objects are immutable Pydantic dataclasses validated at construction
- No dependencies on the storage adapters
- Owner records are plain objects or mappings; helpers here read them uniformly
"""

from collections.abc import Mapping
from dataclasses import dataclass as plain_dataclass
from typing import Annotated, Any

from pydantic import Field
from pydantic.dataclasses import dataclass


OwnerId = int | str

# Every token stored in a trigram index has exactly this many characters
TRIGRAM_LENGTH = 3


@dataclass(frozen=True)
class TrigramRow:
    """One scored trigram observed in one field of one owner.

    The set of rows for an ``(owner_type, owner_id, field)`` key always mirrors the
    decomposition of that field's current value.
    """

    owner_type: Annotated[str, Field(min_length=1)]
    owner_id: OwnerId
    field: Annotated[str, Field(min_length=1)]
    trigram: Annotated[str, Field(min_length=TRIGRAM_LENGTH, max_length=TRIGRAM_LENGTH)]
    score: float

    def as_params(self) -> tuple[str, OwnerId, str, float, str]:
        """Column values in storage order (owner_type, owner_id, fuzzy_field, score, trigram)."""
        return (self.owner_type, self.owner_id, self.field, self.score, self.trigram)


@dataclass(frozen=True)
class TrigramMatch:
    """Aggregated trigram lookup result for a single owner."""

    owner_id: OwnerId
    matches: Annotated[int, Field(ge=1)]
    score: float

    def sort_key(self) -> tuple[int, float]:
        """Most shared trigrams first, then the shortest indexed value."""
        return (-self.matches, self.score)


@dataclass(frozen=True)
class FuzzySearchConfig:
    """Registration of one fuzzily searchable field.

    Immutable once registered and shared by every query against the field.
    """

    field: Annotated[str, Field(min_length=1)]
    trigram_table: Annotated[str, Field(min_length=1)]
    default_limit: Annotated[int, Field(ge=1)] = 10
    default_offset: Annotated[int, Field(ge=0)] = 0


@plain_dataclass(slots=True)
class BulkReindexResult:
    """Summary of a completed bulk reindex run."""

    field: str
    batches: int = 0
    records: int = 0
    rows: int = 0
    multi_row_insert: bool = False


def owner_id_of(record: Any) -> OwnerId:
    """Return the identity of an owner record (``id`` attribute or key)."""
    if isinstance(record, Mapping):
        if "id" not in record:
            raise ValueError("Owner record mapping has no 'id' key")
        return record["id"]
    try:
        return record.id
    except AttributeError as exc:
        raise ValueError(f"Owner record {record!r} has no 'id' attribute") from exc


def read_attribute(record: Any, name: str) -> Any:
    """Read a field or computed attribute from a record; missing values read as None."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def field_text(record: Any, name: str) -> str:
    """Read a field as text, coercing absent values to the empty string."""
    value = read_attribute(record, name)
    if value is None:
        return ""
    return str(value)
