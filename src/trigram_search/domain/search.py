"""Domain models for fuzzy queries.

Value objects are immutable (frozen=True) so a query's options cannot change
while candidates are being resolved.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DistanceRule(BaseModel):
    """One distance filter triple evaluated against every candidate.

    A candidate passes when ``similarity(candidate.<attribute>, reference) >= min_similarity``.
    """

    model_config = ConfigDict(frozen=True)

    attribute: str = Field(min_length=1)
    reference: str
    min_similarity: float = Field(ge=0.0, le=1.0)

    @classmethod
    def coerce(cls, value: Any) -> "DistanceRule":
        """Build a rule from a rule, a mapping or an ``(attribute, reference, min_similarity)`` triple."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(**value)
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 3:
            attribute, reference, min_similarity = value
            return cls(attribute=attribute, reference=reference, min_similarity=min_similarity)
        raise ValueError(f"Distance filter entries must be (attribute, reference, min_similarity); got {value!r}")


class FuzzyQueryOptions(BaseModel):
    """Value object holding the options of one fuzzy query."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)
    distance_filter: tuple[DistanceRule, ...] = ()
    limit_on_distance: bool = False

    @field_validator("distance_filter", mode="before")
    @classmethod
    def _coerce_rules(cls, value: Any) -> tuple[DistanceRule, ...]:
        if value is None:
            return ()
        return tuple(DistanceRule.coerce(item) for item in value)

    @property
    def caps_accepted_count(self) -> bool:
        """Whether ``limit`` stops candidate resolution once reached."""
        return not self.limit_on_distance
