"""Exception hierarchy for trigram indexing and fuzzy search."""

from __future__ import annotations

from collections.abc import Sequence


class TrigramSearchError(Exception):
    """Base class for every error raised by trigram-search."""


class TrigramStoreError(TrigramSearchError):
    """The trigram store failed to execute a statement."""


class TrigramValidationError(TrigramSearchError):
    """A trigram row could not be validated or persisted during a single-record reindex.

    Rows written for the same owner before the failure are left in place.
    """

    def __init__(self, message: str, *, owner_type: str, owner_id: object, field: str) -> None:
        super().__init__(message)
        self.owner_type = owner_type
        self.owner_id = owner_id
        self.field = field


class BatchReindexError(TrigramSearchError):
    """A bulk reindex batch failed and was rolled back.

    Batches committed before ``batch_number`` remain applied.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str,
        batch_number: int,
        owner_ids: Sequence[object],
        completed_batches: int,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.batch_number = batch_number
        self.owner_ids = list(owner_ids)
        self.completed_batches = completed_batches


class UnknownFuzzyFieldError(TrigramSearchError, KeyError):
    """The requested field was never registered as fuzzily searchable."""

    def __init__(self, field: str) -> None:
        super().__init__(field)
        self.field = field

    def __str__(self) -> str:
        return f"Field '{self.field}' is not registered for fuzzy search"
