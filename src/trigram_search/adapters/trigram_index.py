"""Trigram index abstractions and the in-memory implementation.

Defines the storage contract the indexer and query engine depend on,
following the Repository Pattern. Store-specific details (SQL dialect,
multi-row insert support, transactions) stay behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Iterable, Iterator, Sequence
from contextlib import contextmanager
import logging

from trigram_search.domain.model import OwnerId, TrigramMatch, TrigramRow


logger = logging.getLogger(__name__)


def _owner_sort_key(owner_id: OwnerId) -> tuple[int, OwnerId]:
    # SQLite orders INTEGER values before TEXT values
    return (1, owner_id) if isinstance(owner_id, str) else (0, owner_id)


class AbstractTrigramIndex(ABC):
    """Abstract repository of trigram rows shared by every owner type."""

    table: str

    @property
    @abstractmethod
    def supports_multi_row_insert(self) -> bool:
        """Whether the store accepts multi-row INSERT statements."""
        raise NotImplementedError

    @abstractmethod
    def delete_all(self, owner_type: str, owner_id: OwnerId, field: str) -> int:
        """Remove every row of one owner field. Idempotent; returns rows removed."""
        raise NotImplementedError

    @abstractmethod
    def delete_many(self, owner_type: str, owner_ids: Collection[OwnerId], field: str) -> int:
        """Remove every row of one field for a batch of owners."""
        raise NotImplementedError

    @abstractmethod
    def delete_owner(self, owner_type: str, owner_id: OwnerId) -> int:
        """Remove an owner's rows for every field."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, rows: Sequence[TrigramRow], *, multi_row: bool = False) -> int:
        """Append rows, as multi-row statements or one statement per row."""
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        owner_type: str,
        field: str,
        trigrams: Iterable[str],
        *,
        offset: int = 0,
    ) -> list[TrigramMatch]:
        """Return owners sharing trigrams with the query, one match per owner.

        Matches are ordered by shared trigram count (descending), stored score
        (ascending) and owner id. ``offset`` skips leading matches; no limit applies.
        """
        raise NotImplementedError

    @abstractmethod
    def rows_for(self, owner_type: str, owner_id: OwnerId, field: str | None = None) -> list[TrigramRow]:
        """Return stored rows of an owner, optionally restricted to one field."""
        raise NotImplementedError

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit everything written inside the block, or nothing on error."""
        raise NotImplementedError

    def close(self) -> None:
        """Release store resources."""
        return


class FakeTrigramIndex(AbstractTrigramIndex):
    """In-memory trigram index for testing and small collections.

    Transactions snapshot the row list and restore it on error.
    """

    def __init__(self, table: str = "trigrams", *, multi_row_insert: bool = True) -> None:
        self.table = table
        self._multi_row_insert = multi_row_insert
        self._rows: list[TrigramRow] = []
        self._in_transaction = False
        self.statements: list[tuple[str, int]] = []

    @property
    def supports_multi_row_insert(self) -> bool:
        return self._multi_row_insert

    def delete_all(self, owner_type: str, owner_id: OwnerId, field: str) -> int:
        return self._remove(
            lambda row: row.owner_type == owner_type and row.owner_id == owner_id and row.field == field
        )

    def delete_many(self, owner_type: str, owner_ids: Collection[OwnerId], field: str) -> int:
        ids = set(owner_ids)
        if not ids:
            return 0
        return self._remove(lambda row: row.owner_type == owner_type and row.field == field and row.owner_id in ids)

    def delete_owner(self, owner_type: str, owner_id: OwnerId) -> int:
        return self._remove(lambda row: row.owner_type == owner_type and row.owner_id == owner_id)

    def insert(self, rows: Sequence[TrigramRow], *, multi_row: bool = False) -> int:
        if not rows:
            return 0
        if multi_row:
            self.statements.append(("insert_many", len(rows)))
        else:
            self.statements.extend(("insert", 1) for _ in rows)
        self._rows.extend(rows)
        return len(rows)

    def query(
        self,
        owner_type: str,
        field: str,
        trigrams: Iterable[str],
        *,
        offset: int = 0,
    ) -> list[TrigramMatch]:
        wanted = set(trigrams)
        if not wanted:
            return []

        counts: dict[OwnerId, int] = {}
        scores: dict[OwnerId, float] = {}
        for row in self._rows:
            if row.owner_type != owner_type or row.field != field or row.trigram not in wanted:
                continue
            counts[row.owner_id] = counts.get(row.owner_id, 0) + 1
            scores[row.owner_id] = max(scores.get(row.owner_id, row.score), row.score)

        matches = [
            TrigramMatch(owner_id=owner_id, matches=count, score=scores[owner_id])
            for owner_id, count in counts.items()
        ]
        matches.sort(key=lambda match: (*match.sort_key(), *_owner_sort_key(match.owner_id)))
        return matches[offset:]

    def rows_for(self, owner_type: str, owner_id: OwnerId, field: str | None = None) -> list[TrigramRow]:
        return [
            row
            for row in self._rows
            if row.owner_type == owner_type and row.owner_id == owner_id and (field is None or row.field == field)
        ]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_transaction:
            yield
            return

        snapshot = list(self._rows)
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self._rows = snapshot
            logger.debug("Rolled back in-memory trigram transaction on %s", self.table)
            raise
        finally:
            self._in_transaction = False

    def __len__(self) -> int:
        return len(self._rows)

    def _remove(self, predicate) -> int:
        kept = [row for row in self._rows if not predicate(row)]
        removed = len(self._rows) - len(kept)
        self._rows = kept
        return removed
