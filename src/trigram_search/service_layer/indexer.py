"""Trigram indexing service.

Keeps each owner field's trigram rows equal to the decomposition of its
current value. Two paths:

- ``reindex_field``: one record, rows validated and written one at a time,
  no transaction (rows written before a failure stay in place).
- ``bulk_reindex``: the whole owner collection, one transaction per batch so
  a failing batch rolls back entirely while earlier batches stay committed.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import ValidationError

from trigram_search.adapters.owner_repository import AbstractOwnerRepository
from trigram_search.adapters.trigram_index import AbstractTrigramIndex
from trigram_search.domain.errors import BatchReindexError, TrigramStoreError, TrigramValidationError
from trigram_search.domain.model import BulkReindexResult, TrigramRow, field_text, owner_id_of
from trigram_search.observability.metrics import BATCH_FAILURES, ROWS_WRITTEN
from trigram_search.observability.tracing import create_span
from trigram_search.search.trigrams import TrigramSource


logger = logging.getLogger(__name__)

MultiRowInsertMode = Literal["auto", "always", "never"]


class TrigramIndexer:
    """Writes trigram rows for the owners of one repository into one index."""

    def __init__(
        self,
        owners: AbstractOwnerRepository,
        index: AbstractTrigramIndex,
        trigram_source: TrigramSource,
        *,
        batch_size: int = 100,
        multi_row_insert: MultiRowInsertMode = "auto",
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.owners = owners
        self.index = index
        self.trigram_source = trigram_source
        self.batch_size = batch_size
        self.multi_row_insert = multi_row_insert

    @property
    def owner_type(self) -> str:
        return self.owners.owner_type

    def uses_multi_row_insert(self) -> bool:
        """Resolve the configured mode against the store's capability."""
        if self.multi_row_insert == "always":
            return True
        if self.multi_row_insert == "never":
            return False
        return self.index.supports_multi_row_insert

    def reindex_field(self, record: Any, field: str) -> int:
        """Replace the trigram rows of one record field with its current value's trigrams.

        Returns:
            Number of rows written.

        Raises:
            TrigramValidationError: A row failed validation or could not be stored.
                Rows written before the failure are not rolled back.
        """
        owner_id = owner_id_of(record)
        attributes = {"owner.type": self.owner_type, "owner.id": str(owner_id), "fuzzy.field": field}
        with create_span("trigram.reindex_field", attributes=attributes):
            self.index.delete_all(self.owner_type, owner_id, field)

            written = 0
            for trigram, score in self.trigram_source.decompose(field_text(record, field)).items():
                try:
                    row = TrigramRow(
                        owner_type=self.owner_type,
                        owner_id=owner_id,
                        field=field,
                        trigram=trigram,
                        score=score,
                    )
                    self.index.insert([row])
                except (ValidationError, TrigramStoreError) as exc:
                    raise TrigramValidationError(
                        f"Failed to store trigram {trigram!r} for {self.owner_type}#{owner_id}.{field}: {exc}",
                        owner_type=self.owner_type,
                        owner_id=owner_id,
                        field=field,
                    ) from exc
                written += 1

        ROWS_WRITTEN.labels(owner_type=self.owner_type, field=field, path="single").inc(written)
        logger.debug("Reindexed %s#%s.%s with %d trigrams", self.owner_type, owner_id, field, written)
        return written

    def bulk_reindex(self, field: str) -> BulkReindexResult:
        """Rebuild the trigram rows of ``field`` for every owner, batch by batch.

        Raises:
            BatchReindexError: A batch failed; it was rolled back and earlier
                batches remain committed.
        """
        multi_row = self.uses_multi_row_insert()
        if not multi_row:
            logger.debug("Multi-row inserts unavailable for %s; inserting rows one by one", self.index.table)

        result = BulkReindexResult(field=field, multi_row_insert=multi_row)
        attributes = {"owner.type": self.owner_type, "fuzzy.field": field, "batch.size": self.batch_size}
        with create_span("trigram.bulk_reindex", attributes=attributes) as span:
            for batch in self.owners.iter_batches(self.batch_size):
                batch_number = result.batches + 1
                owner_ids = [owner_id_of(record) for record in batch]
                try:
                    written = self._reindex_batch(batch, owner_ids, field, multi_row=multi_row)
                except Exception as exc:
                    BATCH_FAILURES.labels(owner_type=self.owner_type, field=field).inc()
                    logger.error(
                        "Rolled back batch %d of %s.%s (%d owners)",
                        batch_number,
                        self.owner_type,
                        field,
                        len(owner_ids),
                        exc_info=True,
                    )
                    raise BatchReindexError(
                        f"Bulk reindex of {self.owner_type}.{field} failed in batch {batch_number}: {exc}",
                        field=field,
                        batch_number=batch_number,
                        owner_ids=owner_ids,
                        completed_batches=result.batches,
                    ) from exc

                result.batches = batch_number
                result.records += len(batch)
                result.rows += written

            span.set_attribute("reindex.rows", result.rows)

        ROWS_WRITTEN.labels(owner_type=self.owner_type, field=field, path="bulk").inc(result.rows)
        logger.info(
            "Bulk reindexed %s.%s: %d records, %d trigram rows in %d batches",
            self.owner_type,
            field,
            result.records,
            result.rows,
            result.batches,
        )
        return result

    def _reindex_batch(self, batch: list[Any], owner_ids: list, field: str, *, multi_row: bool) -> int:
        with self.index.transaction():
            self.index.delete_many(self.owner_type, owner_ids, field)

            rows: list[TrigramRow] = []
            for record, owner_id in zip(batch, owner_ids, strict=True):
                for trigram, score in self.trigram_source.decompose(field_text(record, field)).items():
                    rows.append(
                        TrigramRow(
                            owner_type=self.owner_type,
                            owner_id=owner_id,
                            field=field,
                            trigram=trigram,
                            score=score,
                        )
                    )

            # Deletes alone are a valid outcome for a batch of empty values
            if rows:
                self.index.insert(rows, multi_row=multi_row)
        return len(rows)
