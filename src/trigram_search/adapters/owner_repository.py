"""Owner store abstractions and implementations.

Owners are the records whose text fields are fuzzily indexed. The trigram
services only need to look records up by id, store them, delete them and
walk the whole collection in batches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
import logging
from pathlib import Path
import sqlite3
from typing import Any, Generic, TypeVar

import orjson
from pydantic import BaseModel

from trigram_search.adapters.sqlite_connection import MEMORY_DB, SQLiteConnectionPool, validate_table_name
from trigram_search.domain.errors import TrigramStoreError
from trigram_search.domain.model import OwnerId, owner_id_of


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _id_sort_key(owner_id: OwnerId) -> tuple[int, OwnerId]:
    return (1, owner_id) if isinstance(owner_id, str) else (0, owner_id)


class AbstractOwnerRepository(ABC):
    """Abstract repository of owner records of a single kind."""

    owner_type: str

    @abstractmethod
    def get(self, owner_id: OwnerId) -> Any | None:
        """Return the record with ``owner_id``, or None when it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def add(self, record: Any) -> None:
        """Insert or replace a record."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, owner_id: OwnerId) -> bool:
        """Delete a record; returns False when it did not exist."""
        raise NotImplementedError

    @abstractmethod
    def iter_batches(self, batch_size: int) -> Iterator[list[Any]]:
        """Yield every record in id order, ``batch_size`` records at a time."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError


class InMemoryOwnerRepository(AbstractOwnerRepository):
    """Dictionary-backed owner store for any record exposing an ``id``."""

    def __init__(self, owner_type: str, records: Iterable[Any] = ()) -> None:
        self.owner_type = owner_type
        self._records: dict[OwnerId, Any] = {}
        for record in records:
            self.add(record)

    def get(self, owner_id: OwnerId) -> Any | None:
        return self._records.get(owner_id)

    def add(self, record: Any) -> None:
        self._records[owner_id_of(record)] = record

    def delete(self, owner_id: OwnerId) -> bool:
        return self._records.pop(owner_id, None) is not None

    def iter_batches(self, batch_size: int) -> Iterator[list[Any]]:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        ordered = [self._records[key] for key in sorted(self._records, key=_id_sort_key)]
        for start in range(0, len(ordered), batch_size):
            yield ordered[start : start + batch_size]

    def __len__(self) -> int:
        return len(self._records)


class SqliteOwnerRepository(AbstractOwnerRepository, Generic[ModelT]):
    """Pydantic models persisted as orjson payloads keyed by id.

    ``owner_type`` is the model class name, matching what trigram rows record.
    """

    def __init__(
        self,
        model: type[ModelT],
        db_path: str | Path = MEMORY_DB,
        *,
        table: str | None = None,
        busy_timeout_ms: int | None = 30000,
    ) -> None:
        self.model = model
        self.owner_type = model.__name__
        self.table = validate_table_name(table or f"{model.__name__.lower()}_records")
        self._pool = SQLiteConnectionPool(db_path, bootstrap=self._create_schema, busy_timeout_ms=busy_timeout_ms)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(f'CREATE TABLE IF NOT EXISTS "{self.table}" (id NOT NULL PRIMARY KEY, payload BLOB NOT NULL)')

    def get(self, owner_id: OwnerId) -> ModelT | None:
        with self._pool.get_connection() as conn:
            row = self._execute(conn, f'SELECT payload FROM "{self.table}" WHERE id = ?', (owner_id,)).fetchone()
        if row is None:
            return None
        return self._decode(row[0])

    def add(self, record: ModelT) -> None:
        if not isinstance(record, self.model):
            raise TypeError(f"Expected {self.model.__name__}, got {type(record).__name__}")
        payload = orjson.dumps(record.model_dump(mode="json"))
        with self._pool.get_connection() as conn:
            self._execute(
                conn,
                f'INSERT OR REPLACE INTO "{self.table}" (id, payload) VALUES (?, ?)',
                (owner_id_of(record), payload),
            )

    def delete(self, owner_id: OwnerId) -> bool:
        with self._pool.get_connection() as conn:
            cursor = self._execute(conn, f'DELETE FROM "{self.table}" WHERE id = ?', (owner_id,))
            return cursor.rowcount > 0

    def iter_batches(self, batch_size: int) -> Iterator[list[ModelT]]:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        last_id: OwnerId | None = None
        while True:
            with self._pool.get_connection() as conn:
                if last_id is None:
                    sql = f'SELECT id, payload FROM "{self.table}" ORDER BY id LIMIT ?'
                    params: tuple = (batch_size,)
                else:
                    sql = f'SELECT id, payload FROM "{self.table}" WHERE id > ? ORDER BY id LIMIT ?'
                    params = (last_id, batch_size)
                rows = self._execute(conn, sql, params).fetchall()
            if not rows:
                return
            last_id = rows[-1][0]
            yield [self._decode(payload) for _, payload in rows]
            if len(rows) < batch_size:
                return

    def __len__(self) -> int:
        with self._pool.get_connection() as conn:
            return self._execute(conn, f'SELECT COUNT(*) FROM "{self.table}"').fetchone()[0]

    def close(self) -> None:
        self._pool.close_all()

    def _decode(self, payload: bytes) -> ModelT:
        return self.model.model_validate(orjson.loads(payload))

    def _execute(self, conn: sqlite3.Connection, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return conn.execute(sql, params)
        except sqlite3.Error as e:
            raise TrigramStoreError(f"Owner store statement failed on {self.table}: {e}") from e
