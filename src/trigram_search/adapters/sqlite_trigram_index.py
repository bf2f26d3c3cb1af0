"""SQLite-backed trigram index.

- One row per (owner_type, owner_id, fuzzy_field, score, trigram) observation
- Covering indexes for trigram lookups and per-owner deletes
- Autocommit connections; explicit BEGIN IMMEDIATE/COMMIT for batch transactions
- Multi-row INSERT statements when the SQLite library supports them
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator, Sequence
from contextlib import contextmanager
import logging
from pathlib import Path
import sqlite3

from trigram_search.adapters.sqlite_connection import MEMORY_DB, SQLiteConnectionPool, validate_table_name
from trigram_search.adapters.trigram_index import AbstractTrigramIndex
from trigram_search.config import Settings
from trigram_search.domain.errors import TrigramStoreError
from trigram_search.domain.model import TRIGRAM_LENGTH, OwnerId, TrigramMatch, TrigramRow


logger = logging.getLogger(__name__)

DEFAULT_MIN_MULTI_ROW_VERSION = (3, 7, 11)
_COLUMNS = ("owner_type", "owner_id", "fuzzy_field", "score", "trigram")


def create_trigram_schema(conn: sqlite3.Connection, table: str) -> None:
    """Create the trigram table and its lookup indexes if missing."""
    conn.executescript(f"""
        CREATE TABLE IF NOT EXISTS "{table}" (
            id INTEGER PRIMARY KEY,
            owner_type TEXT NOT NULL,
            owner_id NOT NULL,
            fuzzy_field TEXT NOT NULL,
            score REAL NOT NULL,
            trigram TEXT NOT NULL CHECK (length(trigram) = {TRIGRAM_LENGTH})
        );

        CREATE INDEX IF NOT EXISTS "idx_{table}_lookup" ON "{table}"(owner_type, fuzzy_field, trigram);
        CREATE INDEX IF NOT EXISTS "idx_{table}_owner" ON "{table}"(owner_type, owner_id, fuzzy_field);
    """)


class SqliteTrigramIndex(AbstractTrigramIndex):
    """Trigram rows persisted in one SQLite table.

    Connections are thread-local, so a ``:memory:`` database is private to the
    thread that created it; use a file path to share an index across threads.
    """

    def __init__(
        self,
        db_path: str | Path = MEMORY_DB,
        table: str = "trigrams",
        *,
        busy_timeout_ms: int | None = 30000,
        min_multi_row_version: tuple[int, ...] = DEFAULT_MIN_MULTI_ROW_VERSION,
    ) -> None:
        self.table = validate_table_name(table)
        self.db_path = str(db_path)
        self.min_multi_row_version = tuple(min_multi_row_version)
        self._pool = SQLiteConnectionPool(
            self.db_path,
            bootstrap=lambda conn: create_trigram_schema(conn, self.table),
            busy_timeout_ms=busy_timeout_ms,
        )
        self._insert_prefix = f'INSERT INTO "{self.table}" ({", ".join(_COLUMNS)}) VALUES '

    @classmethod
    def from_settings(cls, settings: Settings, *, table: str | None = None) -> SqliteTrigramIndex:
        """Build an index from application settings."""
        return cls(
            settings.db_path,
            table or settings.trigram_table,
            busy_timeout_ms=settings.busy_timeout_ms,
            min_multi_row_version=settings.get_min_multi_row_sqlite_version(),
        )

    @property
    def supports_multi_row_insert(self) -> bool:
        return sqlite3.sqlite_version_info >= self.min_multi_row_version

    def delete_all(self, owner_type: str, owner_id: OwnerId, field: str) -> int:
        sql = f'DELETE FROM "{self.table}" WHERE owner_type = ? AND owner_id = ? AND fuzzy_field = ?'
        with self._pool.get_connection() as conn:
            return self._execute(conn, sql, (owner_type, owner_id, field)).rowcount

    def delete_many(self, owner_type: str, owner_ids: Collection[OwnerId], field: str) -> int:
        ids = list(dict.fromkeys(owner_ids))
        if not ids:
            return 0
        removed = 0
        with self._pool.get_connection() as conn:
            chunk_size = max(1, self._max_variables(conn) - 2)
            for start in range(0, len(ids), chunk_size):
                chunk = ids[start : start + chunk_size]
                placeholders = ", ".join("?" for _ in chunk)
                sql = (
                    f'DELETE FROM "{self.table}" '
                    f"WHERE owner_type = ? AND fuzzy_field = ? AND owner_id IN ({placeholders})"
                )
                removed += self._execute(conn, sql, (owner_type, field, *chunk)).rowcount
        return removed

    def delete_owner(self, owner_type: str, owner_id: OwnerId) -> int:
        sql = f'DELETE FROM "{self.table}" WHERE owner_type = ? AND owner_id = ?'
        with self._pool.get_connection() as conn:
            return self._execute(conn, sql, (owner_type, owner_id)).rowcount

    def insert(self, rows: Sequence[TrigramRow], *, multi_row: bool = False) -> int:
        if not rows:
            return 0
        row_values = "(" + ", ".join("?" for _ in _COLUMNS) + ")"
        with self._pool.get_connection() as conn:
            if not multi_row:
                for row in rows:
                    self._execute(conn, self._insert_prefix + row_values, row.as_params())
                return len(rows)

            # One statement per batch unless the bound-variable limit forces a split
            rows_per_statement = max(1, self._max_variables(conn) // len(_COLUMNS))
            for start in range(0, len(rows), rows_per_statement):
                chunk = rows[start : start + rows_per_statement]
                sql = self._insert_prefix + ", ".join(row_values for _ in chunk)
                params = [value for row in chunk for value in row.as_params()]
                self._execute(conn, sql, params)
        return len(rows)

    def query(
        self,
        owner_type: str,
        field: str,
        trigrams: Iterable[str],
        *,
        offset: int = 0,
    ) -> list[TrigramMatch]:
        wanted = list(dict.fromkeys(trigrams))
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        sql = (
            f"SELECT owner_id, COUNT(*) AS matches, MAX(score) AS score "
            f'FROM "{self.table}" '
            f"WHERE owner_type = ? AND fuzzy_field = ? AND trigram IN ({placeholders}) "
            f"GROUP BY owner_id "
            f"ORDER BY matches DESC, score ASC, owner_id ASC "
            f"LIMIT -1 OFFSET ?"
        )
        with self._pool.get_connection() as conn:
            cursor = self._execute(conn, sql, (owner_type, field, *wanted, max(0, offset)))
            return [
                TrigramMatch(owner_id=owner_id, matches=int(matches), score=float(score))
                for owner_id, matches, score in cursor
            ]

    def rows_for(self, owner_type: str, owner_id: OwnerId, field: str | None = None) -> list[TrigramRow]:
        sql = f'SELECT fuzzy_field, trigram, score FROM "{self.table}" WHERE owner_type = ? AND owner_id = ?'
        params: tuple = (owner_type, owner_id)
        if field is not None:
            sql += " AND fuzzy_field = ?"
            params = (*params, field)
        sql += " ORDER BY id"
        with self._pool.get_connection() as conn:
            cursor = self._execute(conn, sql, params)
            return [
                TrigramRow(owner_type=owner_type, owner_id=owner_id, field=row_field, trigram=trigram, score=score)
                for row_field, trigram, score in cursor
            ]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._pool.get_connection() as conn:
            if conn.in_transaction:
                yield
                return

            self._execute(conn, "BEGIN IMMEDIATE")
            try:
                yield
                self._execute(conn, "COMMIT")
            except BaseException:
                self._rollback(conn)
                raise

    def count(self) -> int:
        """Total number of stored rows."""
        with self._pool.get_connection() as conn:
            return self._execute(conn, f'SELECT COUNT(*) FROM "{self.table}"').fetchone()[0]

    def close(self) -> None:
        self._pool.close_all()

    def _rollback(self, conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as rollback_error:
            logger.warning("Failed to roll back trigram transaction on %s: %s", self.table, rollback_error)

    def _max_variables(self, conn: sqlite3.Connection) -> int:
        return conn.getlimit(sqlite3.SQLITE_LIMIT_VARIABLE_NUMBER)

    def _execute(self, conn: sqlite3.Connection, sql: str, params: Sequence = ()) -> sqlite3.Cursor:
        try:
            return conn.execute(sql, params)
        except sqlite3.Error as e:
            raise TrigramStoreError(f"Trigram store statement failed on {self.table}: {e}") from e
