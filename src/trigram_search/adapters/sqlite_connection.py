"""Shared SQLite connection handling for the trigram and owner stores."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
import re
import sqlite3
import threading

from trigram_search.domain.errors import TrigramStoreError


MEMORY_DB = ":memory:"
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def apply_write_pragmas(
    conn: sqlite3.Connection,
    *,
    busy_timeout_ms: int | None = 30000,
    cache_size_kb: int = -16384,
) -> None:
    """Apply write-friendly PRAGMAs to a file-backed database."""
    if busy_timeout_ms is not None:
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute(f"PRAGMA cache_size = {int(cache_size_kb)}")


def validate_table_name(table: str) -> str:
    """Reject table names that are not plain SQL identifiers."""
    if not _IDENTIFIER.match(table or ""):
        raise ValueError(f"Invalid table name '{table}'")
    return table


class SQLiteConnectionPool:
    """Thread-local autocommit connections, bootstrapped on first use.

    ``:memory:`` databases are therefore private to the thread that opened them.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        bootstrap: Callable[[sqlite3.Connection], None] | None = None,
        busy_timeout_ms: int | None = 30000,
    ) -> None:
        self.db_path = str(db_path)
        self.bootstrap = bootstrap
        self.busy_timeout_ms = busy_timeout_ms
        self._local = threading.local()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get the calling thread's connection, creating it on first use."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = self._create_connection()

        yield self._local.connection

    def _create_connection(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            if self.db_path != MEMORY_DB:
                apply_write_pragmas(conn, busy_timeout_ms=self.busy_timeout_ms)
            if self.bootstrap is not None:
                self.bootstrap(conn)
        except sqlite3.Error as e:
            raise TrigramStoreError(f"Failed to open SQLite database {self.db_path}: {e}") from e
        return conn

    def close_all(self) -> None:
        """Close the calling thread's connection."""
        if getattr(self._local, "connection", None) is not None:
            try:
                self._local.connection.close()
            except sqlite3.Error:
                pass  # Ignore errors during cleanup
            self._local.connection = None
