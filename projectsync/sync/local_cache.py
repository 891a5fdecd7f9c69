"""
Local SQLite cache of project records.

This module keeps every project the client has written so the layer stays
usable when the remote store is unreachable. Records are stored in their
cache form (camelCase JSON), one row per record, keyed by temporary id.
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from ..errors import LocalStorageError
from ..models.project_record import ProjectRecord

logger = logging.getLogger(__name__)


class LocalCacheStore:
    """
    SQLite-based cache holding the full collection of project records.

    This class provides:
    - Whole-collection read/write (read_all / write_all)
    - Indexed single-record access by temporary or permanent id
    - Thread-safe operations
    - LocalStorageError for every medium or serialization failure
    """

    DEFAULT_DB_PATH = "projectsync_cache.db"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the local cache.

        Args:
            db_path: Path to the SQLite database file. If None, uses default.
                     Use ":memory:" for in-memory database (useful for testing).
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self._lock = threading.Lock()
        self._is_memory = self.db_path == ":memory:"
        self._shared_conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def _init_database(self) -> None:
        """Create the records table if it does not exist yet."""
        with self._lock, self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS project_records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    temporary_id TEXT NOT NULL UNIQUE,
                    permanent_id TEXT,
                    payload TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_permanent_id
                ON project_records(permanent_id)
            """)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        # For in-memory databases, reuse the same connection
        if self._is_memory:
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(":memory:", check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
            return self._shared_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, translating failures to LocalStorageError."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cannot open local cache {self.db_path}: {e}") from e

        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"Local cache error: {e}")
            raise LocalStorageError(f"Local cache operation failed: {e}") from e
        except (TypeError, ValueError) as e:
            logger.error(f"Local cache serialization error: {e}")
            raise LocalStorageError(f"Cannot serialize project record: {e}") from e
        finally:
            if not self._is_memory:
                conn.close()

    @staticmethod
    def _encode(record: ProjectRecord) -> tuple:
        if not record.temporary_id:
            raise ValueError("cached records need a temporary id")
        return (record.temporary_id, record.permanent_id, json.dumps(record.to_cache_dict()))

    @staticmethod
    def _decode(row: sqlite3.Row) -> ProjectRecord:
        return ProjectRecord.from_cache_dict(json.loads(row['payload']))

    def read_all(self) -> List[ProjectRecord]:
        """
        Read every cached record in insertion order.

        Returns:
            List of cached project records (empty when nothing is cached)
        """
        with self._lock, self._connection() as conn:
            rows = conn.execute(
                "SELECT payload FROM project_records ORDER BY seq ASC"
            ).fetchall()
            return [self._decode(row) for row in rows]

    def write_all(self, records: Sequence[ProjectRecord]) -> None:
        """
        Replace the whole collection with the given records.

        Args:
            records: Full sequence of records to persist, in order
        """
        with self._lock, self._connection() as conn:
            encoded = [self._encode(record) for record in records]
            conn.execute("DELETE FROM project_records")
            conn.executemany(
                """
                INSERT INTO project_records (temporary_id, permanent_id, payload)
                VALUES (?, ?, ?)
                """,
                encoded
            )

    def get(self, record_id: str) -> Optional[ProjectRecord]:
        """
        Find a cached record by temporary or permanent id.

        Args:
            record_id: Either id of the record

        Returns:
            The record, or None if it is not cached
        """
        if not record_id:
            return None
        with self._lock, self._connection() as conn:
            row = conn.execute(
                """
                SELECT payload FROM project_records
                WHERE temporary_id = ? OR permanent_id = ?
                ORDER BY seq ASC
                LIMIT 1
                """,
                (record_id, record_id)
            ).fetchone()
            return self._decode(row) if row else None

    def put(self, record: ProjectRecord) -> None:
        """
        Insert a record or replace the cached entry with the same temporary id in place.

        Args:
            record: The record to store; must carry a temporary id
        """
        with self._lock, self._connection() as conn:
            conn.execute(
                """
                INSERT INTO project_records (temporary_id, permanent_id, payload)
                VALUES (?, ?, ?)
                ON CONFLICT(temporary_id) DO UPDATE SET
                    permanent_id = excluded.permanent_id,
                    payload = excluded.payload
                """,
                self._encode(record)
            )

    def delete(self, record_id: str) -> bool:
        """
        Remove the cached record matching either id.

        Returns:
            True if a record was removed
        """
        if not record_id:
            return False
        with self._lock, self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM project_records WHERE temporary_id = ? OR permanent_id = ?",
                (record_id, record_id)
            )
            return cursor.rowcount > 0

    def count(self) -> int:
        with self._lock, self._connection() as conn:
            return conn.execute("SELECT COUNT(*) AS count FROM project_records").fetchone()['count']

    def count_local_only(self) -> int:
        """Number of cached records the remote store has not confirmed yet."""
        with self._lock, self._connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) AS count FROM project_records WHERE permanent_id IS NULL"
            ).fetchone()['count']

    def clear(self) -> int:
        """
        Remove every cached record.

        Returns:
            Number of records deleted
        """
        with self._lock, self._connection() as conn:
            return conn.execute("DELETE FROM project_records").rowcount

    def close(self) -> None:
        """Close the cache and any open connections."""
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None
