"""
History Store

SQLite-backed record of the content each link displayed in the past, used
to revert a link when its owner rejects the current content.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from walltaker.core.config.models import HistoryConfig
from walltaker.core.exceptions import HistoryStoreError
from walltaker.models import HistoryEntry
from walltaker.utils import utc_now


logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS past_links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    link_id INTEGER NOT NULL,
    post_url TEXT,
    post_thumbnail_url TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_past_links_link ON past_links (link_id, created_at);
"""


class ConnectionPool:
    """
    Hands out at most ``size`` SQLite connections at a time.

    Connections are opened lazily and reused once released. Waiting longer
    than ``acquire_timeout`` for a free slot raises HistoryStoreError.
    """

    def __init__(self, db_path: Path, size: int = 5, acquire_timeout: float = 5.0):
        self.db_path = db_path
        self.acquire_timeout = acquire_timeout
        self._slots = threading.BoundedSemaphore(size)
        self._idle: List[sqlite3.Connection] = []
        self._lock = threading.Lock()

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30.0, check_same_thread=False)
            conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as e:
            raise HistoryStoreError(f"Cannot open history database {self.db_path}: {e}", cause=e)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection for the duration of the block."""
        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise HistoryStoreError(
                f"No history database connection free after {self.acquire_timeout}s"
            )
        try:
            with self._lock:
                conn = self._idle.pop() if self._idle else None
            if conn is None:
                conn = self._open()
            try:
                yield conn
            finally:
                with self._lock:
                    self._idle.append(conn)
        finally:
            self._slots.release()

    def close_all(self) -> None:
        """Close idle connections."""
        with self._lock:
            idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()


class HistoryStore:
    """
    Append/query access to a link's past content.

    Entries are never updated; they are only appended and deleted in
    batches. ``revert_target`` runs its delete and lookup in a single
    transaction.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None, max_connections: int = 5,
                 acquire_timeout: float = 5.0):
        """
        Initialize the store, creating the schema if needed.

        Args:
            db_path: SQLite database file (default: .walltaker/history.db)
            max_connections: Maximum number of pooled connections
            acquire_timeout: Seconds to wait for a free connection
        """
        if db_path is None:
            db_path = Path.cwd() / ".walltaker" / "history.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection_pool = ConnectionPool(self.db_path, max_connections, acquire_timeout)

        with self._transaction() as conn:
            conn.executescript(SCHEMA)

    @classmethod
    def from_config(cls, config: HistoryConfig) -> 'HistoryStore':
        """Open the store described by the history section of the configuration."""
        return cls(config.db_path, config.max_connections)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for atomic database operations."""
        with self._connection_pool.connection() as conn:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise HistoryStoreError(f"History transaction failed: {e}", cause=e)
            except Exception:
                conn.rollback()
                raise

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> HistoryEntry:
        return HistoryEntry(
            id=row['id'],
            link_id=row['link_id'],
            post_url=row['post_url'],
            post_thumbnail_url=row['post_thumbnail_url'],
            created_at=datetime.fromisoformat(row['created_at']),
        )

    def append(self, link_id: int, post_url: Optional[str],
               post_thumbnail_url: Optional[str] = None,
               created_at: Optional[datetime] = None) -> HistoryEntry:
        """
        Record content a link displayed.

        Args:
            link_id: Link the content belonged to
            post_url: Content URL
            post_thumbnail_url: Thumbnail URL
            created_at: Timestamp, defaults to now (UTC)

        Returns:
            The stored entry
        """
        created_at = created_at or utc_now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO past_links (link_id, post_url, post_thumbnail_url, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (link_id, post_url, post_thumbnail_url, created_at.isoformat())
            )
            entry_id = cursor.lastrowid

        return HistoryEntry(entry_id, link_id, post_url, post_thumbnail_url, created_at)

    def list_for_link(self, link_id: int) -> List[HistoryEntry]:
        """All entries for a link, oldest first."""
        with self._connection_pool.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM past_links WHERE link_id = ? ORDER BY created_at, id",
                (link_id,)
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def count(self, link_id: int) -> int:
        """Number of entries recorded for a link."""
        with self._connection_pool.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM past_links WHERE link_id = ?", (link_id,)
            ).fetchone()
        return row[0]

    def delete_matching(self, conn: sqlite3.Connection, link_id: int,
                        post_url: Optional[str]) -> int:
        """Delete a link's entries showing ``post_url``. Runs on the caller's transaction."""
        cursor = conn.execute(
            "DELETE FROM past_links WHERE link_id = ? AND post_url IS ?",
            (link_id, post_url)
        )
        return cursor.rowcount

    def latest_other_than(self, conn: sqlite3.Connection, link_id: int,
                          post_url: Optional[str]) -> Optional[HistoryEntry]:
        """Most recent entry of a link whose URL differs from ``post_url``."""
        row = conn.execute(
            """
            SELECT * FROM past_links
            WHERE link_id = ? AND post_url IS NOT ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (link_id, post_url)
        ).fetchone()
        return self._row_to_entry(row) if row else None

    def revert_target(self, link_id: int,
                      current_url: Optional[str]) -> Tuple[int, Optional[HistoryEntry]]:
        """
        Drop history entries duplicating the current content and find what
        to show instead.

        Both steps share one transaction: either the duplicates are gone and
        a target was computed from the remaining history, or nothing changed.

        Args:
            link_id: Link being reverted
            current_url: URL the link currently shows

        Returns:
            (number of deleted entries, entry to revert to or None)

        Raises:
            HistoryStoreError: If the transaction failed and was rolled back
        """
        with self._transaction() as conn:
            deleted = self.delete_matching(conn, link_id, current_url)
            target = self.latest_other_than(conn, link_id, current_url)

        logger.debug(f"Link {link_id}: removed {deleted} duplicate history entries")
        return deleted, target

    def close(self) -> None:
        """Close all database connections."""
        self._connection_pool.close_all()
