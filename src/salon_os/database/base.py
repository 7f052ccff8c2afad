"""
Base repository class for SQLite operations.
"""
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple


class BaseRepository(ABC):
    """SQLite plumbing shared by the repositories: schema, dict rows, transactions."""

    def __init__(self, db_path: str, busy_timeout_s: float = 5.0):
        """
        Initialize repository with database path.

        Args:
            db_path: Path to SQLite database
            busy_timeout_s: How long a connection waits on a locked database
        """
        self.db_path = db_path
        self.busy_timeout_s = busy_timeout_s
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @abstractmethod
    def _init_schema(self):
        """Initialize database schema. Must be implemented by subclasses."""
        pass

    def _get_connection(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode with dict-like rows."""
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_s, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements as one write transaction.

        Everything inside the block is committed together, or rolled back if
        the block raises.
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _execute_script(self, statements: List[str]):
        with self._transaction() as conn:
            for statement in statements:
                conn.execute(statement)

    def _fetch_one(self, query: str, params: Tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and fetch one result as dict."""
        conn = self._get_connection()
        try:
            row = conn.execute(query, params).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def _fetch_all(self, query: str, params: Tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and fetch all results as list of dicts."""
        conn = self._get_connection()
        try:
            return [dict(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    @staticmethod
    def _insert(conn: sqlite3.Connection, table: str, data: Dict[str, Any]) -> int:
        """Insert a row on an open connection and return its row id."""
        columns = ', '.join(data.keys())
        placeholders = ', '.join(['?' for _ in data])
        cursor = conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(data.values()),
        )
        return cursor.lastrowid

    @staticmethod
    def _upsert(conn: sqlite3.Connection, table: str, data: Dict[str, Any]):
        """Insert or replace a row on an open connection."""
        columns = ', '.join(data.keys())
        placeholders = ', '.join(['?' for _ in data])
        conn.execute(
            f"INSERT OR REPLACE INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(data.values()),
        )
