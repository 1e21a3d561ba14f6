"""Local SQLite database for development and tests.

Exposes the same async interface as ``TursoDatabase`` so the store does not
care which one it talks to.
"""
import sqlite3
import threading
from typing import Optional

from .models import ResultSet
from .turso import DatabaseError, Statement


class LocalDatabase:
    """SQLite-backed database sharing one connection across requests."""

    def __init__(self, path: str):
        if path.startswith("file:"):
            path = path[len("file:"):]
        self.path = path or ":memory:"
        self._conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()

    def _run(self, sql: str, args: Optional[list]) -> ResultSet:
        cursor = self._conn.execute(sql, args or [])
        rows = [dict(row) for row in cursor.fetchall()]
        return ResultSet(
            rows=rows,
            affected_row_count=max(cursor.rowcount, 0),
            last_insert_rowid=cursor.lastrowid,
        )

    async def execute(self, sql: str, args: Optional[list] = None) -> ResultSet:
        """Execute a single SQL statement."""
        with self._lock:
            try:
                return self._run(sql, args)
            except sqlite3.Error as e:
                raise DatabaseError(str(e)) from e

    async def batch(self, statements: list[Statement], transactional: bool = True) -> list[ResultSet]:
        """Execute multiple SQL statements, atomically when transactional."""
        with self._lock:
            try:
                if transactional:
                    self._conn.execute("BEGIN IMMEDIATE")
                results = [self._run(sql, args) for sql, args in statements]
                if transactional:
                    self._conn.execute("COMMIT")
                return results
            except sqlite3.Error as e:
                if transactional and self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise DatabaseError(str(e)) from e

    async def close(self) -> None:
        self._conn.close()
