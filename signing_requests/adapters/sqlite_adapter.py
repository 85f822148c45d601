"""SQLite implementation of DatabaseAdapter.

One shared connection guarded by a re-entrant lock; every write commits
before the lock is released, so each call is one atomic statement.
"""

from __future__ import annotations
from typing import Any, List, Dict, Optional
from pathlib import Path
from threading import RLock
import sqlite3

from core.common.db_interface import create_sqlite_connection
from signing_requests.adapters.database_adapter import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """SQLite implementation of DatabaseAdapter."""

    def __init__(self, db_path: str | Path):
        """
        Args:
            db_path: Path to SQLite database file (or ":memory:")
        """
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = RLock()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create connection."""
        with self._lock:
            if self._conn is None:
                if str(self._db_path) != ":memory:":
                    self._db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = create_sqlite_connection(
                    self._db_path,
                    check_same_thread=False,
                    foreign_keys=True
                )
            return self._conn

    def execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            cursor = self.conn.execute(query, params)
            self.conn.commit()
            return cursor

    def fetchone(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.conn.execute(query, params).fetchone()
            return dict(row) if row else None

    def fetchall(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
            return [dict(row) for row in rows]

    def insert(self, table: str, data: Dict[str, Any]) -> int:
        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?"] * len(data))
        query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
        with self._lock:
            cursor = self.conn.execute(query, tuple(data.values()))
            self.conn.commit()
            return cursor.lastrowid

    def update(self, table: str, data: Dict[str, Any], where: str, where_params: tuple = ()) -> int:
        set_clause = ", ".join([f"{key} = ?" for key in data.keys()])
        params = tuple(data.values()) + tuple(where_params)
        query = f"UPDATE {table} SET {set_clause} WHERE {where}"
        with self._lock:
            cursor = self.conn.execute(query, params)
            self.conn.commit()
            return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self._conn:
                try:
                    self._conn.close()
                finally:
                    self._conn = None

    def executescript(self, script: str) -> None:
        with self._lock:
            self.conn.executescript(script)
            self.conn.commit()
