"""
core/logging/logic/logger.py
============================

Thread-safe operational event log with a SQLite backend.

One instance is built at process start and handed to the services that
record events; there is no ambient global. The event log complements the
per-request history, it never replaces it.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from core.common.db_interface import create_sqlite_connection
from core.logging.models.log_entry import LogEntry

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not any(getattr(h, "_custody_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._custody_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)


class EventLogger:
    """Thread-safe event logger reusing one sqlite connection."""

    def __init__(self, db_path: Path | str) -> None:
        self._lock = threading.Lock()
        self.db_path: Path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._ensure_db()

    # ------------------------------------------------------------------ #
    #  Connection management (reuse single connection)                   #
    # ------------------------------------------------------------------ #
    def _get_connection(self) -> sqlite3.Connection:
        # callers hold self._lock
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                os.makedirs(self.db_path.parent, exist_ok=True)
            self._conn = create_sqlite_connection(self.db_path, check_same_thread=False)
        return self._conn

    def close(self) -> None:
        """Close the database connection and release resources."""
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None

    # ------------------------------------------------------------------ #
    #  Public API: log                                                   #
    # ------------------------------------------------------------------ #
    def log(
        self,
        feature: str,
        event: str,
        *,
        username: Optional[str] = None,
        level: str = "INFO",
        reference_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> LogEntry:
        """Persist one event and return it."""
        entry = LogEntry(
            id=None,
            timestamp=datetime.now(timezone.utc),
            username=username or "SYSTEM",
            feature=feature,
            event=event,
            reference_id=reference_id,
            message=message,
            log_level=level.upper(),
        )
        self._insert_log(entry)
        return entry

    # ------------------------------------------------------------------ #
    #  Fetch / Query                                                     #
    # ------------------------------------------------------------------ #
    def fetch_logs(self, limit: int = 100) -> List[LogEntry]:
        with self._lock:
            rows = self._get_connection().execute(
                "SELECT * FROM logs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
            return [LogEntry.from_dict(dict(row)) for row in rows]

    def query_logs(
        self,
        *,
        username: Optional[str] = None,
        feature: Optional[str] = None,
        event: Optional[str] = None,
        reference_id: Optional[str] = None,
        level: Optional[str] = None,
        limit: int = 1_000,
    ) -> List[LogEntry]:
        query = "SELECT * FROM logs WHERE 1=1"
        params: list[object] = []

        if username is not None:
            query += " AND username = ?"
            params.append(username)
        if feature is not None:
            query += " AND feature = ?"
            params.append(feature)
        if event is not None:
            query += " AND event = ?"
            params.append(event)
        if reference_id is not None:
            query += " AND reference_id = ?"
            params.append(reference_id)
        if level is not None:
            query += " AND log_level = ?"
            params.append(level.upper())

        query += " ORDER BY id ASC LIMIT ?"
        params.append(limit)

        with self._lock:
            rows = self._get_connection().execute(query, params).fetchall()
            return [LogEntry.from_dict(dict(row)) for row in rows]

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                  #
    # ------------------------------------------------------------------ #
    def _ensure_db(self) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    username TEXT,
                    feature TEXT NOT NULL,
                    event TEXT NOT NULL,
                    reference_id TEXT,
                    message TEXT,
                    log_level TEXT NOT NULL DEFAULT 'INFO'
                )
                """
            )
            conn.commit()

    def _insert_log(self, entry: LogEntry) -> None:
        with self._lock:
            conn = self._get_connection()
            cur = conn.execute(
                """
                INSERT INTO logs
                    (timestamp, username, feature, event,
                     reference_id, message, log_level)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.timestamp.isoformat(),
                    entry.username,
                    entry.feature,
                    entry.event,
                    entry.reference_id,
                    entry.message,
                    entry.log_level,
                ),
            )
            conn.commit()
            entry.id = cur.lastrowid
