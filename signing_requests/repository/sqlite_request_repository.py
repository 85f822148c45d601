"""SQLite implementation of RequestRepository.

One row per request. Approvers and history are embedded as JSON columns so
that a single UPDATE replaces them together with status and hashes.
Optimistic concurrency uses an integer ``version`` column.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from core.helpers.date_time_helper import parse_iso, to_iso
from signing_requests.adapters.database_adapter import DatabaseAdapter
from signing_requests.adapters.sqlite_adapter import SQLiteAdapter
from signing_requests.exceptions.errors import (
    ConcurrentModificationError,
    ImmutableFieldError,
    NotFoundError,
)
from signing_requests.models.request_models import (
    Approver,
    HistoryEntry,
    Request,
    RequestStatus,
)
from signing_requests.repository.repo_config import RepoConfig

logger = logging.getLogger(__name__)


class SQLiteRequestRepository:
    """SQLite backend for signing requests.

    The repository is DB-only; document bytes live in the storage adapter.
    """

    def __init__(self, config: RepoConfig, *, db_adapter: Optional[DatabaseAdapter] = None) -> None:
        self._cfg = config
        self._db = db_adapter or SQLiteAdapter(config.db_path)
        self._ensure_schema()

    # =========================================================================
    # Schema Management
    # =========================================================================

    def _ensure_schema(self) -> None:
        self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS requests (
                request_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                file_ref TEXT NOT NULL,
                original_filename TEXT NOT NULL,
                initiator TEXT NOT NULL,
                status TEXT NOT NULL,
                sealed_hash TEXT,
                ledger_reference TEXT,
                created_at TEXT NOT NULL,
                completed_at TEXT,
                approvers_json TEXT NOT NULL,
                history_json TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0
            );

            CREATE INDEX IF NOT EXISTS idx_requests_sealed_hash ON requests(sealed_hash);
            """
        )

    # =========================================================================
    # Mapping
    # =========================================================================

    @staticmethod
    def _to_row(request: Request) -> Dict[str, Any]:
        return {
            "request_id": request.request_id,
            "name": request.name,
            "category": request.category,
            "file_ref": request.file_ref,
            "original_filename": request.original_filename,
            "initiator": request.initiator,
            "status": request.status.value,
            "sealed_hash": request.sealed_hash,
            "ledger_reference": request.ledger_reference,
            "created_at": to_iso(request.created_at),
            "completed_at": to_iso(request.completed_at),
            "approvers_json": json.dumps([a.to_dict() for a in request.approvers], ensure_ascii=False),
            "history_json": json.dumps([h.to_dict() for h in request.history], ensure_ascii=False),
        }

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> Request:
        return Request(
            request_id=row["request_id"],
            name=row["name"],
            category=row["category"],
            file_ref=row["file_ref"],
            original_filename=row["original_filename"],
            initiator=row["initiator"],
            approvers=[Approver.from_dict(a) for a in json.loads(row["approvers_json"] or "[]")],
            status=RequestStatus(row["status"]),
            sealed_hash=row.get("sealed_hash"),
            ledger_reference=row.get("ledger_reference"),
            created_at=parse_iso(row["created_at"]),
            completed_at=parse_iso(row.get("completed_at")),
            history=tuple(HistoryEntry.from_dict(h) for h in json.loads(row["history_json"] or "[]")),
            version=int(row.get("version") or 0),
        )

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, request: Request) -> Request:
        row = self._to_row(request)
        row["version"] = 0
        self._db.insert("requests", row)
        logger.debug("Stored request %s", request.request_id)
        return self._from_row(row)

    def get_by_id(self, request_id: str) -> Optional[Request]:
        row = self._db.fetchone("SELECT * FROM requests WHERE request_id = ?", (request_id,))
        return self._from_row(row) if row else None

    def find_by_hash(self, sealed_hash: str) -> Optional[Request]:
        if not sealed_hash:
            return None
        row = self._db.fetchone(
            "SELECT * FROM requests WHERE sealed_hash = ? ORDER BY created_at ASC LIMIT 1",
            (sealed_hash.lower(),),
        )
        return self._from_row(row) if row else None

    def update(self, request: Request, expected_version: int) -> Request:
        current = self._db.fetchone(
            "SELECT * FROM requests WHERE request_id = ?", (request.request_id,)
        )
        if current is None:
            raise NotFoundError(f"Request {request.request_id} not found", request_id=request.request_id)
        if int(current["version"]) != expected_version:
            raise ConcurrentModificationError(
                f"Request {request.request_id} changed (stored v{current['version']}, expected v{expected_version})",
                request_id=request.request_id,
                expected_version=expected_version,
            )
        self._check_append_only(self._from_row(current), request)

        row = self._to_row(request)
        row.pop("request_id")
        row["version"] = expected_version + 1
        affected = self._db.update(
            "requests", row, "request_id = ? AND version = ?", (request.request_id, expected_version)
        )
        if affected == 0:
            raise ConcurrentModificationError(
                f"Request {request.request_id} changed during update",
                request_id=request.request_id,
                expected_version=expected_version,
            )
        row["request_id"] = request.request_id
        return self._from_row(row)

    @staticmethod
    def _check_append_only(stored: Request, incoming: Request) -> None:
        """Reject writes that edit history, reshape the approver set or move placements."""
        if incoming.history[: len(stored.history)] != stored.history:
            raise ImmutableFieldError(f"History of {stored.request_id} is append-only", request_id=stored.request_id)
        if [(a.identity, a.placement) for a in incoming.approvers] != \
                [(a.identity, a.placement) for a in stored.approvers]:
            raise ImmutableFieldError(f"Approver set of {stored.request_id} is fixed at creation", request_id=stored.request_id)
        for old, new in zip(stored.approvers, incoming.approvers):
            if old.signed and (not new.signed or new.signed_at != old.signed_at):
                raise ImmutableFieldError(f"Signature of {old.identity} on {stored.request_id} cannot be revoked", request_id=stored.request_id)
        if stored.sealed_hash and incoming.sealed_hash != stored.sealed_hash:
            raise ImmutableFieldError(f"Sealed hash of {stored.request_id} is set once", request_id=stored.request_id)
        if stored.ledger_reference and incoming.ledger_reference != stored.ledger_reference:
            raise ImmutableFieldError(f"Ledger reference of {stored.request_id} is set once", request_id=stored.request_id)
