"""
Signing request domain models.

A Request embeds its approvers and its history so that one store update
always replaces both together.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.helpers.date_time_helper import parse_iso, to_iso, utc_now

SYSTEM_ACTOR = "SYSTEM"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class HistoryAction(str, Enum):
    CREATED = "created"
    SIGNED = "signed"
    FINALIZED = "finalized"
    ERROR = "error"


def normalize_identity(value: str) -> str:
    return str(value or "").strip().lower()


@dataclass(frozen=True)
class Placement:
    """Stamp position; x/y in points measured from the page's top-left corner."""
    page_index: int = 0
    x: float = 0.0
    y: float = 0.0


@dataclass
class Approver:
    identity: str
    placement: Placement
    signed: bool = False
    signed_at: Optional[datetime] = None

    def matches(self, identity: str) -> bool:
        return normalize_identity(self.identity) == normalize_identity(identity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "page": self.placement.page_index,
            "x": self.placement.x,
            "y": self.placement.y,
            "signed": self.signed,
            "signedAt": to_iso(self.signed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Approver":
        return cls(
            identity=data["identity"],
            placement=Placement(
                page_index=int(data.get("page", 0)),
                x=float(data.get("x", 0.0)),
                y=float(data.get("y", 0.0)),
            ),
            signed=bool(data.get("signed", False)),
            signed_at=parse_iso(data.get("signedAt")),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable audit record."""
    action: HistoryAction
    actor: str
    timestamp: datetime
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "user": self.actor,
            "timestamp": to_iso(self.timestamp),
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            action=HistoryAction(data["action"]),
            actor=data.get("user") or SYSTEM_ACTOR,
            timestamp=parse_iso(data.get("timestamp")) or utc_now(),
            details=data.get("details") or "",
        )


@dataclass
class Request:
    request_id: str
    name: str
    category: str
    file_ref: str
    original_filename: str
    initiator: str
    approvers: List[Approver]
    status: RequestStatus = RequestStatus.PENDING
    sealed_hash: Optional[str] = None
    ledger_reference: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    history: Tuple[HistoryEntry, ...] = ()
    version: int = 0

    # ---- queries -------------------------------------------------------------

    def approver_for(self, identity: str) -> Optional[Approver]:
        for approver in self.approvers:
            if approver.matches(identity):
                return approver
        return None

    @property
    def all_signed(self) -> bool:
        return bool(self.approvers) and all(a.signed for a in self.approvers)

    @property
    def signed_count(self) -> int:
        return sum(1 for a in self.approvers if a.signed)

    @property
    def is_sealed(self) -> bool:
        return self.sealed_hash is not None

    @property
    def is_anchored(self) -> bool:
        return self.ledger_reference is not None

    # ---- history -------------------------------------------------------------

    def append_history(self, action: HistoryAction, actor: str, details: str = "",
                       *, at: Optional[datetime] = None) -> HistoryEntry:
        """Append one entry; history is a tuple so existing entries cannot be edited."""
        entry = HistoryEntry(action=action, actor=actor or SYSTEM_ACTOR,
                             timestamp=at or utc_now(), details=details)
        self.history = self.history + (entry,)
        return entry

    def history_of(self, action: HistoryAction) -> List[HistoryEntry]:
        return [h for h in self.history if h.action == action]

    def copy(self) -> "Request":
        """Detached copy; mutating it never touches the original's approvers."""
        return replace(self, approvers=[replace(a) for a in self.approvers])

    # ---- (de)serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.request_id,
            "name": self.name,
            "category": self.category,
            "filename": self.file_ref,
            "originalFilename": self.original_filename,
            "initiator": self.initiator,
            "approvers": [a.to_dict() for a in self.approvers],
            "status": self.status.value,
            "sealedHash": self.sealed_hash,
            "ledgerReference": self.ledger_reference,
            "createdAt": to_iso(self.created_at),
            "completedAt": to_iso(self.completed_at),
            "history": [h.to_dict() for h in self.history],
            "version": self.version,
        }
