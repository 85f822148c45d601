"""
Verification report model.

Transient: rebuilt from scratch on every verification call, never stored.
``to_dict`` produces the camelCase document handed to outer layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.helpers.date_time_helper import to_iso, utc_now


class VerificationStatus(str, Enum):
    VERIFIED = "VERIFIED"
    PARTIAL_VERIFICATION = "PARTIAL_VERIFICATION"
    TAMPERED = "TAMPERED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_PDF = "INVALID_PDF"
    ERROR = "ERROR"


class TrustLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"


class Integrity(str, Enum):
    NOT_TAMPERED = "NOT_TAMPERED"
    MODIFIED = "MODIFIED"
    UNKNOWN = "UNKNOWN"


@dataclass
class SealFinding:
    found: bool = False
    valid: bool = False
    signer: Optional[str] = None
    reason: Optional[str] = None
    signed_at: Optional[datetime] = None
    message: str = "No cryptographic seal found"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "valid": self.valid,
            "signer": self.signer,
            "reason": self.reason,
            "signedAt": to_iso(self.signed_at),
            "message": self.message,
        }


@dataclass
class DocumentFacts:
    hash: str
    size: int
    request_id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    original_filename: Optional[str] = None
    initiator: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sealed_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "size": self.size,
            "requestId": self.request_id,
            "name": self.name,
            "category": self.category,
            "originalFilename": self.original_filename,
            "initiator": self.initiator,
            "status": self.status,
            "createdAt": to_iso(self.created_at),
            "completedAt": to_iso(self.completed_at),
            "sealedHash": self.sealed_hash,
        }


@dataclass
class LedgerFinding:
    reference: Optional[str] = None
    found: bool = False
    confirmed_at: Optional[datetime] = None
    network: Optional[str] = None
    explorer_url: Optional[str] = None
    payload_hash: Optional[str] = None
    payload_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference": self.reference,
            "found": self.found,
            "confirmedAt": to_iso(self.confirmed_at),
            "network": self.network,
            "explorerUrl": self.explorer_url,
            "payloadHash": self.payload_hash,
            "payloadTimestamp": self.payload_timestamp,
        }


@dataclass
class ApproverEvidence:
    identity: str
    signed: bool
    signed_at: Optional[datetime]
    page: int
    x: float
    y: float
    stamp_found: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "signed": self.signed,
            "signedAt": to_iso(self.signed_at),
            "placement": {"page": self.page, "x": self.x, "y": self.y},
            "stampFound": self.stamp_found,
        }


@dataclass
class ChainOfCustody:
    approvers: List[ApproverEvidence] = field(default_factory=list)
    stamps_found: List[str] = field(default_factory=list)

    @property
    def all_signed(self) -> bool:
        return bool(self.approvers) and all(a.signed for a in self.approvers)

    @property
    def signed_count(self) -> int:
        return sum(1 for a in self.approvers if a.signed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approvers": [a.to_dict() for a in self.approvers],
            "totalApprovers": len(self.approvers),
            "signedCount": self.signed_count,
            "allSigned": self.all_signed,
            "stampsFound": list(self.stamps_found),
        }


@dataclass
class TimelineEvent:
    timestamp: Optional[datetime]
    action: str
    actor: str
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "action": self.action,
            "user": self.actor,
            "details": self.details,
        }


@dataclass
class VerificationReport:
    status: VerificationStatus
    verified: bool = False
    trust_level: TrustLevel = TrustLevel.NONE
    trust_score: int = 0
    integrity: Integrity = Integrity.UNKNOWN
    document: Optional[DocumentFacts] = None
    seal: Optional[SealFinding] = None
    ledger: Optional[LedgerFinding] = None
    chain_of_custody: Optional[ChainOfCustody] = None
    timeline: List[TimelineEvent] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "verified": self.verified,
            "trustLevel": self.trust_level.value,
            "trustScore": self.trust_score,
            "integrity": self.integrity.value,
            "document": self.document.to_dict() if self.document else None,
            "seal": self.seal.to_dict() if self.seal else None,
            "ledger": self.ledger.to_dict() if self.ledger else None,
            "chainOfCustody": self.chain_of_custody.to_dict() if self.chain_of_custody else None,
            "timeline": [e.to_dict() for e in self.timeline],
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "timestamp": to_iso(self.timestamp),
        }
