"""
Chain of custody and timeline assembly.

Both are rebuilt from the stored request plus the stamps actually seen in
the verified bytes. Nothing here touches storage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ledger.models.ledger_records import LedgerRecord
from signing_requests.models.request_models import HistoryAction, Request, normalize_identity
from verification.models.verification_report import (
    ApproverEvidence,
    ChainOfCustody,
    TimelineEvent,
)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def build_chain_of_custody(request: Request, stamps: Iterable[str]) -> ChainOfCustody:
    stamps = list(stamps)
    seen = {normalize_identity(s) for s in stamps}
    return ChainOfCustody(
        approvers=[
            ApproverEvidence(
                identity=a.identity,
                signed=a.signed,
                signed_at=a.signed_at,
                page=a.placement.page_index,
                x=a.placement.x,
                y=a.placement.y,
                stamp_found=normalize_identity(a.identity) in seen,
            )
            for a in request.approvers
        ],
        stamps_found=stamps,
    )


def build_timeline(request: Request, ledger_record: Optional[LedgerRecord] = None) -> List[TimelineEvent]:
    """
    History entries plus approver signatures the history does not already
    cover, and the ledger confirmation when known. Sorted by time; entries
    with equal timestamps keep their append order.
    """
    events = [
        TimelineEvent(timestamp=h.timestamp, action=h.action.value, actor=h.actor, details=h.details)
        for h in request.history
    ]
    recorded = {normalize_identity(h.actor) for h in request.history_of(HistoryAction.SIGNED)}
    for a in request.approvers:
        if a.signed and normalize_identity(a.identity) not in recorded:
            events.append(TimelineEvent(timestamp=a.signed_at, action=HistoryAction.SIGNED.value,
                                        actor=a.identity, details="Approver signature"))
    if ledger_record is not None and ledger_record.confirmed_at is not None:
        events.append(TimelineEvent(timestamp=ledger_record.confirmed_at, action="anchored",
                                    actor="LEDGER", details=f"Ledger record {ledger_record.reference}"))
    # sorted() is stable
    return sorted(events, key=lambda e: e.timestamp or _FAR_FUTURE)
