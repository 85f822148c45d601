from verification.models.verification_report import (
    ApproverEvidence,
    ChainOfCustody,
    DocumentFacts,
    Integrity,
    LedgerFinding,
    SealFinding,
    TimelineEvent,
    TrustLevel,
    VerificationReport,
    VerificationStatus,
)

__all__ = [
    "ApproverEvidence", "ChainOfCustody", "DocumentFacts", "Integrity", "LedgerFinding",
    "SealFinding", "TimelineEvent", "TrustLevel", "VerificationReport", "VerificationStatus",
]
