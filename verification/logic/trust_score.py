"""Additive trust score out of 100 and its buckets."""

from __future__ import annotations

from dataclasses import dataclass

from verification.models.verification_report import TrustLevel

HASH_MATCH_POINTS = 30
LEDGER_POINTS = 30
SEAL_POINTS = 20
ALL_SIGNED_POINTS = 10
STAMPS_POINTS = 10

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 50


@dataclass(frozen=True)
class TrustInputs:
    hash_match: bool
    on_ledger: bool
    seal_valid: bool
    all_signed: bool
    stamps_found: bool


def trust_score(inputs: TrustInputs) -> int:
    score = 0
    if inputs.hash_match:
        score += HASH_MATCH_POINTS
    if inputs.on_ledger:
        score += LEDGER_POINTS
    if inputs.seal_valid:
        score += SEAL_POINTS
    if inputs.all_signed:
        score += ALL_SIGNED_POINTS
    if inputs.stamps_found:
        score += STAMPS_POINTS
    return score


def trust_level(score: int) -> TrustLevel:
    if score >= HIGH_THRESHOLD:
        return TrustLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return TrustLevel.MEDIUM
    return TrustLevel.LOW
