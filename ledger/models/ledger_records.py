from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LedgerReceipt:
    """Result of a confirmed submission."""
    reference: str
    confirmed_at: Optional[datetime] = None


@dataclass(frozen=True)
class LedgerRecord:
    """A stored payload, byte-for-byte as submitted."""
    reference: str
    payload: bytes
    confirmed_at: Optional[datetime] = None
