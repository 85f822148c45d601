"""
Append-only JSON-lines ledger for local runs.

Each line is ``{"reference", "payload" (base64), "confirmedAt"}``. The
reference is the SHA-256 of the previous reference plus the payload, so
lines form a simple hash chain and references never repeat.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional

from core.helpers.date_time_helper import parse_iso, utc_now, to_iso
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerRecordNotFoundError, LedgerUnavailableError
from ledger.models.ledger_records import LedgerReceipt, LedgerRecord

logger = logging.getLogger(__name__)

_GENESIS = "0" * 64


class FileLedgerClient(LedgerClient):
    """Thread-safe append-only ledger stored in one file."""

    def __init__(self, path: str | Path, *, network: str = "local") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self.network = network

    def submit(self, payload: bytes) -> LedgerReceipt:
        with self._lock:
            entries = self._read_all()
            previous = next(reversed(entries), _GENESIS) if entries else _GENESIS
            reference = hashlib.sha256(previous.encode("ascii") + payload).hexdigest()
            confirmed_at = utc_now()
            line = json.dumps({
                "reference": reference,
                "payload": base64.b64encode(payload).decode("ascii"),
                "confirmedAt": to_iso(confirmed_at),
            })
            try:
                with self._path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
                    fh.flush()
                    os.fsync(fh.fileno())
            except OSError as exc:
                raise LedgerUnavailableError(f"Cannot append to ledger file {self._path}") from exc
        logger.info("Appended ledger entry %s", reference)
        return LedgerReceipt(reference=reference, confirmed_at=parse_iso(to_iso(confirmed_at)))

    def lookup(self, reference: str) -> LedgerRecord:
        with self._lock:
            entry = self._read_all().get(reference)
        if entry is None:
            raise LedgerRecordNotFoundError(reference)
        return LedgerRecord(
            reference=reference,
            payload=base64.b64decode(entry["payload"]),
            confirmed_at=parse_iso(entry.get("confirmedAt")),
        )

    def _read_all(self) -> Dict[str, dict]:
        # insertion order of the dict follows file order
        entries: Dict[str, dict] = {}
        if not self._path.exists():
            return entries
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                for raw in fh:
                    raw = raw.strip()
                    if not raw:
                        continue
                    entry = json.loads(raw)
                    entries[entry["reference"]] = entry
        except (OSError, ValueError) as exc:
            raise LedgerUnavailableError(f"Cannot read ledger file {self._path}") from exc
        return entries

    def explorer_url(self, reference: str) -> Optional[str]:
        return None
