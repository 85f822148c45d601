"""
Ledger memo payload.

The anchored document is a compact JSON object with exactly these keys::

    {"type": "CHAIN_OF_CUSTODY", "requestId": ..., "requestName": ...,
     "hash": <64 hex chars>, "timestamp": <ISO-8601>, "version": "1.0"}
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict

PAYLOAD_TYPE = "CHAIN_OF_CUSTODY"
PAYLOAD_VERSION = "1.0"

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


class InvalidPayloadError(ValueError):
    """Bytes read back from the ledger are not a custody payload."""


@dataclass(frozen=True)
class AnchorPayload:
    request_id: str
    request_name: str
    hash: str
    timestamp: str
    type: str = PAYLOAD_TYPE
    version: str = PAYLOAD_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "requestId": self.request_id,
            "requestName": self.request_name,
            "hash": self.hash,
            "timestamp": self.timestamp,
            "version": self.version,
        }

    def encode(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> "AnchorPayload":
        try:
            doc = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise InvalidPayloadError("ledger payload is not JSON") from exc
        if not isinstance(doc, dict) or doc.get("type") != PAYLOAD_TYPE:
            raise InvalidPayloadError("ledger payload is not a custody record")
        missing = [k for k in ("requestId", "requestName", "hash", "timestamp", "version") if k not in doc]
        if missing:
            raise InvalidPayloadError(f"ledger payload lacks {', '.join(missing)}")
        digest = str(doc["hash"]).lower()
        if not _HASH_RE.match(digest):
            raise InvalidPayloadError("ledger payload hash is not a SHA-256 hex digest")
        return cls(
            request_id=str(doc["requestId"]),
            request_name=str(doc["requestName"]),
            hash=digest,
            timestamp=str(doc["timestamp"]),
            version=str(doc["version"]),
        )
