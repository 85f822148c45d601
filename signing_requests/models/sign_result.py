from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from signing_requests.models.request_models import Request, RequestStatus


@dataclass(frozen=True)
class SignResult:
    """Outcome of one sign (or anchoring retry) call."""
    request: Request
    finalized: bool
    anchoring_error: Optional[str] = None

    @classmethod
    def of(cls, request: Request, anchoring_error: Optional[str] = None) -> "SignResult":
        return cls(request=request, finalized=request.status == RequestStatus.COMPLETED,
                   anchoring_error=anchoring_error)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"request": self.request.to_dict(), "finalized": self.finalized}
        if self.anchoring_error:
            out["anchoringError"] = self.anchoring_error
        return out
