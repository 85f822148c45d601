from signing_requests.models.request_models import (
    SYSTEM_ACTOR,
    Approver,
    HistoryAction,
    HistoryEntry,
    Placement,
    Request,
    RequestStatus,
    normalize_identity,
)
from signing_requests.models.anchor_payload import (
    PAYLOAD_TYPE,
    PAYLOAD_VERSION,
    AnchorPayload,
    InvalidPayloadError,
)
from signing_requests.models.sign_result import SignResult

__all__ = [
    "SYSTEM_ACTOR", "Approver", "HistoryAction", "HistoryEntry", "Placement",
    "Request", "RequestStatus", "normalize_identity",
    "PAYLOAD_TYPE", "PAYLOAD_VERSION", "AnchorPayload", "InvalidPayloadError",
    "SignResult",
]
