from signing_requests.exceptions.errors import (
    AlreadySignedError,
    AnchoringFailedError,
    AssetMissingError,
    ConcurrentModificationError,
    FinalizationFailedError,
    ImmutableFieldError,
    InvalidInputError,
    NotFoundError,
    SigningRequestError,
    UnauthorizedError,
)

__all__ = [
    "AlreadySignedError", "AnchoringFailedError", "AssetMissingError",
    "ConcurrentModificationError", "FinalizationFailedError", "ImmutableFieldError",
    "InvalidInputError", "NotFoundError", "SigningRequestError", "UnauthorizedError",
]
