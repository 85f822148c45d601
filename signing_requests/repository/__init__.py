"""Repository layer for signing requests."""

from signing_requests.repository.request_repository import RequestRepository
from signing_requests.repository.sqlite_request_repository import SQLiteRequestRepository
from signing_requests.repository.repo_config import RepoConfig

__all__ = [
    "RequestRepository",
    "SQLiteRequestRepository",
    "RepoConfig",
]
