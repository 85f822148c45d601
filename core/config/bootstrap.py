# core/config/bootstrap.py
"""
Service wiring.

Builds every collaborator once from a ConfigService and hands them to the
orchestrator and the verification engine by reference; nothing is looked
up globally afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.config.config_service import ConfigService, get_config_service
from core.logging.logic.logger import EventLogger, configure_logging
from ledger.adapters.file_ledger_client import FileLedgerClient
from ledger.adapters.http_ledger_client import HttpLedgerClient
from ledger.adapters.ledger_client import LedgerClient
from ledger.logic.retrying_ledger_client import RetryingLedgerClient
from signature.logic.credentials import SigningCredential, load_credential
from signature.logic.pdf_sealer import PdfSealer
from signature.logic.pdf_signing_backend import PdfSigningBackend
from signature.logic.signing_backend import SigningBackend
from signature.models.signature_config import SealConfig
from signing_requests.adapters.filesystem_storage_adapter import FilesystemStorageAdapter
from signing_requests.logic.finalization import FinalizationPipeline
from signing_requests.logic.orchestrator import SigningOrchestrator
from signing_requests.logic.request_locks import RequestLockRegistry
from signing_requests.repository.repo_config import RepoConfig
from signing_requests.repository.sqlite_request_repository import SQLiteRequestRepository
from verification.logic.seal_inspector import PatternSealInspector, PyHankoSealInspector
from verification.logic.verification_engine import VerificationEngine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: ConfigService
    events: EventLogger
    repository: SQLiteRequestRepository
    storage: FilesystemStorageAdapter
    ledger: LedgerClient
    backend: SigningBackend
    orchestrator: SigningOrchestrator
    verifier: VerificationEngine

    def close(self) -> None:
        self.events.close()
        inner = getattr(self.ledger, "inner", self.ledger)
        if isinstance(inner, HttpLedgerClient):
            inner.close()


def build_ledger_client(config: ConfigService) -> LedgerClient:
    cfg = config.ledger
    backend = cfg.backend.strip().lower()
    if backend == "http":
        if not cfg.base_url:
            raise ValueError("[Ledger] base_url is required for the http backend")
        inner: LedgerClient = HttpLedgerClient(
            cfg.base_url,
            timeout=cfg.timeout_seconds,
            api_token=cfg.api_token,
            network=cfg.network,
            explorer_url_template=cfg.explorer_url_template,
        )
    elif backend == "file":
        inner = FileLedgerClient(cfg.file_path, network=cfg.network)
    else:
        raise ValueError(f"Unknown ledger backend {cfg.backend!r}")
    return RetryingLedgerClient(
        inner,
        max_attempts=cfg.max_attempts,
        backoff_seconds=cfg.backoff_seconds,
        timeout_seconds=cfg.timeout_seconds,
    )


def build_signing_backend(config: ConfigService, credential: Optional[SigningCredential] = None) -> SigningBackend:
    cfg = config.signing
    credential = credential or load_credential(cfg.p12_path, cfg.p12_password or None)
    seal_config = SealConfig(
        reason=cfg.seal_reason or SealConfig.reason,
        location=cfg.seal_location or SealConfig.location,
        name=cfg.seal_name or SealConfig.name,
    )
    producer = f"{config.general.app_name} {config.general.version}".strip()
    return PdfSigningBackend(PdfSealer(credential, seal_config), producer=producer or None)


def build_services(
    config: Optional[ConfigService] = None,
    *,
    credential: Optional[SigningCredential] = None,
    ledger: Optional[LedgerClient] = None,
    backend: Optional[SigningBackend] = None,
) -> Services:
    """
    Wire the application. *credential*, *ledger* and *backend* override the
    configured ones (tests and embedding hosts use this).
    """
    config = config or get_config_service()
    configure_logging(config.logging.level)

    events = EventLogger(config.database.events)
    repository = SQLiteRequestRepository(RepoConfig(db_path=str(config.database.requests),
                                                    storage_root=str(config.storage.root)))
    storage = FilesystemStorageAdapter(config.storage.root)
    ledger = ledger or build_ledger_client(config)
    backend = backend or build_signing_backend(config, credential)

    pipeline = FinalizationPipeline(
        repository,
        storage,
        backend,
        ledger,
        event_logger=events,
        backend_timeout=config.signing.backend_timeout_seconds,
    )
    orchestrator = SigningOrchestrator(
        repository, storage, pipeline, event_logger=events, locks=RequestLockRegistry()
    )
    inspector = PyHankoSealInspector() if config.verification.strict_seal_check else PatternSealInspector()
    verifier = VerificationEngine(repository, ledger, seal_inspector=inspector, event_logger=events)
    logger.info("Services ready (ledger=%s, strict seal check=%s)",
                config.ledger.backend, config.verification.strict_seal_check)
    return Services(
        config=config,
        events=events,
        repository=repository,
        storage=storage,
        ledger=ledger,
        backend=backend,
        orchestrator=orchestrator,
        verifier=verifier,
    )
