from signing_requests.logic.finalization import FinalizationPipeline
from signing_requests.logic.orchestrator import SigningOrchestrator
from signing_requests.logic.request_locks import RequestLockRegistry
from signing_requests.logic.workflow_engine import WorkflowEngine

__all__ = ["FinalizationPipeline", "SigningOrchestrator", "RequestLockRegistry", "WorkflowEngine"]
