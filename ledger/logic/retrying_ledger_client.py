"""
Retry and timeout policy around any LedgerClient.

Only transient failures (LedgerUnavailableError) are retried. A missing
record or a rejected submission is reported on the first attempt.

A submission that times out is not retried: the abandoned attempt keeps
running on its worker thread and may still write its entry, and a second
submission would anchor the same payload twice. The caller records the
failure; a later ``retry_anchoring`` submits again and only the reference
it receives is stored on the request, so an entry left by the abandoned
attempt is never referenced. Lookups are reads and are retried on timeout.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from core.common.deadline import DeadlineExceeded, call_with_timeout
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerTimeoutError, LedgerUnavailableError
from ledger.models.ledger_records import LedgerReceipt, LedgerRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryingLedgerClient(LedgerClient):
    """Wraps a client with a per-call timeout and bounded retries.

    Args:
        inner: The client doing the actual I/O.
        max_attempts: Total attempts per operation (>= 1).
        backoff_seconds: Fixed pause between attempts.
        timeout_seconds: Upper bound for one attempt; ``None`` disables it.
    """

    def __init__(
        self,
        inner: LedgerClient,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        timeout_seconds: Optional[float] = 10.0,
    ) -> None:
        self._inner = inner
        self._max_attempts = max(1, int(max_attempts))
        self._backoff = max(0.0, float(backoff_seconds))
        self._timeout = timeout_seconds
        self.network = inner.network

    @property
    def inner(self) -> LedgerClient:
        return self._inner

    def submit(self, payload: bytes) -> LedgerReceipt:
        return self._call(self._inner.submit, payload, what="ledger submit", retry_timeouts=False)

    def lookup(self, reference: str) -> LedgerRecord:
        return self._call(self._inner.lookup, reference, what="ledger lookup", retry_timeouts=True)

    def explorer_url(self, reference: str) -> Optional[str]:
        return self._inner.explorer_url(reference)

    def _call(self, fn: Callable[..., T], *args, what: str, retry_timeouts: bool) -> T:
        retry = retry_if_exception_type(LedgerUnavailableError)
        if not retry_timeouts:
            retry = retry & retry_if_not_exception_type(LedgerTimeoutError)
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_fixed(self._backoff),
            retry=retry,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self._bounded, fn, *args, what=what)

    def _bounded(self, fn: Callable[..., T], *args, what: str) -> T:
        try:
            return call_with_timeout(fn, self._timeout, *args, what=what)
        except DeadlineExceeded as exc:
            raise LedgerTimeoutError(str(exc)) from exc
