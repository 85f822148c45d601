"""
core/common/deadline.py
=======================

Run a blocking call with an upper bound on its wall-clock time.

The call keeps running on its worker thread after the deadline passes; the
caller simply stops waiting for it. Callers must therefore only hand over
work whose result is discarded on timeout (pure byte transformations,
idempotent remote reads, submissions the caller treats as failed).
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

_POOL: Optional[ThreadPoolExecutor] = None
_POOL_LOCK = threading.Lock()


class DeadlineExceeded(Exception):
    """Raised when a bounded call did not finish in time."""

    def __init__(self, what: str, timeout: float) -> None:
        self.what = what
        self.timeout = timeout
        super().__init__(f"{what} did not finish within {timeout:g}s")


def _pool() -> ThreadPoolExecutor:
    global _POOL
    with _POOL_LOCK:
        if _POOL is None:
            _POOL = ThreadPoolExecutor(max_workers=16, thread_name_prefix="bounded-call")
        return _POOL


def call_with_timeout(fn: Callable[..., T], timeout: Optional[float], *args, what: str = "call", **kwargs) -> T:
    """Return ``fn(*args, **kwargs)`` or raise DeadlineExceeded after *timeout* seconds.

    A ``None`` or non-positive timeout runs the call inline.
    """
    if not timeout or timeout <= 0:
        return fn(*args, **kwargs)
    future: Future = _pool().submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        future.cancel()
        raise DeadlineExceeded(what, timeout) from exc
