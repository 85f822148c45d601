"""
Per-request mutual exclusion.

Every state change of one request (signature admission, finalization,
anchoring retry) runs inside ``hold(request_id)``. Different request ids
never block each other. Entries are dropped once no thread holds or waits
for them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class RequestLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # request_id -> [lock, number of holders + waiters]
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, request_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(request_id, [threading.RLock(), 0])
            entry[1] += 1
        lock: threading.RLock = entry[0]
        try:
            with lock:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(request_id, None)

    def active(self) -> int:
        """Number of request ids currently held or waited on."""
        with self._guard:
            return len(self._entries)
