"""
HTTP ledger client.

Talks to a ledger gateway that exposes:

- ``POST {base_url}/entries`` with ``{"payload": <base64>}``, answering
  ``{"reference": ..., "confirmedAt": ...}``
- ``GET {base_url}/entries/{reference}``, answering
  ``{"payload": <base64>, "confirmedAt": ...}`` or 404

Transport errors, timeouts and 5xx answers are transient; other 4xx answers
are permanent.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, Optional

import httpx

from core.helpers.date_time_helper import parse_iso
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import (
    LedgerError,
    LedgerRecordNotFoundError,
    LedgerRejectedError,
    LedgerUnavailableError,
)
from ledger.models.ledger_records import LedgerReceipt, LedgerRecord

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 10.0


class HttpLedgerClient(LedgerClient):
    """Ledger gateway client built on :mod:`httpx`.

    Args:
        base_url: Gateway root, e.g. ``https://ledger.example.org/api``.
        timeout: Per-request timeout in seconds.
        api_token: Optional bearer token.
        network: Label echoed in verification reports.
        explorer_url_template: Optional template with a ``{reference}`` slot.
        client: Pre-built ``httpx.Client`` (tests inject a MockTransport here).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = _DEFAULT_TIMEOUT_S,
        api_token: str = "",
        network: str = "remote",
        explorer_url_template: str = "",
        client: Optional[httpx.Client] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout, headers=headers
        )
        self.network = network
        self._explorer_template = explorer_url_template

    def close(self) -> None:
        self._client.close()

    # ── submission ──

    def submit(self, payload: bytes) -> LedgerReceipt:
        body = {"payload": base64.b64encode(payload).decode("ascii")}
        response = self._request("POST", "/entries", json=body)
        data = self._json(response)
        reference = data.get("reference")
        if not reference:
            raise LedgerError("Ledger gateway returned no reference")
        logger.info("Ledger accepted entry %s", reference)
        return LedgerReceipt(reference=str(reference), confirmed_at=parse_iso(data.get("confirmedAt")))

    # ── lookup ──

    def lookup(self, reference: str) -> LedgerRecord:
        response = self._request("GET", f"/entries/{reference}", reference=reference)
        data = self._json(response)
        try:
            payload = base64.b64decode(data.get("payload") or "", validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LedgerError(f"Ledger record {reference} carries an undecodable payload") from exc
        return LedgerRecord(
            reference=reference,
            payload=payload,
            confirmed_at=parse_iso(data.get("confirmedAt")),
        )

    def explorer_url(self, reference: str) -> Optional[str]:
        if not self._explorer_template:
            return None
        return self._explorer_template.format(reference=reference)

    # ── helpers ──

    def _request(self, method: str, path: str, *, reference: Optional[str] = None, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise LedgerUnavailableError(f"Ledger {method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise LedgerUnavailableError(f"Ledger {method} {path} failed: {exc}") from exc

        if response.status_code == 404 and reference is not None:
            raise LedgerRecordNotFoundError(reference)
        if response.status_code >= 500 or response.status_code == 429:
            raise LedgerUnavailableError(f"Ledger {method} {path} answered {response.status_code}")
        if response.status_code >= 400:
            raise LedgerRejectedError(f"Ledger {method} {path} answered {response.status_code}: {response.text[:200]}")
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise LedgerError("Ledger gateway answered with invalid JSON") from exc
        if not isinstance(data, dict):
            raise LedgerError("Ledger gateway answered with an unexpected document")
        return data
