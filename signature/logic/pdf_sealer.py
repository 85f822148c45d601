"""
Cryptographic sealing with pyHanko.

The seal is appended as an incremental update, so every earlier byte of
the document is covered by the signature's ByteRange.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from pyhanko.pdf_utils.incremental_writer import IncrementalPdfFileWriter
from pyhanko.sign import signers

from ..exceptions import SealingError
from ..models.signature_config import SealConfig
from .credentials import SigningCredential

logger = logging.getLogger(__name__)


class PdfSealer:
    def __init__(self, credential: SigningCredential, config: Optional[SealConfig] = None) -> None:
        self._credential = credential
        self._signer = credential.to_signer()
        self._config = config or SealConfig()

    @property
    def config(self) -> SealConfig:
        return self._config

    def seal(self, data: bytes, *, reason: Optional[str] = None) -> bytes:
        """Return *data* with a PAdES seal appended."""
        meta = signers.PdfSignatureMetadata(
            field_name=self._config.field_name,
            reason=reason or self._config.reason,
            location=self._config.location,
            name=self._config.name,
        )
        try:
            writer = IncrementalPdfFileWriter(BytesIO(data), strict=False)
            out = signers.sign_pdf(writer, meta, signer=self._signer)
            return out.getvalue()
        except Exception as exc:
            # pyHanko raises a wide range of types (PdfReadError, SigningError, ValueError ...)
            logger.error("Sealing failed: %s", exc)
            raise SealingError(f"Cannot seal document: {exc}") from exc
