from .credentials import SigningCredential, load_credential
from .marker_scanner import custody_markers, decode_pdf_string, seal_reasons
from .pdf_sealer import PdfSealer
from .pdf_signer import PdfSigner
from .pdf_signing_backend import PdfSigningBackend
from .signing_backend import SigningBackend
from .stamp_scanner import stamped_identities

__all__ = [
    "SigningCredential", "load_credential", "custody_markers", "decode_pdf_string",
    "seal_reasons", "PdfSealer", "PdfSigner", "PdfSigningBackend", "SigningBackend",
    "stamped_identities",
]
