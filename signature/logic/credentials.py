"""
Loading of the organisation's sealing credential.

The credential is a PKCS#12 archive (``.p12``/``.pfx``) holding the private
key, the signing certificate and optionally its chain. Key material is read
with :mod:`cryptography` and handed to pyHanko as asn1crypto structures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from asn1crypto import keys as asn1_keys
from asn1crypto import x509 as asn1_x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12
from pyhanko.sign import signers
from pyhanko_certvalidator.registry import SimpleCertificateStore

from ..exceptions import CredentialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningCredential:
    """Key material ready for sealing."""
    signing_key: asn1_keys.PrivateKeyInfo
    signing_cert: asn1_x509.Certificate
    chain: tuple = ()

    @property
    def subject(self) -> str:
        return self.signing_cert.subject.human_friendly

    def to_signer(self) -> signers.SimpleSigner:
        registry = SimpleCertificateStore.from_certs([self.signing_cert, *self.chain])
        return signers.SimpleSigner(
            signing_cert=self.signing_cert,
            signing_key=self.signing_key,
            cert_registry=registry,
        )


def _to_asn1_cert(cert) -> asn1_x509.Certificate:
    return asn1_x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))


def load_credential(source: Union[str, Path, bytes], password: Optional[str] = None) -> SigningCredential:
    """
    Load a PKCS#12 archive from a path or raw bytes.

    Raises:
        CredentialError: the archive is missing, unreadable, or lacks a key or certificate
    """
    if isinstance(source, (bytes, bytearray)):
        p12_bytes = bytes(source)
    else:
        path = Path(source)
        if not str(source) or not path.is_file():
            raise CredentialError(f"Sealing credential not found: {source!r}")
        p12_bytes = path.read_bytes()

    passphrase = password.encode("utf-8") if password else None
    try:
        key, cert, extra = pkcs12.load_key_and_certificates(p12_bytes, passphrase)
    except (ValueError, TypeError) as exc:
        raise CredentialError(f"Cannot open PKCS#12 archive: {exc}") from exc
    if key is None or cert is None:
        raise CredentialError("PKCS#12 archive lacks a private key or certificate")

    key_der = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    chain: List[asn1_x509.Certificate] = [_to_asn1_cert(c) for c in (extra or [])]
    credential = SigningCredential(
        signing_key=asn1_keys.PrivateKeyInfo.load(key_der),
        signing_cert=_to_asn1_cert(cert),
        chain=tuple(chain),
    )
    logger.info("Loaded sealing credential for %s", credential.subject)
    return credential
