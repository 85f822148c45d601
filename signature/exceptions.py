"""Signing backend exceptions."""
from __future__ import annotations


class SigningBackendError(Exception):
    """Base exception for stamping, tagging and sealing."""


class StampingError(SigningBackendError):
    """The visible stamp could not be rendered or merged."""


class SealingError(SigningBackendError):
    """The cryptographic seal could not be applied."""


class CredentialError(SigningBackendError):
    """The sealing credential is missing or cannot be decrypted."""
