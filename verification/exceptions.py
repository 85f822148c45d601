"""Verification exceptions."""
from __future__ import annotations


class VerificationError(Exception):
    """Unexpected internal fault during verification; reported as status ERROR."""
