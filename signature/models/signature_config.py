# signature/models/signature_config.py
from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class SealConfig:
    """
    Appearance-free metadata written into the seal's signature dictionary.
    """
    reason: str = "Document certified by the chain-of-custody service"
    location: str = "Ledger anchored"
    name: str = "Chain of Custody Seal"
    field_name: str = "CustodySeal"
