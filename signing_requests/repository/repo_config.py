"""Repository configuration."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class RepoConfig:
    """Configuration for the request repository."""

    db_path: str
    """Path to SQLite database file"""

    storage_root: str = ""
    """Root directory for request documents"""
