"""
core/tests/test_config_service.py

Layer precedence of ConfigService: embedded defaults < defaults.ini <
environment < machine INI.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from core.config.config_service import ConfigService


class TestConfigService(unittest.TestCase):
    def test_defaults_are_typed(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            cfg = ConfigService()
        self.assertIsInstance(cfg.ledger.max_attempts, int)
        self.assertIsInstance(cfg.ledger.backoff_seconds, float)
        self.assertIsInstance(cfg.verification.strict_seal_check, bool)
        self.assertIsInstance(cfg.database.requests, Path)
        self.assertEqual(cfg.ledger.max_attempts, 3)

    def test_environment_overrides_defaults(self) -> None:
        with mock.patch.dict(os.environ, {"CUSTODY_LEDGER__MAX_ATTEMPTS": "7",
                                          "CUSTODY_VERIFICATION__STRICT_SEAL_CHECK": "yes"}):
            cfg = ConfigService()
        self.assertEqual(cfg.ledger.max_attempts, 7)
        self.assertTrue(cfg.verification.strict_seal_check)
        self.assertEqual(cfg.meta_source("Ledger", "max_attempts")["layer"], "env")

    def test_machine_ini_wins(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            ini = Path(tmp) / "machine.ini"
            ini.write_text("[Ledger]\nmax_attempts = 9\nbackend = http\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"CUSTODY_LEDGER__MAX_ATTEMPTS": "7"}):
                cfg = ConfigService(machine_ini=ini)
        self.assertEqual(cfg.ledger.max_attempts, 9)
        self.assertEqual(cfg.ledger.backend, "http")
        self.assertEqual(cfg.get("Ledger", "max_attempts", cast=int), 9)
        self.assertEqual(cfg.meta_source("Ledger", "max_attempts")["layer"], "machine")

    def test_unknown_key_returns_none(self) -> None:
        self.assertIsNone(ConfigService().get("Ledger", "does_not_exist"))


if __name__ == "__main__":
    unittest.main()
