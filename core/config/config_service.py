"""Typed, layered configuration loader with precedence handling."""
from __future__ import annotations

import os
import configparser
from dataclasses import dataclass, fields
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Optional, Tuple

# --------------------------------------------------------------------------- #
#  Paths & default definitions
# --------------------------------------------------------------------------- #

def _find_project_root() -> Path:
    here = Path(__file__).resolve()
    for parent in here.parents:
        if (parent / "core").is_dir():
            return parent
    return here.parent

PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "core" / "config"
DEFAULTS_INI = CONFIG_DIR / "defaults.ini"

ENV_PREFIX = "CUSTODY_"


_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "Database": {
        "requests": (PROJECT_ROOT / "databases" / "requests.db").as_posix(),
        "events": (PROJECT_ROOT / "databases" / "events.db").as_posix(),
    },
    "Storage": {
        "root": (PROJECT_ROOT / "storage" / "documents").as_posix(),
    },
    "Ledger": {
        "backend": "file",
        "base_url": "",
        "api_token": "",
        "file_path": (PROJECT_ROOT / "storage" / "ledger.jsonl").as_posix(),
        "timeout_seconds": "10",
        "max_attempts": "3",
        "backoff_seconds": "2",
        "explorer_url_template": "",
        "network": "local",
    },
    "Signing": {
        "p12_path": "",
        "p12_password": "",
        "seal_reason": "Document certified by the chain-of-custody service",
        "seal_location": "Ledger anchored",
        "seal_name": "Chain of Custody Seal",
        "backend_timeout_seconds": "60",
    },
    "Verification": {
        "strict_seal_check": "false",
    },
    "Logging": {
        "level": "INFO",
    },
    "General": {
        "app_name": "custodyseal",
        "version": "1.0.0",
    },
}


# --------------------------------------------------------------------------- #
#  Datamodels
# --------------------------------------------------------------------------- #

@dataclass
class DatabaseConfig:
    requests: Path
    events: Path


@dataclass
class StorageConfig:
    root: Path


@dataclass
class LedgerConfig:
    backend: str = "file"
    base_url: str = ""
    api_token: str = ""
    file_path: str = ""
    timeout_seconds: float = 10.0
    max_attempts: int = 3
    backoff_seconds: float = 2.0
    explorer_url_template: str = ""
    network: str = "local"


@dataclass
class SigningConfig:
    p12_path: str = ""
    p12_password: str = ""
    seal_reason: str = ""
    seal_location: str = ""
    seal_name: str = ""
    backend_timeout_seconds: float = 60.0


@dataclass
class VerificationConfig:
    strict_seal_check: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class GeneralConfig:
    app_name: str = ""
    version: str = ""


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #

def _cp_to_dict(cp: configparser.ConfigParser) -> Dict[str, Dict[str, Any]]:
    data: Dict[str, Dict[str, Any]] = {}
    for section in cp.sections():
        data[section] = {k: v for k, v in cp.items(section)}
    return data


def _apply(target: Dict[str, Dict[str, Any]], source: Dict[str, Dict[str, Any]],
           layer: str, origin: str,
           sources: Dict[Tuple[str, str], Dict[str, str]]) -> None:
    for section, items in source.items():
        sec = target.setdefault(section, {})
        for key, value in items.items():
            sec[key] = value
            sources[(section, key)] = {"layer": layer, "source": origin}


def _cast(value: Any, typ: Any) -> Any:
    # dataclass field types are strings under "from __future__ import annotations"
    name = typ if isinstance(typ, str) else getattr(typ, "__name__", str(typ))
    if name == "Path":
        return Path(str(value)).expanduser()
    if name == "bool":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in {"1", "true", "yes", "on"}
    if name == "int":
        return int(value)
    if name == "float":
        return float(value)
    return str(value)


def _build_dataclass(cls: type, data: Dict[str, Any]) -> Any:
    kwargs = {}
    for field in fields(cls):
        val = data.get(field.name, field.default)
        kwargs[field.name] = _cast(val, field.type)
    return cls(**kwargs)


def _env_overlays() -> Dict[str, Dict[str, Any]]:
    result: Dict[str, Dict[str, Any]] = {}
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        remainder = env_key[len(ENV_PREFIX):]
        parts = remainder.split("__", 1)
        if len(parts) != 2:
            continue
        section, key = parts
        section = section.title()
        key = key.lower()
        result.setdefault(section, {})[key] = value
    return result


# --------------------------------------------------------------------------- #
#  ConfigService
# --------------------------------------------------------------------------- #


class ConfigService:
    """Facade merging layered configuration with type safety.

    Layers (lowest first): embedded defaults, ``defaults.ini``, environment
    overlays (``CUSTODY_<SECTION>__<KEY>``), then an optional machine INI.
    """

    def __init__(self, machine_ini: Optional[Path] = None) -> None:
        self._lock = RLock()
        self._machine_ini = Path(machine_ini) if machine_ini else None
        self.reload()

    # ------------------------------------------------------------------ #
    def reload(self) -> None:
        with self._lock:
            merged: Dict[str, Dict[str, Any]] = {}
            sources: Dict[Tuple[str, str], Dict[str, str]] = {}

            # Layer 0: embedded defaults
            _apply(merged, _DEFAULTS, "code", "embedded", sources)

            # Layer 1: defaults.ini
            if DEFAULTS_INI.exists():
                cp = configparser.ConfigParser()
                cp.read(DEFAULTS_INI, encoding="utf-8")
                _apply(merged, _cp_to_dict(cp), "defaults.ini", str(DEFAULTS_INI), sources)

            # Layer 2: environment variables
            _apply(merged, _env_overlays(), "env", "os.environ", sources)

            # Layer 3: machine config
            if self._machine_ini and self._machine_ini.exists():
                cp = configparser.ConfigParser()
                cp.read(self._machine_ini, encoding="utf-8")
                _apply(merged, _cp_to_dict(cp), "machine", str(self._machine_ini), sources)

            self._merged = merged
            self._sources = sources

            self.database = _build_dataclass(DatabaseConfig, merged.get("Database", {}))
            self.storage = _build_dataclass(StorageConfig, merged.get("Storage", {}))
            self.ledger = _build_dataclass(LedgerConfig, merged.get("Ledger", {}))
            self.signing = _build_dataclass(SigningConfig, merged.get("Signing", {}))
            self.verification = _build_dataclass(VerificationConfig, merged.get("Verification", {}))
            self.logging = _build_dataclass(LoggingConfig, merged.get("Logging", {}))
            self.general = _build_dataclass(GeneralConfig, merged.get("General", {}))

    # ------------------------------------------------------------------ #
    def get(self, section: str, key: str, *, cast: Callable[[Any], Any] | type = str) -> Any:
        val = self._merged.get(section, {}).get(key)
        if val is None:
            return None
        if isinstance(cast, type):
            return _cast(val, cast)
        return cast(val)

    def meta_source(self, section: str, key: str) -> Dict[str, str] | None:
        return self._sources.get((section, key))


_instance: ConfigService | None = None
_instance_lock = RLock()


def get_config_service() -> ConfigService:
    """Process-wide service built from defaults and environment only."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = ConfigService()
        return _instance
