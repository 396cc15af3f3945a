"""Location of the audit log of applied operations."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_value

AUDIT_DB_ENV: Final[str] = "ISMCTL_AUDIT_DB"
DATA_DIR_ENV: Final[str] = "ISMCTL_DATA_DIR"
AUDIT_DB_FILENAME: Final[str] = "audit.db"


@dataclass(frozen=True, slots=True)
class AuditStoreConfig:
    """SQLAlchemy URI of the audit store, plus the directory it lives in when local."""

    uri: str
    data_dir: Path | None = None


def default_data_dir() -> Path:
    """Per-user state directory; the audit log is state, not cache."""

    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_STATE_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "state")
    return base_path / "ismctl"


def get_audit_store_config() -> AuditStoreConfig:
    """Resolve the audit store from ``ISMCTL_AUDIT_DB`` or a SQLite file in the data dir."""

    uri = env_value(AUDIT_DB_ENV)
    if uri is not None:
        return AuditStoreConfig(uri=uri)

    configured = env_value(DATA_DIR_ENV)
    data_dir = (Path(configured) if configured else default_data_dir()).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return AuditStoreConfig(
        uri=f"sqlite+pysqlite:///{data_dir / AUDIT_DB_FILENAME}", data_dir=data_dir
    )
