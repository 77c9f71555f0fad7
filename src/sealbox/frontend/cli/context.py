"""Small helper to build a SealBox app context for the command line."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from sealbox.core.exceptions import ConfigurationError
from sealbox.core.file_manager import DEFAULT_QUOTA_BYTES, FileManager
from sealbox.database.connection import DatabaseConnection
from sealbox.security.config import get_encryption_config, load_encryption_config


@dataclass(frozen=True)
class AppSettings:
    """Non-secret runtime settings read from the environment."""

    storage_root: Path
    db_path: Path
    quota_bytes: int = DEFAULT_QUOTA_BYTES
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> AppSettings:
    env = os.environ if environ is None else environ

    raw_quota = env.get("SEALBOX_QUOTA_BYTES")
    try:
        quota = int(raw_quota) if raw_quota else DEFAULT_QUOTA_BYTES
    except ValueError as e:
        raise ConfigurationError(f"SEALBOX_QUOTA_BYTES must be an integer, got {raw_quota!r}") from e
    if quota <= 0:
        raise ConfigurationError("SEALBOX_QUOTA_BYTES must be positive")

    return AppSettings(
        storage_root=Path(env.get("SEALBOX_STORAGE_ROOT") or Path.home() / ".sealbox").expanduser(),
        db_path=Path(env.get("SEALBOX_DB_PATH") or "./sealbox.db").expanduser(),
        quota_bytes=quota,
        log_level=env.get("SEALBOX_LOG_LEVEL") or "INFO",
    )


@dataclass
class AppContext:
    """Container for runtime objects the CLI needs."""

    settings: AppSettings
    db: DatabaseConnection
    fm: FileManager


def build_context(
    db_path: Optional[str | Path] = None,
    storage_root: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    settings: Optional[AppSettings] = None,
) -> AppContext:
    """
    Initialize DB + FileManager from the environment.

    The master secret comes from ``ENCRYPTION_PASSWORD``. With the real
    environment the process-wide holder is used so the secret is read once;
    an explicit ``environ`` mapping (tests) is read directly. A missing secret
    raises ``ConfigurationError`` here, before anything is touched on disk.
    """
    if environ is None:
        config = get_encryption_config()
    else:
        config = load_encryption_config(environ)

    if settings is None:
        settings = load_settings(environ)
    if db_path is not None:
        settings = replace(settings, db_path=Path(db_path))
    if storage_root is not None:
        settings = replace(settings, storage_root=Path(storage_root))

    db = DatabaseConnection(str(settings.db_path))
    db.initialize()

    fm = FileManager(
        storage_root=str(settings.storage_root),
        db_connection=db,
        config=config,
        quota_bytes=settings.quota_bytes,
    )
    return AppContext(settings=settings, db=db, fm=fm)
