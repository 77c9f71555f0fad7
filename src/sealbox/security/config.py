"""
Master secret configuration.

The encryption password is read from the ``ENCRYPTION_PASSWORD`` environment
variable once per process and kept in an immutable holder. It is never written
anywhere and is excluded from ``repr`` so it cannot end up in logs by accident.
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_MASTER_SECRET = "ENCRYPTION_PASSWORD"


@dataclass(frozen=True)
class EncryptionConfig:
    """Validated, immutable encryption settings."""

    master_secret: str = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.master_secret, str) or not self.master_secret:
            raise ConfigurationError("Encryption password is missing or empty")


def load_encryption_config(environ: Optional[Mapping[str, str]] = None) -> EncryptionConfig:
    """Build an EncryptionConfig from ``environ`` (defaults to os.environ).

    Raises:
        ConfigurationError: if ``ENCRYPTION_PASSWORD`` is unset or empty.
    """
    env = os.environ if environ is None else environ
    secret = env.get(ENV_MASTER_SECRET)
    if not secret:
        raise ConfigurationError(
            f"Encryption password is missing from environment variables ({ENV_MASTER_SECRET})."
        )
    return EncryptionConfig(master_secret=secret)


_config: Optional[EncryptionConfig] = None
_config_lock = threading.Lock()


def get_encryption_config() -> EncryptionConfig:
    """Return the process-wide EncryptionConfig, loading it on first use."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_encryption_config()
                logger.info("Loaded encryption configuration from %s", ENV_MASTER_SECRET)
    return _config
