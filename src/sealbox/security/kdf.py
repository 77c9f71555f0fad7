"""Argon2id key derivation for per-file envelope keys.

The cost parameters are fixed for the whole deployment. Every stored file is
re-derived with them on read, so changing any of them makes previously
uploaded files undecryptable.
"""
import os
from typing import Dict

from argon2.low_level import Type, hash_secret_raw

from ..core.exceptions import ConfigurationError, InvalidInputError

TIME_COST = 3
MEMORY_COST = 65536  # KiB
PARALLELISM = 1
KEY_LENGTH = 32
SALT_LENGTH = 16
IV_LENGTH = 16


def generate_salt() -> bytes:
    """Return a fresh 16-byte salt from the OS CSPRNG."""
    return os.urandom(SALT_LENGTH)


def generate_iv() -> bytes:
    """Return a fresh 16-byte AES-CBC IV from the OS CSPRNG."""
    return os.urandom(IV_LENGTH)


def derive_key(master_secret: str, salt: bytes) -> bytes:
    """
    Derive the 32-byte AES key for one file from the master secret and its salt.

    The raw Argon2id output is used directly as the key.
    """
    if not master_secret:
        raise ConfigurationError("Encryption password is not configured")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_LENGTH:
        raise InvalidInputError(f"Salt must be exactly {SALT_LENGTH} bytes")

    if isinstance(master_secret, str):
        master_secret = master_secret.encode("utf-8")

    return hash_secret_raw(
        secret=master_secret,
        salt=bytes(salt),
        time_cost=TIME_COST,
        memory_cost=MEMORY_COST,
        parallelism=PARALLELISM,
        hash_len=KEY_LENGTH,
        type=Type.ID,
    )


def kdf_params() -> Dict:
    return {
        "algo": "argon2id",
        "time": TIME_COST,
        "memory": MEMORY_COST,
        "parallelism": PARALLELISM,
        "key_len": KEY_LENGTH,
        "salt_len": SALT_LENGTH,
    }
