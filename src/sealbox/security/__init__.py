"""Security helpers: key derivation and per-file envelope encryption for SealBox.

- Argon2id key derivation from the master secret and a per-file salt
- AES-256-CBC/PKCS#7 encryption with a fresh salt and IV per file
- the base64 salt||iv record stored next to each file's metadata
"""

from .kdf import generate_salt, generate_iv, derive_key, kdf_params
from .config import EncryptionConfig, load_encryption_config, get_encryption_config
from .envelope import (
    EnvelopeCodec,
    SealedPayload,
    pack_salt_iv,
    unpack_salt_iv,
    encrypt_for_upload,
    decrypt_for_retrieval,
)

__all__ = [
    "generate_salt",
    "generate_iv",
    "derive_key",
    "kdf_params",
    "EncryptionConfig",
    "load_encryption_config",
    "get_encryption_config",
    "EnvelopeCodec",
    "SealedPayload",
    "pack_salt_iv",
    "unpack_salt_iv",
    "encrypt_for_upload",
    "decrypt_for_retrieval",
]
