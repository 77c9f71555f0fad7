"""Per-file envelope encryption.

Every encryption draws a fresh salt and IV, derives a one-off AES-256 key from
the master secret and the salt (see :mod:`sealbox.security.kdf`) and encrypts
with AES-256-CBC and PKCS#7 padding.

Record layout (the only persisted format defined here):
- base64( salt (16 bytes) || iv (16 bytes) ), stored as the file's ``salt`` field

The ciphertext itself carries no header; it is exactly the CBC output, i.e.
the plaintext length rounded up to the next multiple of 16 (a full padding
block is added when the length is already a multiple of 16).

CBC is unauthenticated. Wrong keys and tampering are detected through the
padding check only, which is best-effort; callers that need more should check
the decrypted result against data they stored (see FileManager).

Keys are never cached: decrypt re-derives the key on every call so it only
lives for the duration of that call.
"""
import base64
import binascii
import logging
from typing import NamedTuple, Optional, Tuple, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..core.exceptions import (
    ConfigurationError,
    DecryptionError,
    InvalidInputError,
    MalformedRecordError,
)
from .config import EncryptionConfig
from .kdf import IV_LENGTH, SALT_LENGTH, derive_key, generate_iv, generate_salt

logger = logging.getLogger(__name__)

RECORD_LENGTH = SALT_LENGTH + IV_LENGTH
BLOCK_SIZE_BITS = algorithms.AES.block_size  # 128


class SealedPayload(NamedTuple):
    """Result of an encryption: ciphertext for the blob store, record for metadata."""

    ciphertext: bytes
    salt_iv_record: str


def pack_salt_iv(salt: bytes, iv: bytes) -> str:
    if len(salt) != SALT_LENGTH or len(iv) != IV_LENGTH:
        raise InvalidInputError("Salt and IV must both be 16 bytes")
    return base64.b64encode(bytes(salt) + bytes(iv)).decode("ascii")


def unpack_salt_iv(record: Union[str, bytes, None]) -> Tuple[bytes, bytes]:
    """Split a stored record into (salt, iv).

    Raises:
        MalformedRecordError: if the record is missing, not base64, or does not
            decode to exactly 32 bytes.
    """
    if not record:
        raise MalformedRecordError("Salt not found for file.")
    try:
        raw = base64.b64decode(record, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise MalformedRecordError("Salt record is not valid base64") from None
    if len(raw) != RECORD_LENGTH:
        raise MalformedRecordError(
            f"Salt record must decode to {RECORD_LENGTH} bytes, got {len(raw)}"
        )
    return raw[:SALT_LENGTH], raw[SALT_LENGTH:]


def _require_bytes(value, what: str) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidInputError(f"{what} must be bytes, got {type(value).__name__}")
    return bytes(value)


class EnvelopeCodec:
    """Encrypt/decrypt file contents under a single master secret.

    The codec holds no state besides the master secret, so one instance can be
    shared between threads.
    """

    __slots__ = ("_master_secret",)

    def __init__(self, config: Union[EncryptionConfig, str, None]):
        if isinstance(config, EncryptionConfig):
            self._master_secret: Optional[str] = config.master_secret
        else:
            self._master_secret = config

    def __repr__(self):
        return "EnvelopeCodec()"

    def _require_secret(self) -> str:
        if not self._master_secret:
            raise ConfigurationError("Encryption password is not configured")
        return self._master_secret

    def encrypt(self, plaintext: bytes) -> SealedPayload:
        """Encrypt ``plaintext`` under a fresh salt and IV."""
        secret = self._require_secret()
        data = _require_bytes(plaintext, "plaintext")

        salt = generate_salt()
        iv = generate_iv()
        key = derive_key(secret, salt)

        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(data) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        logger.debug("Encrypted %d bytes into %d bytes", len(data), len(ciphertext))
        return SealedPayload(ciphertext, pack_salt_iv(salt, iv))

    def decrypt(self, ciphertext: bytes, salt_iv_record: Union[str, bytes]) -> bytes:
        """Decrypt ``ciphertext`` with the salt and IV from ``salt_iv_record``.

        Raises:
            ConfigurationError: no master secret configured.
            MalformedRecordError: the record is missing or malformed; raised
                before any key derivation or cipher work.
            DecryptionError: wrong key, corrupted or tampered ciphertext.
        """
        secret = self._require_secret()
        data = _require_bytes(ciphertext, "ciphertext")
        salt, iv = unpack_salt_iv(salt_iv_record)

        key = derive_key(secret, salt)

        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            # one message for every failure mode
            raise DecryptionError("Decryption failed: invalid key or data.") from None

        return plaintext


def encrypt_for_upload(plaintext: bytes, master_secret: str) -> SealedPayload:
    """Encrypt file bytes before upload; returns (ciphertext, salt_iv_record)."""
    return EnvelopeCodec(master_secret).encrypt(plaintext)


def decrypt_for_retrieval(ciphertext: bytes, salt_iv_record: str, master_secret: str) -> bytes:
    """Decrypt file bytes fetched from the blob store with their stored record."""
    return EnvelopeCodec(master_secret).decrypt(ciphertext, salt_iv_record)
