"""Unit tests for the Key Derivation Function (KDF) module."""

import pytest
from argon2.low_level import Type, hash_secret_raw

from sealbox.core.exceptions import ConfigurationError, InvalidInputError
from sealbox.security.kdf import (
    derive_key,
    generate_iv,
    generate_salt,
    kdf_params,
)


def test_generate_salt_length():
    """Salts are 16 random bytes."""
    salt = generate_salt()
    assert isinstance(salt, bytes)
    assert len(salt) == 16


def test_generate_iv_length():
    iv = generate_iv()
    assert isinstance(iv, bytes)
    assert len(iv) == 16


def test_generate_salt_is_fresh():
    """Two salts should never collide in practice."""
    assert generate_salt() != generate_salt()


def test_derive_key_length():
    key = derive_key("correct-horse", generate_salt())
    assert isinstance(key, bytes)
    assert len(key) == 32


def test_derive_key_is_deterministic():
    """Same secret and salt always yield the same key."""
    salt = b"\x01" * 16
    assert derive_key("correct-horse", salt) == derive_key("correct-horse", salt)


def test_derive_key_depends_on_salt():
    k1 = derive_key("correct-horse", b"\x01" * 16)
    k2 = derive_key("correct-horse", b"\x02" * 16)
    assert k1 != k2


def test_derive_key_depends_on_secret():
    salt = b"\x03" * 16
    assert derive_key("correct-horse", salt) != derive_key("wrong-horse", salt)


def test_derive_key_uses_fixed_argon2id_parameters():
    """The key is the raw Argon2id output for m=65536, t=3, p=1, 32 bytes."""
    salt = b"\x04" * 16
    expected = hash_secret_raw(
        secret=b"correct-horse",
        salt=salt,
        time_cost=3,
        memory_cost=65536,
        parallelism=1,
        hash_len=32,
        type=Type.ID,
    )
    assert derive_key("correct-horse", salt) == expected


def test_derive_key_accepts_bytearray_salt():
    salt = bytearray(b"\x05" * 16)
    assert derive_key("pw", salt) == derive_key("pw", bytes(salt))


@pytest.mark.parametrize("secret", ["", None])
def test_derive_key_missing_secret(secret):
    with pytest.raises(ConfigurationError):
        derive_key(secret, generate_salt())


@pytest.mark.parametrize("salt", [b"", b"\x00" * 15, b"\x00" * 17, b"\x00" * 32, "a" * 16])
def test_derive_key_rejects_bad_salt(salt):
    """Only a 16-byte salt is accepted (never the full salt||iv blob)."""
    with pytest.raises(InvalidInputError, match="16 bytes"):
        derive_key("correct-horse", salt)


def test_kdf_params():
    assert kdf_params() == {
        "algo": "argon2id",
        "time": 3,
        "memory": 65536,
        "parallelism": 1,
        "key_len": 32,
        "salt_len": 16,
    }
