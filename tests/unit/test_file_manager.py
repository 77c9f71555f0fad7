"""Unit tests for the FileManager upload/retrieval workflow."""

import base64
from pathlib import Path
from unittest.mock import patch

import pytest

from sealbox.core.exceptions import (
    BlobNotFoundError,
    ConfigurationError,
    DecryptionError,
    FileNotFoundError,
    InvalidInputError,
    MalformedRecordError,
    StorageError,
)
from sealbox.core.file_manager import DEFAULT_QUOTA_BYTES, FileManager
from sealbox.core.models import FileType
from sealbox.database.connection import DatabaseConnection
from sealbox.security.config import EncryptionConfig

SECRET = "correct-horse"


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def db(tmp_path):
    conn = DatabaseConnection(tmp_path / "test.db")
    conn.initialize()
    yield conn
    conn.close()


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "storage"


@pytest.fixture
def fm(db, storage_root):
    return FileManager(str(storage_root), db, EncryptionConfig(master_secret=SECRET))


def _blob_files(storage_root: Path):
    blobs = storage_root / "blobs"
    if not blobs.exists():
        return []
    return [p for p in blobs.rglob("*") if p.is_file()]


# ==============================================================================
# Tests: Upload / retrieval
# ==============================================================================

def test_blob_store_owns_storage_root(fm, storage_root):
    assert fm.blobs.root == storage_root
    assert not hasattr(fm, "storage_root")


def test_upload_and_decrypt_roundtrip(fm):
    record = fm.upload_file(b"hello world", "notes.txt", "owner-1", "acct-1")
    assert fm.decrypt_file(record.file_id) == b"hello world"


def test_upload_record_fields(fm):
    record = fm.upload_file(b"\x89PNG...", "Photo.PNG", "owner-1", "acct-1")

    assert record.name == "Photo.PNG"
    assert record.file_type is FileType.IMAGE
    assert record.extension == "png"
    assert record.mime == "image/png"
    assert record.size == 7
    assert record.encrypted_size == 16
    assert record.owner == "owner-1"
    assert record.account_id == "acct-1"
    assert len(base64.b64decode(record.salt)) == 32


def test_upload_explicit_mime_wins(fm):
    record = fm.upload_file(b"x", "data.bin", "owner-1", "acct-1", mime="application/x-custom")
    assert record.mime == "application/x-custom"


def test_blob_holds_ciphertext_only(fm, storage_root):
    plaintext = b"top secret contents " * 10
    record = fm.upload_file(plaintext, "secret.txt", "owner-1", "acct-1")

    stored = fm.blobs.get(record.bucket_file_id)
    assert stored != plaintext
    assert b"top secret" not in stored
    assert len(stored) == record.encrypted_size
    assert fm.verify_file(record.file_id) is True


def test_add_file_from_disk(fm, tmp_path):
    src = tmp_path / "report.pdf"
    src.write_bytes(b"%PDF-1.7 body")

    record = fm.add_file(str(src), "owner-1", "acct-1")

    assert record.name == "report.pdf"
    assert record.file_type is FileType.DOCUMENT
    assert fm.decrypt_file(record.file_id) == b"%PDF-1.7 body"


def test_get_file_writes_plaintext(fm, tmp_path):
    record = fm.upload_file(b"restore me", "r.txt", "owner-1", "acct-1")
    out = tmp_path / "out" / "restored.txt"

    assert fm.get_file(record.file_id, str(out)) == str(out)
    assert out.read_bytes() == b"restore me"


def test_upload_empty_file(fm):
    record = fm.upload_file(b"", "empty.txt", "owner-1", "acct-1")
    assert record.encrypted_size == 16
    assert fm.decrypt_file(record.file_id) == b""


@pytest.mark.parametrize("name", ["", "   "])
def test_upload_requires_name(fm, name):
    with pytest.raises(InvalidInputError):
        fm.upload_file(b"x", name, "owner-1", "acct-1")


def test_upload_without_secret_writes_nothing(db, storage_root):
    fm = FileManager(str(storage_root), db, None)
    with pytest.raises(ConfigurationError):
        fm.upload_file(b"x", "a.txt", "owner-1", "acct-1")

    assert _blob_files(storage_root) == []
    assert fm.get_files("owner-1") == []


def test_upload_rolls_back_blob_when_record_fails(fm, storage_root):
    with patch.object(fm.file_model, "create", side_effect=StorageError("db down")):
        with pytest.raises(StorageError):
            fm.upload_file(b"orphan?", "a.txt", "owner-1", "acct-1")

    assert _blob_files(storage_root) == []


def test_decrypt_missing_file(fm):
    with pytest.raises(FileNotFoundError):
        fm.decrypt_file("does-not-exist")


def test_decrypt_with_wrong_secret_fails(fm, db, storage_root):
    with patch("sealbox.security.envelope.generate_salt", return_value=b"\x11" * 16), \
            patch("sealbox.security.envelope.generate_iv", return_value=b"\x22" * 16):
        record = fm.upload_file(b"hello world", "hello.txt", "owner-1", "acct-1")

    other = FileManager(str(storage_root), db, EncryptionConfig(master_secret="wrong-horse"))
    with pytest.raises(DecryptionError):
        other.decrypt_file(record.file_id)


def test_decrypt_without_salt(fm, db):
    record = fm.upload_file(b"data", "d.txt", "owner-1", "acct-1")
    db.execute("UPDATE files SET salt = '' WHERE file_id = ?", (record.file_id,))

    with pytest.raises(MalformedRecordError, match="Salt not found"):
        fm.decrypt_file(record.file_id)


def test_decrypt_with_short_salt_record(fm, db):
    record = fm.upload_file(b"data", "d.txt", "owner-1", "acct-1")
    short = base64.b64encode(b"\x00" * 16).decode()
    db.execute("UPDATE files SET salt = ? WHERE file_id = ?", (short, record.file_id))

    with pytest.raises(MalformedRecordError):
        fm.decrypt_file(record.file_id)


def test_decrypt_detects_size_mismatch(fm, db):
    record = fm.upload_file(b"hello world", "h.txt", "owner-1", "acct-1")
    db.execute("UPDATE files SET size = 3 WHERE file_id = ?", (record.file_id,))

    with pytest.raises(DecryptionError):
        fm.decrypt_file(record.file_id)


def test_decrypt_with_flipped_salt_bit_fails(fm, db):
    # a salt flip can unpad cleanly; the recorded size still rejects it
    with patch("sealbox.security.envelope.generate_salt", return_value=b"\x11" * 16), \
            patch("sealbox.security.envelope.generate_iv", return_value=b"\x22" * 16):
        record = fm.upload_file(b"hello world", "hello.txt", "owner-1", "acct-1")

    raw = bytearray(base64.b64decode(record.salt))
    raw[7] ^= 0x01
    tampered = base64.b64encode(bytes(raw)).decode("ascii")
    db.execute("UPDATE files SET salt = ? WHERE file_id = ?", (tampered, record.file_id))

    with pytest.raises(DecryptionError):
        fm.decrypt_file(record.file_id)


def test_decrypt_missing_blob(fm):
    record = fm.upload_file(b"data", "d.txt", "owner-1", "acct-1")
    fm.blobs.delete(record.bucket_file_id)

    with pytest.raises(BlobNotFoundError):
        fm.decrypt_file(record.file_id)


# ==============================================================================
# Tests: Listing and metadata updates
# ==============================================================================

def test_get_files_owned_and_shared(fm):
    mine = fm.upload_file(b"1", "mine.txt", "alice", "acct-a")
    theirs = fm.upload_file(b"2", "theirs.png", "bob", "acct-b")
    fm.upload_file(b"3", "private.txt", "bob", "acct-b")
    fm.update_file_users(theirs.file_id, ["alice@example.com"])

    visible = fm.get_files("alice", email="alice@example.com", sort="name-asc")
    assert [r.file_id for r in visible] == [mine.file_id, theirs.file_id]

    images = fm.get_files("alice", email="alice@example.com", types=["image"])
    assert [r.name for r in images] == ["theirs.png"]


def test_rename_file(fm):
    record = fm.upload_file(b"x", "draft.txt", "owner-1", "acct-1")
    renamed = fm.rename_file(record.file_id, "final", "txt")

    assert renamed.name == "final.txt"
    assert renamed.salt == record.salt
    assert fm.decrypt_file(record.file_id) == b"x"


def test_rename_missing_file(fm):
    with pytest.raises(FileNotFoundError):
        fm.rename_file("nope", "a", "txt")


def test_update_file_users_normalises(fm):
    record = fm.upload_file(b"x", "a.txt", "owner-1", "acct-1")
    updated = fm.update_file_users(record.file_id, [" b@example.com", "a@example.com", "", "a@example.com"])
    assert updated.users == ["a@example.com", "b@example.com"]


def test_update_file_users_missing_file(fm):
    with pytest.raises(FileNotFoundError):
        fm.update_file_users("nope", ["a@example.com"])


def test_delete_file_removes_record_and_blob(fm, storage_root):
    record = fm.upload_file(b"bye", "bye.txt", "owner-1", "acct-1")

    assert fm.delete_file(record.file_id) is True
    assert fm.file_model.get(record.file_id) is None
    assert fm.blobs.has(record.bucket_file_id) is False
    assert _blob_files(storage_root) == []


def test_delete_missing_file(fm):
    with pytest.raises(FileNotFoundError):
        fm.delete_file("nope")


def test_total_space_used(fm):
    fm.upload_file(b"a" * 10, "a.txt", "owner-1", "acct-1")
    fm.upload_file(b"b" * 5, "b.pdf", "owner-1", "acct-1")
    fm.upload_file(b"c" * 7, "c.jpg", "owner-1", "acct-1")
    fm.upload_file(b"d" * 99, "d.jpg", "someone-else", "acct-2")

    usage = fm.get_total_space_used("owner-1")

    assert usage["used"] == 22
    assert usage["all"] == DEFAULT_QUOTA_BYTES
    assert usage["document"]["size"] == 15
    assert usage["image"]["size"] == 7
    assert usage["video"] == {"size": 0, "latest_date": None}
    assert usage["document"]["latest_date"] is not None


def test_total_space_custom_quota(db, storage_root):
    fm = FileManager(str(storage_root), db, SECRET, quota_bytes=1024)
    assert fm.get_total_space_used("nobody")["all"] == 1024
