"""
FileManager for SealBox: encrypted uploads and retrieval over the blob store
and the metadata database.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..database.connection import DatabaseConnection
from ..database.models import FileModel
from ..security.config import EncryptionConfig
from ..security.envelope import EnvelopeCodec
from .exceptions import (
    DecryptionError,
    FileNotFoundError,
    InvalidInputError,
    MalformedRecordError,
    StorageError,
)
from .metadata import get_file_type, guess_mime
from .models import FileRecord, FileType
from .storage import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BYTES = 2 * 1024 * 1024 * 1024  # 2GB


class FileManager:
    """High-level file operations over storage and database."""

    def __init__(
        self,
        storage_root: str,
        db_connection: DatabaseConnection,
        config: Union[EncryptionConfig, str, None],
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
    ):
        self.db = db_connection
        self.file_model = FileModel(self.db)
        self.blobs = BlobStore(storage_root)
        self.codec = EnvelopeCodec(config)
        self.quota_bytes = quota_bytes

    # ------------------------------------------------------------------
    # Upload / retrieval
    # ------------------------------------------------------------------

    def upload_file(
        self,
        data: bytes,
        name: str,
        owner_id: str,
        account_id: str,
        mime: Optional[str] = None,
    ) -> FileRecord:
        """
        Encrypt ``data`` and store it as a new file owned by ``owner_id``.

        The ciphertext goes to the blob store and the salt/iv record to the
        file's metadata row. If the row cannot be written the blob is removed
        again so no orphaned ciphertext is left behind.
        """
        if not name or not name.strip():
            raise InvalidInputError("File name must not be empty")

        sealed = self.codec.encrypt(data)
        blob_id = self.blobs.put(sealed.ciphertext)

        file_type, extension = get_file_type(name)
        record = FileRecord(
            name=name,
            file_type=file_type,
            extension=extension,
            size=len(data),
            encrypted_size=len(sealed.ciphertext),
            owner=owner_id,
            account_id=account_id,
            bucket_file_id=blob_id,
            salt=sealed.salt_iv_record,
            mime=mime or guess_mime(name),
        )

        try:
            self.file_model.create(record)
        except StorageError:
            self.blobs.delete(blob_id)
            logger.error("Failed to create file record for %s; blob removed", name)
            raise

        logger.info("Uploaded file %s (%d bytes) as blob %s", record.file_id, record.size, blob_id)
        return record

    def add_file(
        self,
        source_path: str,
        owner_id: str,
        account_id: str,
        name: Optional[str] = None,
        mime: Optional[str] = None,
    ) -> FileRecord:
        """Read a file from disk and upload it."""
        src = Path(source_path).expanduser()
        with open(src, "rb") as f:
            data = f.read()
        return self.upload_file(data, name or src.name, owner_id, account_id, mime=mime)

    def get_record(self, file_id: str) -> FileRecord:
        record = self.file_model.get(file_id)
        if record is None:
            raise FileNotFoundError(f"File with ID '{file_id}' not found.")
        return record

    def decrypt_file(self, file_id: str) -> bytes:
        """Fetch and decrypt the contents of a stored file."""
        record = self.get_record(file_id)
        if not record.salt:
            raise MalformedRecordError("Salt not found for file.")

        ciphertext = self.blobs.get(record.bucket_file_id)
        plaintext = self.codec.decrypt(ciphertext, record.salt)

        # catches most wrong-key results that happen to unpad cleanly
        if len(plaintext) != record.size:
            raise DecryptionError("Decryption failed: invalid key or data.")

        logger.info("Decrypted file %s", file_id)
        return plaintext

    def get_file(self, file_id: str, destination_path: str) -> str:
        """Decrypt a stored file into ``destination_path``."""
        data = self.decrypt_file(file_id)
        destination = Path(destination_path).expanduser()
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(destination, "wb") as f:
            f.write(data)
        return str(destination)

    def verify_file(self, file_id: str) -> bool:
        """Check that the stored ciphertext still matches its content hash."""
        record = self.get_record(file_id)
        return self.blobs.verify(record.bucket_file_id)

    # ------------------------------------------------------------------
    # Listing and metadata updates
    # ------------------------------------------------------------------

    def get_files(
        self,
        owner_id: str,
        email: Optional[str] = None,
        types: Iterable[Union[FileType, str]] = (),
        search_text: str = "",
        sort: str = "created_at-desc",
        limit: Optional[int] = None,
    ) -> List[FileRecord]:
        """Files owned by ``owner_id`` or shared with ``email``."""
        return self.file_model.list_visible(
            owner_id,
            email=email,
            types=tuple(types),
            search_text=search_text,
            sort=sort,
            limit=limit,
        )

    def rename_file(self, file_id: str, name: str, extension: str) -> FileRecord:
        """Rename a file to ``name.extension``."""
        if not name or not name.strip():
            raise InvalidInputError("File name must not be empty")
        new_name = f"{name}.{extension}" if extension else name
        if not self.file_model.rename(file_id, new_name):
            raise FileNotFoundError(f"File with ID '{file_id}' not found.")
        return self.get_record(file_id)

    def update_file_users(self, file_id: str, emails: Iterable[str]) -> FileRecord:
        """Replace the list of emails a file is shared with."""
        cleaned = sorted({e.strip() for e in emails if e and e.strip()})
        if not self.file_model.set_users(file_id, cleaned):
            raise FileNotFoundError(f"File with ID '{file_id}' not found.")
        return self.get_record(file_id)

    def delete_file(self, file_id: str) -> bool:
        """Delete the metadata record (and salt) first, then the blob."""
        record = self.get_record(file_id)
        if not self.file_model.delete(file_id):
            return False
        self.blobs.delete(record.bucket_file_id)
        logger.info("Deleted file %s", file_id)
        return True

    def get_total_space_used(self, owner_id: str) -> Dict:
        """Summarise plaintext bytes used per file type for ``owner_id``."""
        total = {
            t.value: {"size": 0, "latest_date": None} for t in FileType
        }
        total["used"] = 0
        total["all"] = self.quota_bytes

        for record in self.file_model.list_by_owner(owner_id):
            bucket = total[record.file_type.value]
            bucket["size"] += record.size
            total["used"] += record.size
            updated = record.updated_at.isoformat()
            if bucket["latest_date"] is None or updated > bucket["latest_date"]:
                bucket["latest_date"] = updated

        return total
