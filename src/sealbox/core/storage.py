"""
Blob store for SealBox

Structure Map for reference:
==============================
 - <storage_root>/
      - blobs/
          - {sha256[:2]}/
              - {sha256}
==============================
For reference:
> Blobs are opaque bytes. SealBox only ever writes ciphertext here, the
  salt/iv needed to read it back lives in the metadata database.
> The blob id is the SHA-256 of the stored bytes, so ``verify`` can detect
  corruption at rest without touching any key material.
> The store knows nothing about files, owners or encryption.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from .exceptions import BlobNotFoundError, InvalidInputError, StorageError
from .hashing import calculate_sha256, calculate_sha256_bytes

logger = logging.getLogger(__name__)

_BLOB_ID_RE = re.compile(r"^[0-9a-f]{64}$")


class BlobStore:
    """Content-addressed blob store on the local filesystem"""

    def __init__(self, root_path: Optional[str] = None):
        self.root = (
            Path(root_path).expanduser() if root_path else Path.home() / ".sealbox"
        )
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def blob_root(self) -> Path:
        return self.root / "blobs"

    def blob_path(self, blob_id: str) -> Path:
        if not isinstance(blob_id, str) or not _BLOB_ID_RE.match(blob_id):
            raise InvalidInputError(f"Invalid blob id: {blob_id!r}")
        return self.blob_root / blob_id[:2] / blob_id

    def put(self, data: bytes) -> str:
        """Store ``data`` and return its blob id."""
        blob_id = calculate_sha256_bytes(data)
        destination = self.blob_path(blob_id)
        if destination.exists():
            return blob_id

        destination.parent.mkdir(parents=True, exist_ok=True)
        # write to a temp file first so a crash never leaves a partial blob
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, destination)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write blob {blob_id}: {e}") from e

        logger.debug("Stored blob %s (%d bytes)", blob_id, len(data))
        return blob_id

    def get(self, blob_id: str) -> bytes:
        path = self.blob_path(blob_id)
        if not path.exists():
            raise BlobNotFoundError(f"Blob {blob_id} not found")
        with open(path, "rb") as f:
            return f.read()

    def has(self, blob_id: str) -> bool:
        return self.blob_path(blob_id).exists()

    def size(self, blob_id: str) -> int:
        path = self.blob_path(blob_id)
        if not path.exists():
            raise BlobNotFoundError(f"Blob {blob_id} not found")
        return path.stat().st_size

    def verify(self, blob_id: str) -> bool:
        """Return True if the blob exists and still hashes to its id."""
        path = self.blob_path(blob_id)
        if not path.exists():
            return False
        return calculate_sha256(path) == blob_id

    def delete(self, blob_id: str) -> bool:
        path = self.blob_path(blob_id)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("Deleted blob %s", blob_id)
        return True
