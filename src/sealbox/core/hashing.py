""" Utility for hashing stored blobs. """

import hashlib
from pathlib import Path


CHUNK_SIZE = 65536  # 64KB

def calculate_sha256(file_path: Path) -> str:

    # Calculates the SHA-256 hash of a file on disk, reading it in chunks.

    sha256 = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for data in iter(lambda: f.read(CHUNK_SIZE), b''):
            sha256.update(data)
    return sha256.hexdigest()


def calculate_sha256_bytes(data: bytes) -> str:
    # Same as calculate_sha256 for an in-memory buffer.
    return hashlib.sha256(data).hexdigest()
