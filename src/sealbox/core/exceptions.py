"""
Exceptions for SealBox
Everything derives from SealBoxError so callers have a single catch point
"""


class SealBoxError(Exception):
    # general container for errors
    pass


class ConfigurationError(SealBoxError):
    # raised when the master secret (or another setting) is missing or invalid
    pass


class InvalidInputError(SealBoxError):
    # raised on malformed arguments, e.g. a salt that is not 16 bytes
    pass


class MalformedRecordError(SealBoxError):
    # raised when the stored salt/iv record is missing or not 32 bytes
    pass


class DecryptionError(SealBoxError):
    # raised when ciphertext cannot be decrypted (wrong key, corruption, tampering)
    pass


class StorageError(SealBoxError):
    # raised if the blob store or the metadata database fails
    pass


class FileNotFoundError(StorageError):
    # raised if a file record is not found
    pass


class BlobNotFoundError(StorageError):
    # raised if a blob is not found in the blob store
    pass
