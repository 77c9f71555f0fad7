"""
Base data models for file records stored by SealBox
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
import uuid


class FileType(Enum):
    # Coarse classification used for filtering and the storage usage summary
    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class FileRecord:
    """
    Metadata for one stored file.

    ``salt`` holds the base64 salt||iv record produced at upload time and
    ``bucket_file_id`` points at the encrypted blob. Both are written once and
    never changed afterwards.
    """

    __slots__ = (
        'file_id',
        'name',
        'file_type',
        'extension',
        'size',
        'encrypted_size',
        'owner',
        'account_id',
        'users',
        'bucket_file_id',
        'salt',
        'mime',
        'created_at',
        'updated_at',
    )

    def __init__(
        self,
        file_id: Optional[str] = None,
        name: str = "",
        file_type: Optional[FileType] = None,
        extension: str = "",
        size: int = 0,
        encrypted_size: int = 0,
        owner: str = "",
        account_id: str = "",
        users: Optional[List[str]] = None,
        bucket_file_id: str = "",
        salt: Optional[str] = None,
        mime: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.file_id = file_id if file_id is not None else str(uuid.uuid4())
        self.name = name
        self.file_type = file_type if file_type is not None else FileType.OTHER
        self.extension = extension
        self.size = size
        self.encrypted_size = encrypted_size
        self.owner = owner
        self.account_id = account_id
        self.users = list(users) if users is not None else []
        self.bucket_file_id = bucket_file_id
        self.salt = salt
        self.mime = mime
        self.created_at = created_at if created_at is not None else utcnow()
        self.updated_at = updated_at if updated_at is not None else self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """
            Convert the record to a JSON friendly dict
        """
        return {
            'file_id': self.file_id,
            'name': self.name,
            'type': self.file_type.value,
            'extension': self.extension,
            'size': self.size,
            'encrypted_size': self.encrypted_size,
            'owner': self.owner,
            'account_id': self.account_id,
            'users': list(self.users),
            'bucket_file_id': self.bucket_file_id,
            'salt': self.salt,
            'mime': self.mime,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """
            Build a record from a dict produced by to_dict (or a DB row)
        """
        type_val = data.get('type', data.get('file_type', 'other'))
        file_type = FileType(type_val) if isinstance(type_val, str) else type_val

        return cls(
            file_id=data.get('file_id'),
            name=data.get('name', ""),
            file_type=file_type,
            extension=data.get('extension', ""),
            size=data.get('size', 0),
            encrypted_size=data.get('encrypted_size', 0),
            owner=data.get('owner', ""),
            account_id=data.get('account_id', ""),
            users=data.get('users'),
            bucket_file_id=data.get('bucket_file_id', ""),
            salt=data.get('salt'),
            mime=data.get('mime'),
            created_at=_parse_datetime(data.get('created_at')),
            updated_at=_parse_datetime(data.get('updated_at')),
        )

    def __repr__(self):
        return f"FileRecord(file_id={self.file_id!r}, name={self.name!r})"

    def __eq__(self, other):
        if not isinstance(other, FileRecord):
            return NotImplemented
        return self.file_id == other.file_id

    def __hash__(self):
        return hash(self.file_id)
