"""ORM-style helpers for the file metadata store."""

import sqlite3
from datetime import datetime

from .connection import DatabaseConnection
from ..core.models import FileRecord, FileType, utcnow
from ..core.exceptions import InvalidInputError, StorageError

# Public sort fields mapped to their columns
SORT_COLUMNS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "name": "name",
    "size": "size",
}


def parse_sort(sort):
    """Turn ``"<field>-<asc|desc>"`` into a safe ORDER BY clause."""
    field, _, direction = (sort or "created_at-desc").partition("-")
    column = SORT_COLUMNS.get(field)
    direction = direction.lower() or "desc"
    if column is None or direction not in ("asc", "desc"):
        raise InvalidInputError(f"Unsupported sort order: {sort!r}")
    return f"{column} {direction.upper()}"


def _type_value(file_type):
    if isinstance(file_type, FileType):
        return file_type.value
    try:
        return FileType(file_type).value
    except ValueError as e:
        raise InvalidInputError(f"Unknown file type: {file_type!r}") from e


class BaseModel:
    """Base class for DB models."""

    __slots__ = ("db",)

    def __init__(self, db: DatabaseConnection):
        """Initialize with a DatabaseConnection."""
        self.db = db


class FileModel(BaseModel):
    """DB model for file records and their share lists."""

    def create(self, record):
        """Insert a file record (and its shares) and return its ID."""
        query = """
            INSERT INTO files (
                file_id, name, file_type, extension, size, encrypted_size,
                owner, account_id, bucket_file_id, salt, mime,
                created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """

        params = (
            record.file_id,
            record.name,
            record.file_type.value,
            record.extension,
            record.size,
            record.encrypted_size,
            record.owner,
            record.account_id,
            record.bucket_file_id,
            record.salt,
            record.mime,
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
        )

        try:
            with self.db.get_transaction_context() as cursor:
                cursor.execute(query, params)
                for email in record.users:
                    cursor.execute(
                        "INSERT OR IGNORE INTO file_shares (file_id, email) VALUES (?, ?)",
                        (record.file_id, email),
                    )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to create file record: {e}") from e

        return record.file_id

    def get(self, file_id):
        """Get a FileRecord by ID or None."""
        row = self.db.fetch_one("SELECT * FROM files WHERE file_id = ?", (file_id,))
        if not row:
            return None
        return row_to_record(row, self._get_users(file_id))

    def list_by_owner(self, owner):
        """List every file owned by ``owner``, newest first."""
        rows = self.db.fetch_all(
            "SELECT * FROM files WHERE owner = ? ORDER BY created_at DESC", (owner,)
        )
        return [row_to_record(row, self._get_users(row["file_id"])) for row in rows]

    def list_visible(
        self,
        owner,
        email=None,
        types=(),
        search_text="",
        sort="created_at-desc",
        limit=None,
    ):
        """
        List files owned by ``owner`` or shared with ``email``.

        ``types`` restricts to the given FileType values, ``search_text`` is a
        case-insensitive substring match on the name.
        """
        query = "SELECT * FROM files WHERE (owner = ?"
        params = [owner]

        if email:
            query += " OR file_id IN (SELECT file_id FROM file_shares WHERE email = ?)"
            params.append(email)
        query += ")"

        if types:
            values = [_type_value(t) for t in types]
            query += f" AND file_type IN ({', '.join('?' for _ in values)})"
            params.extend(values)

        if search_text:
            query += " AND name LIKE ? ESCAPE '\\'"
            escaped = (
                search_text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            params.append(f"%{escaped}%")

        query += f" ORDER BY {parse_sort(sort)}"

        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        rows = self.db.fetch_all(query, tuple(params))
        return [row_to_record(row, self._get_users(row["file_id"])) for row in rows]

    def rename(self, file_id, name):
        """Rename a file; returns True if a row was updated."""
        count = self.db.execute(
            "UPDATE files SET name = ?, updated_at = ? WHERE file_id = ?",
            (name, utcnow().isoformat(), file_id),
        )
        return count > 0

    def set_users(self, file_id, emails):
        """Replace the share list of a file; returns False if it does not exist."""
        try:
            with self.db.get_transaction_context() as cursor:
                cursor.execute(
                    "UPDATE files SET updated_at = ? WHERE file_id = ?",
                    (utcnow().isoformat(), file_id),
                )
                if cursor.rowcount == 0:
                    return False
                cursor.execute("DELETE FROM file_shares WHERE file_id = ?", (file_id,))
                for email in emails:
                    cursor.execute(
                        "INSERT OR IGNORE INTO file_shares (file_id, email) VALUES (?, ?)",
                        (file_id, email),
                    )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to update shares: {e}") from e
        return True

    def delete(self, file_id):
        """Delete a file record; shares go with it via ON DELETE CASCADE."""
        count = self.db.execute("DELETE FROM files WHERE file_id = ?", (file_id,))
        return count > 0

    def _get_users(self, file_id):
        rows = self.db.fetch_all(
            "SELECT email FROM file_shares WHERE file_id = ? ORDER BY email", (file_id,)
        )
        return [row["email"] for row in rows]


def row_to_record(row, users):
    """Convert a row dict + share list to FileRecord."""
    return FileRecord(
        file_id=row["file_id"],
        name=row["name"],
        file_type=FileType(row["file_type"]),
        extension=row["extension"] or "",
        size=row["size"],
        encrypted_size=row["encrypted_size"],
        owner=row["owner"],
        account_id=row["account_id"],
        users=users,
        bucket_file_id=row["bucket_file_id"],
        salt=row["salt"],
        mime=row["mime"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
