"""SQLite connection and initialization utilities."""

import logging
import sqlite3
import threading
from pathlib import Path

from .schema import get_init_schema
from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manage thread-local SQLite connections and schema init."""

    __slots__ = ("db_path", "_local", "_lock", "_initialized")

    def __init__(self, db_path="./sealbox.db"):
        """Initialize connection state."""
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

    def initialize(self):
        """Create the schema if not already done for this connection object."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = self._get_connection()
                for statement in get_init_schema():
                    conn.execute(statement)
                conn.commit()
                self._initialized = True
                logger.debug("Initialized metadata database at %s", self.db_path)

            except sqlite3.Error as e:
                raise StorageError(f"Failed to initialize database: {e}") from e

    def _get_connection(self):
        """Get or create the SQLite connection owned by this thread."""
        if getattr(self._local, "connection", None) is None:
            conn = sqlite3.connect(
                str(self.db_path), check_same_thread=False, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.connection = conn

        return self._local.connection

    def get_transaction_context(self):
        """Return a transaction context manager (BEGIN/COMMIT/ROLLBACK)."""
        return TransactionContext(self._get_connection())

    def execute(self, query, params=()):
        """Execute a single SQL statement and return the affected row count."""
        try:
            with CursorContext(self._get_connection()) as cursor:
                cursor.execute(query, params)
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    def fetch_one(self, query, params=()):
        """Fetch a single row as a dict or None."""
        try:
            with CursorContext(self._get_connection()) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                return dict(row) if row else None
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    def fetch_all(self, query, params=()):
        """Fetch all rows as a list of dicts."""
        try:
            with CursorContext(self._get_connection()) as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    def get_version(self):
        """Return current schema version number."""
        try:
            result = self.fetch_one("SELECT MAX(version) AS version FROM schema_version")
        except StorageError:
            return 0
        return result["version"] if result and result["version"] else 0

    def close(self):
        """
        Close the calling thread's connection if open.

        Connections opened by other threads (for example pool workers) are not
        reached from here; each thread must call ``close`` itself or they are
        closed when the thread and its connection are garbage collected. The
        next query from this thread opens a fresh connection.
        """
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None


class CursorContext:
    """Context manager for SQLite cursor."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection):
        self.connection = connection
        self.cursor = None

    def __enter__(self):
        self.cursor = self.connection.cursor()
        return self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.cursor:
            self.cursor.close()


class TransactionContext:
    """Context manager for transactions (BEGIN/COMMIT/ROLLBACK)."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection):
        self.connection = connection
        self.cursor = None

    def __enter__(self):
        """Begin a transaction and return a cursor."""
        self.cursor = self.connection.cursor()
        self.cursor.execute("BEGIN")
        return self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Commit on success, rollback on error, then close cursor."""
        try:
            if exc_type is None:
                self.connection.commit()
            else:
                self.connection.rollback()
        finally:
            if self.cursor:
                self.cursor.close()
