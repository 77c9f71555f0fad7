"""SQLite schema definitions for SealBox."""

SCHEMA_VERSION = 1

CREATE_TABLES = [
    # Files table - one row per uploaded file; the blob itself lives in the BlobStore
    """
    CREATE TABLE IF NOT EXISTS files (
        file_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        file_type TEXT NOT NULL,
        extension TEXT,
        size INTEGER NOT NULL,
        encrypted_size INTEGER NOT NULL,
        owner TEXT NOT NULL,
        account_id TEXT NOT NULL,
        bucket_file_id TEXT NOT NULL,
        salt TEXT NOT NULL, -- base64(salt || iv), written once at upload
        mime TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    # File shares table - emails a file has been shared with
    """
    CREATE TABLE IF NOT EXISTS file_shares (
        file_id TEXT NOT NULL,
        email TEXT NOT NULL,
        PRIMARY KEY (file_id, email),
        FOREIGN KEY (file_id) REFERENCES files(file_id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_files_owner ON files(owner)",
    "CREATE INDEX IF NOT EXISTS idx_files_type ON files(file_type)",
    "CREATE INDEX IF NOT EXISTS idx_files_created ON files(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_file_shares_email ON file_shares(email)",
]


def get_init_schema():
    """
    Get complete schema initialization SQL

    Returns:
        List of SQL statements to execute
    """
    statements = []
    statements.extend(CREATE_TABLES)
    statements.extend(CREATE_INDEXES)
    statements.append(
        f"INSERT OR IGNORE INTO schema_version (version) VALUES ({SCHEMA_VERSION})"
    )
    return statements


def get_drop_schema():
    """
    Get SQL statements to drop all tables for testing

    Returns:
        List of DROP TABLE statements
    """
    return [
        "DROP TABLE IF EXISTS file_shares",
        "DROP TABLE IF EXISTS files",
        "DROP TABLE IF EXISTS schema_version",
    ]
