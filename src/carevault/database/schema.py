"""SQLite schema definitions for CareVault."""

SCHEMA_VERSION = 1

CREATE_TABLES = [
    # Documents table - one immutable row per upload; binary fields stay raw BLOBs
    """
    CREATE TABLE IF NOT EXISTS documents (
        document_id INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id TEXT NOT NULL,
        filename TEXT NOT NULL,
        content_type TEXT NOT NULL,
        document_type TEXT NOT NULL,
        ciphertext BLOB NOT NULL,
        nonce BLOB NOT NULL CHECK (length(nonce) = 16),
        auth_tag BLOB NOT NULL CHECK (length(auth_tag) = 16),
        size_bytes INTEGER NOT NULL CHECK (size_bytes > 0),
        uploaded_at TEXT NOT NULL,
        tags TEXT
    )
    """,
    # Schema version table
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_owner_id ON documents(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_documents_uploaded_at ON documents(uploaded_at)",
]

# Records are written once; edits would break the nonce/ciphertext pairing
CREATE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS documents_immutable
    BEFORE UPDATE ON documents
    FOR EACH ROW
    BEGIN
        SELECT RAISE(ABORT, 'documents are immutable');
    END
    """,
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
    statements.extend(CREATE_TRIGGERS)
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
        "DROP TRIGGER IF EXISTS documents_immutable",
        "DROP TABLE IF EXISTS documents",
        "DROP TABLE IF EXISTS schema_version",
    ]
