"""SQLite implementation of the document persistence contract."""

import json
import logging
from datetime import datetime

from .connection import DatabaseConnection
from ..core.exceptions import DocumentCorruptedError
from ..core.models import EncryptedRecord

logger = logging.getLogger(__name__)


class DocumentModel:
    """DB model for encrypted documents.

    Implements ``insert``/``get_by_id``/``list_by_owner``/``delete``; there is
    deliberately no update.
    """

    __slots__ = ("db",)

    def __init__(self, db: DatabaseConnection):
        """Initialize with a DatabaseConnection."""
        self.db = db

    def insert(self, record):
        """Insert a record in one transaction and return its new document_id."""
        query = """
            INSERT INTO documents (
                owner_id, filename, content_type, document_type,
                ciphertext, nonce, auth_tag, size_bytes, uploaded_at, tags)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """

        params = (
            record.owner_id,
            record.filename,
            record.content_type,
            record.document_type,
            record.ciphertext,
            record.nonce,
            record.auth_tag,
            record.size_bytes,
            record.uploaded_at.isoformat(),
            json.dumps(list(record.tags)),
        )

        with self.db.get_transaction_context() as cursor:
            cursor.execute(query, params)
            return cursor.lastrowid

    def get_by_id(self, document_id):
        """Get EncryptedRecord by ID or None."""
        query = "SELECT * FROM documents WHERE document_id = ?"
        row = self.db.fetch_one(query, (document_id,))
        return row_to_record(row) if row else None

    def list_by_owner(self, owner_id):
        """List an owner's records, newest first."""
        query = """
            SELECT * FROM documents WHERE owner_id = ?
            ORDER BY uploaded_at DESC, document_id DESC
        """
        rows = self.db.fetch_all(query, (owner_id,))
        result = []
        for row in rows:
            try:
                result.append(row_to_record(row))
            except DocumentCorruptedError:
                # damaged rows are logged and left out of listings
                logger.warning("Skipping unreadable document %s in listing", row["document_id"])
        return result

    def delete(self, document_id):
        """Permanently delete a record; True if a row was removed."""
        query = "DELETE FROM documents WHERE document_id = ?"
        _, rowcount = self.db.execute(query, (document_id,))
        return rowcount > 0

    def count(self):
        """Return the total number of stored documents."""
        row = self.db.fetch_one("SELECT COUNT(*) AS n FROM documents")
        return row["n"]


def row_to_record(row):
    """Convert a row dict to an EncryptedRecord.

    Raises DocumentCorruptedError when stored metadata cannot be decoded.
    """
    try:
        return _build_record(row)
    except (ValueError, TypeError) as e:
        raise DocumentCorruptedError(row["document_id"]) from e


def _build_record(row):
    tags = ()
    if row.get("tags"):
        tags = json.loads(row["tags"])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValueError("tags must be a JSON list of strings")
        tags = tuple(tags)

    return EncryptedRecord(
        document_id=row["document_id"],
        owner_id=row["owner_id"],
        filename=row["filename"],
        content_type=row["content_type"],
        document_type=row["document_type"],
        ciphertext=bytes(row["ciphertext"]),
        nonce=bytes(row["nonce"]),
        auth_tag=bytes(row["auth_tag"]),
        size_bytes=row["size_bytes"],
        uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        tags=tags,
    )
