"""
Data models for uploaded documents and their encrypted records
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from .exceptions import EmptyDocumentError, InvalidDocumentError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def require_text(name, value):
    if not isinstance(value, str) or not value.strip():
        raise InvalidDocumentError(f"'{name}' is required")
    return value.strip()


def normalize_owner_id(owner_id) -> str:
    """
        Owner ids are opaque; they are kept as text so int and str ids compare equal
    """
    if owner_id is None or isinstance(owner_id, bool):
        raise InvalidDocumentError("'owner_id' is required")
    if isinstance(owner_id, int):
        return str(owner_id)
    return require_text("owner_id", owner_id)


def normalize_tags(tags) -> Tuple[str, ...]:
    """
        Strip, drop duplicates and keep first-seen order
    """
    if tags is None:
        return ()
    if isinstance(tags, (str, bytes)):
        raise InvalidDocumentError("'tags' must be a list of strings")
    result = []
    for tag in tags:
        tag = require_text("tags", tag)
        if tag not in result:
            result.append(tag)
    return tuple(result)


@dataclass
class UploadRequest:
    """
        Explicit shape of an upload handed over by the transport layer
    """

    owner_id: object
    filename: str
    content_type: str
    document_type: str
    content: bytes = field(repr=False)
    tags: Optional[Sequence[str]] = None

    def validate(self) -> "UploadRequest":
        """
            Return a normalized copy or raise a ValidationError subclass
        """
        if not isinstance(self.content, (bytes, bytearray, memoryview)):
            raise InvalidDocumentError(
                f"document content must be bytes, got {type(self.content).__name__}"
            )
        if len(self.content) == 0:
            raise EmptyDocumentError("Empty documents cannot be stored")

        return UploadRequest(
            owner_id=normalize_owner_id(self.owner_id),
            filename=require_text("filename", self.filename),
            content_type=require_text("content_type", self.content_type),
            document_type=require_text("document_type", self.document_type),
            content=bytes(self.content),
            tags=normalize_tags(self.tags),
        )


@dataclass(frozen=True)
class DocumentMetadata:
    """
        Non-confidential view of a stored document (safe for listings)
    """

    document_id: int
    owner_id: str
    filename: str
    content_type: str
    document_type: str
    size_bytes: int
    uploaded_at: datetime
    tags: Tuple[str, ...] = ()

    def to_dict(self):
        """
            Convert to dict
        """
        return {
            'document_id': self.document_id,
            'owner_id': self.owner_id,
            'filename': self.filename,
            'content_type': self.content_type,
            'document_type': self.document_type,
            'size_bytes': self.size_bytes,
            'uploaded_at': self.uploaded_at.isoformat(),
            'tags': list(self.tags),
        }


@dataclass(frozen=True)
class EncryptedRecord:
    """
        Persisted unit: ciphertext, nonce and tag plus plaintext metadata.

        ``document_id`` is None until the store assigns one on insert.
    """

    owner_id: str
    filename: str
    content_type: str
    document_type: str
    ciphertext: bytes = field(repr=False)
    nonce: bytes = field(repr=False)
    auth_tag: bytes = field(repr=False)
    size_bytes: int
    uploaded_at: datetime
    tags: Tuple[str, ...] = ()
    document_id: Optional[int] = None

    def with_id(self, document_id: int) -> "EncryptedRecord":
        return replace(self, document_id=document_id)

    def metadata(self) -> DocumentMetadata:
        """
            Strip the encrypted fields
        """
        return DocumentMetadata(
            document_id=self.document_id,
            owner_id=self.owner_id,
            filename=self.filename,
            content_type=self.content_type,
            document_type=self.document_type,
            size_bytes=self.size_bytes,
            uploaded_at=self.uploaded_at,
            tags=self.tags,
        )


@dataclass(frozen=True)
class RetrievedDocument:
    """
        Decrypted document plus what a transport needs to deliver it
    """

    content: bytes = field(repr=False)
    content_type: str
    filename: str
    metadata: DocumentMetadata

    def __iter__(self):
        # allows ``content, content_type, filename = vault.retrieve(id)``
        return iter((self.content, self.content_type, self.filename))
