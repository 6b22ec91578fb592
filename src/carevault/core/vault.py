"""
DocumentVault: upload, retrieval and lifecycle of encrypted patient documents.

The vault is the only plaintext-facing surface. Callers hand it bytes and
descriptive metadata; it validates the upload, encrypts with the process
key, and persists an immutable record through the store. Ciphertext, nonce
and tag never leave through ``store``/``list``/``get_metadata``.

Record lifecycle:
    Stored   -> created once by ``store`` (or ``import_record``), immutable
    Deleted  -> removed by ``delete``; ``retrieve`` then raises not-found

Error translation:
    cipher errors during ``store``         -> propagate unchanged
    cipher errors during ``retrieve``      -> DocumentCorruptedError
    any persistence failure               -> StorageUnavailableError
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from .codec import decode_record, encode_record
from .exceptions import (
    AuthenticationFailedError,
    CorruptCiphertextError,
    DocumentCorruptedError,
    DocumentNotFoundError,
    InvalidNonceLengthError,
    StorageError,
    StorageUnavailableError,
)
from .models import (
    DocumentMetadata,
    EncryptedRecord,
    RetrievedDocument,
    UploadRequest,
    normalize_owner_id,
    utc_now,
)
from ..security.cipher import CipherBox

logger = logging.getLogger(__name__)

_INTEGRITY_ERRORS = (AuthenticationFailedError, CorruptCiphertextError, InvalidNonceLengthError)


def associated_data_for(owner_id: str, document_type: str) -> bytes:
    """Bind a record's owner and category into its authentication tag."""
    return json.dumps(["carevault/v1", owner_id, document_type]).encode("utf-8")


class DocumentVault:
    """High-level document operations over the cipher and a record store.

    ``records`` may be any object providing ``insert(record) -> id``,
    ``get_by_id(id) -> record | None``, ``list_by_owner(owner_id)`` and
    ``delete(id) -> bool`` (see :class:`carevault.database.models.DocumentModel`).
    """

    def __init__(self, cipher: CipherBox, records):
        self.cipher = cipher
        self.records = records

    def _persistence(self, action, *args):
        # surface every store failure as the retryable storage error
        try:
            return action(*args)
        except StorageUnavailableError:
            raise
        except StorageError as e:
            raise StorageUnavailableError(str(e)) from e

    def _load(self, document_id) -> EncryptedRecord:
        record = self._persistence(self.records.get_by_id, document_id)
        if record is None:
            raise DocumentNotFoundError(document_id)
        return record

    def _open(self, record: EncryptedRecord, document_id) -> bytes:
        """Decrypt a record and check it against its recorded size."""
        try:
            content = self.cipher.decrypt(
                record.ciphertext,
                record.nonce,
                record.auth_tag,
                associated_data_for(record.owner_id, record.document_type),
            )
        except _INTEGRITY_ERRORS as e:
            logger.warning(
                "Document %s failed integrity verification (%s)",
                document_id,
                type(e).__name__,
            )
            raise DocumentCorruptedError(document_id) from e
        if not content or len(content) != record.size_bytes:
            logger.warning("Document %s does not match its recorded size", document_id)
            raise DocumentCorruptedError(document_id)
        return content

    def store_document(self, request: UploadRequest) -> DocumentMetadata:
        """Validate, encrypt and persist an upload; return its metadata."""
        upload = request.validate()

        payload = self.cipher.encrypt(
            upload.content,
            associated_data_for(upload.owner_id, upload.document_type),
        )
        record = EncryptedRecord(
            owner_id=upload.owner_id,
            filename=upload.filename,
            content_type=upload.content_type,
            document_type=upload.document_type,
            ciphertext=payload.ciphertext,
            nonce=payload.nonce,
            auth_tag=payload.auth_tag,
            size_bytes=len(upload.content),
            uploaded_at=utc_now(),
            tags=upload.tags,
        )

        document_id = self._persistence(self.records.insert, record)
        logger.info(
            "Stored document %s for owner %s (%s, %d bytes)",
            document_id,
            record.owner_id,
            record.document_type,
            record.size_bytes,
        )
        return record.with_id(document_id).metadata()

    def store(
        self,
        owner_id,
        filename: str,
        content_type: str,
        document_type: str,
        plaintext: bytes,
        tags: Optional[Sequence[str]] = None,
    ) -> DocumentMetadata:
        """Encrypt and persist one uploaded document.

        Raises:
            EmptyDocumentError: ``plaintext`` is empty (nothing is persisted)
            InvalidDocumentError: a required field is missing or malformed
            CryptoError: encryption failed (propagated unchanged)
            StorageUnavailableError: the record could not be persisted
        """
        return self.store_document(
            UploadRequest(
                owner_id=owner_id,
                filename=filename,
                content_type=content_type,
                document_type=document_type,
                content=plaintext,
                tags=tags,
            )
        )

    def retrieve(self, document_id) -> RetrievedDocument:
        """Decrypt a stored document.

        Raises:
            DocumentNotFoundError: no record with this id
            DocumentCorruptedError: the record failed authentication
            StorageUnavailableError: the store could not be read
        """
        record = self._load(document_id)
        content = self._open(record, document_id)

        return RetrievedDocument(
            content=content,
            content_type=record.content_type,
            filename=record.filename,
            metadata=record.metadata(),
        )

    def list(self, owner_id) -> List[DocumentMetadata]:
        """Return metadata for every document of ``owner_id``, newest first."""
        records = self._persistence(self.records.list_by_owner, normalize_owner_id(owner_id))
        return [record.metadata() for record in records]

    def get_metadata(self, document_id) -> DocumentMetadata:
        """Return one document's metadata without decrypting it."""
        return self._load(document_id).metadata()

    def delete(self, document_id) -> None:
        """Remove a document permanently."""
        if not self._persistence(self.records.delete, document_id):
            raise DocumentNotFoundError(document_id)
        logger.info("Deleted document %s", document_id)

    def export_record(self, document_id) -> Dict[str, Any]:
        """Return the encrypted record as base64 text fields; never decrypts."""
        return encode_record(self._load(document_id))

    def import_record(self, data: Dict[str, Any]) -> DocumentMetadata:
        """Insert an exported record after checking it authenticates under this key.

        The store assigns a fresh id; the source id is ignored.

        Raises:
            CorruptCiphertextError: ``data`` is not a well-formed export
            DocumentCorruptedError: the record does not authenticate
        """
        record = decode_record(data)
        self._open(record, record.document_id)

        document_id = self._persistence(self.records.insert, record.with_id(None))
        logger.info("Imported document %s for owner %s", document_id, record.owner_id)
        return record.with_id(document_id).metadata()
