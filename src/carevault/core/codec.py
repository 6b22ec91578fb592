"""
Text encoding of encrypted records for transport and backups.

Binary fields (ciphertext, nonce, auth_tag) are standard base64 so the
output is plain JSON-safe text; decoding is strict and never reinterprets
bytes through a character set. The format tag lets readers reject
payloads they do not understand.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Any, Dict

from .exceptions import CorruptCiphertextError, InvalidDocumentError
from .models import EncryptedRecord, normalize_owner_id, normalize_tags, require_text

RECORD_FORMAT = "carevault.record/1"

_REQUIRED = (
    "owner_id",
    "filename",
    "content_type",
    "document_type",
    "size_bytes",
    "uploaded_at",
    "ciphertext",
    "nonce",
    "auth_tag",
)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str, field_name: str = "value") -> bytes:
    """Strict base64 decoding; malformed text raises CorruptCiphertextError."""
    if not isinstance(text, str):
        raise CorruptCiphertextError(f"'{field_name}' must be base64 text")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise CorruptCiphertextError(f"'{field_name}' is not valid base64: {e}") from e


def encode_record(record: EncryptedRecord) -> Dict[str, Any]:
    """
    Convert an encrypted record to a JSON-serializable dict.

    The plaintext is never involved: this only re-encodes stored bytes.
    """
    return {
        "format": RECORD_FORMAT,
        "document_id": record.document_id,
        "owner_id": record.owner_id,
        "filename": record.filename,
        "content_type": record.content_type,
        "document_type": record.document_type,
        "size_bytes": record.size_bytes,
        "uploaded_at": record.uploaded_at.isoformat(),
        "tags": list(record.tags),
        "ciphertext": b64encode(record.ciphertext),
        "nonce": b64encode(record.nonce),
        "auth_tag": b64encode(record.auth_tag),
    }


def decode_record(data: Dict[str, Any]) -> EncryptedRecord:
    """
    Rebuild an encrypted record from :func:`encode_record` output.

    Raises:
        CorruptCiphertextError: unknown format, missing fields or bad encoding
    """
    if not isinstance(data, dict):
        raise CorruptCiphertextError("Encoded record must be a mapping")
    if data.get("format") != RECORD_FORMAT:
        raise CorruptCiphertextError(f"Unsupported record format: {data.get('format')!r}")

    missing = [name for name in _REQUIRED if name not in data]
    if missing:
        raise CorruptCiphertextError(f"Encoded record is missing fields: {', '.join(missing)}")

    try:
        owner_id = normalize_owner_id(data["owner_id"])
        filename = require_text("filename", data["filename"])
        content_type = require_text("content_type", data["content_type"])
        document_type = require_text("document_type", data["document_type"])
        uploaded_at = datetime.fromisoformat(data["uploaded_at"])
        size_bytes = int(data["size_bytes"])
        tags = normalize_tags(data.get("tags"))
    except (TypeError, ValueError, InvalidDocumentError) as e:
        raise CorruptCiphertextError(f"Encoded record metadata is malformed: {e}") from e

    return EncryptedRecord(
        document_id=data.get("document_id"),
        owner_id=owner_id,
        filename=filename,
        content_type=content_type,
        document_type=document_type,
        ciphertext=b64decode(data["ciphertext"], "ciphertext"),
        nonce=b64decode(data["nonce"], "nonce"),
        auth_tag=b64decode(data["auth_tag"], "auth_tag"),
        size_bytes=size_bytes,
        uploaded_at=uploaded_at,
        tags=tags,
    )
