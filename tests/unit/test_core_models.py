"""Unit tests for upload validation and record models."""

from datetime import datetime, timezone

import pytest

from carevault.core.exceptions import EmptyDocumentError, InvalidDocumentError
from carevault.core.models import (
    DocumentMetadata,
    RetrievedDocument,
    UploadRequest,
    normalize_owner_id,
    normalize_tags,
)


def _request(**overrides):
    fields = dict(
        owner_id=1,
        filename="report.pdf",
        content_type="application/pdf",
        document_type="lab_result",
        content=b"%PDF-1.4",
        tags=None,
    )
    fields.update(overrides)
    return UploadRequest(**fields)


def test_validate_normalizes_fields():
    upload = _request(filename="  report.pdf ", tags=["blood", " blood", "2024"]).validate()
    assert upload.owner_id == "1"
    assert upload.filename == "report.pdf"
    assert upload.tags == ("blood", "2024")
    assert isinstance(upload.content, bytes)


def test_validate_accepts_bytearray_content():
    upload = _request(content=bytearray(b"abc")).validate()
    assert upload.content == b"abc"


def test_empty_content_rejected():
    with pytest.raises(EmptyDocumentError):
        _request(content=b"").validate()


def test_text_content_rejected():
    with pytest.raises(InvalidDocumentError, match="must be bytes"):
        _request(content="not bytes").validate()


@pytest.mark.parametrize("field", ["filename", "content_type", "document_type"])
@pytest.mark.parametrize("value", [None, "", "   ", 42])
def test_required_text_fields(field, value):
    with pytest.raises(InvalidDocumentError, match=field):
        _request(**{field: value}).validate()


def test_owner_id_rules():
    assert normalize_owner_id(7) == "7"
    assert normalize_owner_id(" patient-7 ") == "patient-7"
    for bad in (None, "", True):
        with pytest.raises(InvalidDocumentError):
            normalize_owner_id(bad)


def test_tags_rules():
    assert normalize_tags(None) == ()
    with pytest.raises(InvalidDocumentError):
        normalize_tags("blood")
    with pytest.raises(InvalidDocumentError):
        normalize_tags(["ok", 3])


def test_upload_request_repr_hides_content():
    assert "%PDF" not in repr(_request())


def test_record_metadata_excludes_encrypted_fields(make_record):
    record = make_record().with_id(5)
    meta = record.metadata()
    assert meta.document_id == 5
    for name in ("ciphertext", "nonce", "auth_tag"):
        assert not hasattr(meta, name)
        assert name not in meta.to_dict()
        assert name not in repr(record)


def test_metadata_to_dict():
    uploaded = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    meta = DocumentMetadata(1, "1", "a.pdf", "application/pdf", "imaging", 10, uploaded, ("x",))
    assert meta.to_dict() == {
        "document_id": 1,
        "owner_id": "1",
        "filename": "a.pdf",
        "content_type": "application/pdf",
        "document_type": "imaging",
        "size_bytes": 10,
        "uploaded_at": "2024-05-01T12:00:00+00:00",
        "tags": ["x"],
    }


def test_retrieved_document_unpacks(make_record):
    doc = RetrievedDocument(b"data", "text/plain", "a.txt", make_record().metadata())
    content, content_type, filename = doc
    assert (content, content_type, filename) == (b"data", "text/plain", "a.txt")
    assert "b'data'" not in repr(doc)
