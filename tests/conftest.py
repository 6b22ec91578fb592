"""Shared fixtures for the CareVault test-suite."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from carevault.core.models import EncryptedRecord
from carevault.core.vault import DocumentVault
from carevault.database.connection import DatabaseConnection
from carevault.database.models import DocumentModel
from carevault.security.cipher import CipherBox
from carevault.security.keys import EncryptionKey


# ==============================================================================
# Keys & cipher
# ==============================================================================

@pytest.fixture
def key():
    return EncryptionKey(os.urandom(32))


@pytest.fixture
def other_key():
    return EncryptionKey(os.urandom(32))


@pytest.fixture
def cipher(key):
    return CipherBox(key)


# ==============================================================================
# Database & vault
# ==============================================================================

@pytest.fixture
def temp_db(tmp_path: Path):
    """Provide a temporary, initialized DatabaseConnection."""
    db = DatabaseConnection(tmp_path / "carevault.db")
    db.initialize()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def documents(temp_db):
    return DocumentModel(temp_db)


@pytest.fixture
def vault(cipher, documents):
    return DocumentVault(cipher, documents)


@pytest.fixture
def make_record():
    """Factory for EncryptedRecord instances with dummy encrypted fields."""

    def _make(owner_id="1", filename="report.pdf", uploaded_at=None, **overrides):
        fields = dict(
            owner_id=owner_id,
            filename=filename,
            content_type="application/pdf",
            document_type="lab_result",
            ciphertext=os.urandom(64),
            nonce=os.urandom(16),
            auth_tag=os.urandom(16),
            size_bytes=64,
            uploaded_at=uploaded_at or datetime.now(timezone.utc),
            tags=("blood",),
        )
        fields.update(overrides)
        return EncryptedRecord(**fields)

    return _make
