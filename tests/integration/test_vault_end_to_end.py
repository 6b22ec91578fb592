"""
Integration tests: the vault over a real SQLite file, as the portal uses it.
"""

import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from carevault.context import build_context
from carevault.core.exceptions import DocumentCorruptedError, EmptyDocumentError
from carevault.security.keys import DEFAULT_KEY_ENV, generate_key


def _pdf_bytes(size: int) -> bytes:
    header = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"
    return header + os.urandom(size - len(header))


@pytest.fixture
def env(tmp_path, key):
    return {DEFAULT_KEY_ENV: key.to_hex(), "CAREVAULT_DB_PATH": str(tmp_path / "portal.db")}


@pytest.fixture
def ctx(env):
    context = build_context(environ=env, setup_logging=False)
    try:
        yield context
    finally:
        context.close()


def test_lab_report_upload_and_download(ctx):
    pdf = _pdf_bytes(17 * 1024)

    meta = ctx.vault.store(
        owner_id=1,
        filename="report.pdf",
        content_type="application/pdf",
        document_type="lab_result",
        plaintext=pdf,
    )
    assert meta.size_bytes == 17408
    assert not hasattr(meta, "ciphertext")

    row = ctx.db.fetch_one("SELECT ciphertext FROM documents WHERE document_id = ?", (meta.document_id,))
    assert b"%PDF" not in row["ciphertext"]

    doc = ctx.vault.retrieve(meta.document_id)
    assert doc.content == pdf
    assert doc.content_type == "application/pdf"
    assert doc.filename == "report.pdf"


def test_empty_upload_persists_nothing(ctx):
    with pytest.raises(EmptyDocumentError):
        ctx.vault.store(1, "empty.pdf", "application/pdf", "lab_result", b"")
    assert ctx.db.fetch_one("SELECT COUNT(*) AS n FROM documents")["n"] == 0


def test_documents_survive_restart_only_with_same_key(env, tmp_path):
    first = build_context(environ=env, setup_logging=False)
    meta = first.vault.store(1, "rx.txt", "text/plain", "prescription", b"amoxicillin 500mg")
    first.close()

    reopened = build_context(environ=env, setup_logging=False)
    assert reopened.vault.retrieve(meta.document_id).content == b"amoxicillin 500mg"
    assert [m.document_id for m in reopened.vault.list(1)] == [meta.document_id]
    reopened.close()

    rotated_env = dict(env, **{DEFAULT_KEY_ENV: generate_key().to_hex()})
    rotated = build_context(environ=rotated_env, setup_logging=False)
    with pytest.raises(DocumentCorruptedError):
        rotated.vault.retrieve(meta.document_id)
    rotated.close()


def test_concurrent_store_and_retrieve(ctx):
    payloads = [os.urandom(1024 + i) for i in range(40)]

    def upload(i):
        meta = ctx.vault.store(i % 4, f"doc-{i}.bin", "application/octet-stream", "imaging", payloads[i])
        return i, meta.document_id

    with ThreadPoolExecutor(max_workers=8) as pool:
        stored = list(pool.map(upload, range(len(payloads))))

    def download(item):
        i, document_id = item
        return ctx.vault.retrieve(document_id).content == payloads[i]

    with ThreadPoolExecutor(max_workers=8) as pool:
        assert all(pool.map(download, stored))

    nonces = ctx.db.fetch_all("SELECT nonce FROM documents")
    assert len({row["nonce"] for row in nonces}) == len(payloads)
    assert sum(len(ctx.vault.list(owner)) for owner in range(4)) == len(payloads)
