import base64
import os
from io import BytesIO
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from minio.error import S3Error
from pypdf import PdfWriter

os.environ.setdefault("PUBLIC_FILES_BASE_URL", "https://files.test")

from formfill.main import app  # noqa: E402
from formfill import storage as storage_module  # noqa: E402
from formfill.routers import forms as forms_router  # noqa: E402

A4 = (595.28, 841.89)

# 1x1 transparent PNG
SIGNATURE_PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/Pf8icQAAAABJRU5ErkJggg=="


def make_pdf(pages: int = 1, size=A4) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=size[0], height=size[1])
    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


def missing_key_error(key: str) -> S3Error:
    return S3Error(
        code="NoSuchKey",
        message="missing",
        resource=f"/{key}",
        request_id="test-request",
        host_id="test-host",
        response=None,
    )


@pytest.fixture
def blank_pdf() -> bytes:
    return make_pdf()


@pytest.fixture
def two_page_pdf() -> bytes:
    return make_pdf(pages=2)


@pytest.fixture
def signature_png() -> bytes:
    return base64.b64decode(SIGNATURE_PNG_B64)


@pytest.fixture
def mock_storage(monkeypatch) -> Dict[str, bytes]:
    store: Dict[str, bytes] = {}

    def fake_put_bytes(key: str, data: bytes, content_type: str = "application/octet-stream"):
        store[key] = bytes(data)

    def fake_get_bytes(key: str) -> bytes:
        if key not in store:
            raise missing_key_error(key)
        return store[key]

    for target in (storage_module, forms_router):
        monkeypatch.setattr(target, "put_bytes", fake_put_bytes)
        monkeypatch.setattr(target, "get_bytes", fake_get_bytes)
    return store


@pytest.fixture
def client(mock_storage):
    with TestClient(app) as test_client:
        yield test_client
