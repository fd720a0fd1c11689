from __future__ import annotations

import dataclasses
from datetime import timedelta

import pytest

from conftest import FakeBackend
from core.errors import AppException, ErrorCode
from core.settings import load_settings
from core.storage.manager import FileStorageManager
from core.storage.types import StorageProvider, UploadPayload
from services import upload_service


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch):
    for name in ("ANONYMOUS_TTL_HOURS", "AUTHENTICATED_TTL_DAYS", "MAX_UPLOAD_BYTES"):
        monkeypatch.delenv(name, raising=False)
    return load_settings()


@pytest.fixture
def storage() -> FileStorageManager:
    return FileStorageManager(
        [
            FakeBackend(StorageProvider.CLOUD, configured=False),
            FakeBackend(StorageProvider.CHUNKED, url_template="/api/files/{file_id}"),
        ]
    )


def test_anonymous_upload_is_recorded_with_short_ttl(storage, ledger, settings, pdf_payload):
    tracked = upload_service.upload_document(
        storage=storage,
        ledger=ledger,
        settings=settings,
        payload=pdf_payload,
        session_id="session-1",
        document_id="doc-1",
    )

    record = ledger.get_record("doc-1")
    assert tracked.tracked is True
    assert record.storage_provider is StorageProvider.CHUNKED
    assert record.backend_id == tracked.report.stored.file_id
    assert record.is_anonymous is True
    assert record.expires_at - record.uploaded_at == timedelta(hours=48)


def test_authenticated_upload_gets_longer_ttl(storage, ledger, settings, pdf_payload):
    upload_service.upload_document(
        storage=storage,
        ledger=ledger,
        settings=settings,
        payload=pdf_payload,
        session_id="session-1",
        document_id="doc-1",
        is_anonymous=False,
    )

    record = ledger.get_record("doc-1")
    assert record.expires_at - record.uploaded_at == timedelta(days=365)


def test_degraded_upload_records_no_backend_id(ledger, settings, pdf_payload):
    tracked = upload_service.upload_document(
        storage=FileStorageManager([]),
        ledger=ledger,
        settings=settings,
        payload=pdf_payload,
        session_id="session-1",
    )

    record = ledger.get_record(tracked.document_id)
    assert record.storage_provider is StorageProvider.LOCAL
    assert record.backend_id is None


def test_ledger_failure_still_returns_descriptor(storage, settings, pdf_payload, caplog):
    class _BrokenLedger:
        def add_record(self, record):
            raise OSError("disk full")

    tracked = upload_service.upload_document(
        storage=storage,
        ledger=_BrokenLedger(),
        settings=settings,
        payload=pdf_payload,
        session_id="session-1",
    )

    assert tracked.tracked is False
    assert tracked.report.stored.storage_provider is StorageProvider.CHUNKED
    assert "Orphaned upload" in caplog.text


@pytest.mark.parametrize(
    ("data", "session_id"),
    [(b"", "session-1"), (b"x" * 11, "session-1"), (b"ok", "   ")],
)
def test_invalid_uploads_are_rejected(storage, ledger, settings, data, session_id):
    limited = dataclasses.replace(settings, max_upload_bytes=10)

    with pytest.raises(AppException) as exc_info:
        upload_service.upload_document(
            storage=storage,
            ledger=ledger,
            settings=limited,
            payload=UploadPayload(file_name="a.txt", content_type="text/plain", data=data),
            session_id=session_id,
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["code"] == ErrorCode.DOCUMENT_UPLOAD_INVALID.value


def test_fetch_chunked_file_requires_gridfs_backend(storage):
    with pytest.raises(AppException) as exc_info:
        upload_service.fetch_chunked_file(storage=storage, file_id="abc")

    assert exc_info.value.status_code == 503
