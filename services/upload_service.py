from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.cleanup.ledger import CleanupLedger
from core.cleanup.types import CleanupRecord, utcnow
from core.errors import resource_not_found, storage_unavailable, upload_invalid
from core.settings import Settings
from core.storage.gridfs_provider import GridFSStorageProvider
from core.storage.manager import FileStorageManager
from core.storage.types import DownloadedFile, StorageProvider, UploadPayload, UploadReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackedUpload:
    document_id: str
    report: UploadReport
    record: CleanupRecord | None

    @property
    def tracked(self) -> bool:
        return self.record is not None


def compute_expiry(*, uploaded_at: datetime, is_anonymous: bool, settings: Settings) -> datetime:
    if is_anonymous:
        return uploaded_at + timedelta(hours=settings.anonymous_ttl_hours)
    return uploaded_at + timedelta(days=settings.authenticated_ttl_days)


def upload_document(
    *,
    storage: FileStorageManager,
    ledger: CleanupLedger,
    settings: Settings,
    payload: UploadPayload,
    session_id: str,
    is_anonymous: bool = True,
    document_id: str | None = None,
) -> TrackedUpload:
    if not payload.data:
        raise upload_invalid("File is empty")
    if payload.size > settings.max_upload_bytes:
        raise upload_invalid("File too large", {"max_size_bytes": settings.max_upload_bytes})
    if not session_id.strip():
        raise upload_invalid("Session ID is required")

    document_id = document_id or uuid.uuid4().hex
    report = storage.upload_with_report(payload)
    stored = report.stored

    uploaded_at = utcnow()
    record = CleanupRecord(
        document_id=document_id,
        session_id=session_id,
        backend_id=stored.file_id if stored.is_durable else None,
        storage_provider=stored.storage_provider,
        uploaded_at=uploaded_at,
        expires_at=compute_expiry(uploaded_at=uploaded_at, is_anonymous=is_anonymous, settings=settings),
        is_anonymous=is_anonymous,
        file_name=stored.file_name,
        file_type=stored.file_type,
        file_size=stored.size,
    )
    try:
        ledger.add_record(record)
    except Exception:
        # The stored object now has no ledger row and will not be swept.
        logger.exception(
            "Orphaned upload: ledger write failed for document %s (provider=%s, file_id=%s)",
            document_id,
            stored.storage_provider.value,
            stored.file_id,
        )
        return TrackedUpload(document_id=document_id, report=report, record=None)

    return TrackedUpload(document_id=document_id, report=report, record=record)


def list_session_uploads(*, ledger: CleanupLedger, session_id: str) -> list[CleanupRecord]:
    return ledger.get_by_session(session_id)


def fetch_chunked_file(*, storage: FileStorageManager, file_id: str) -> DownloadedFile:
    backend = storage.get_backend(StorageProvider.CHUNKED)
    if not isinstance(backend, GridFSStorageProvider) or not backend.is_configured():
        raise storage_unavailable(StorageProvider.CHUNKED.value)

    downloaded = backend.open_download(file_id)
    if downloaded is None:
        raise resource_not_found("File", file_id)
    return downloaded
