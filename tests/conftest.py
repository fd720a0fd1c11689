from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from core.cleanup.ledger import CleanupLedger
from core.cleanup.types import CleanupRecord
from core.storage.errors import DeleteError, UploadError
from core.storage.types import DeleteOutcome, StorageProvider, StoredFile, UploadPayload


class FakeBackend:
    def __init__(
        self,
        provider: StorageProvider,
        *,
        configured: bool = True,
        fail_upload: bool = False,
        url_template: str = "https://files.example.com/{file_id}",
    ) -> None:
        self.provider = provider
        self.configured = configured
        self.fail_upload = fail_upload
        self.url_template = url_template
        self.upload_calls: list[UploadPayload] = []
        self.delete_calls: list[str] = []
        self.delete_outcomes: dict[str, DeleteOutcome | Exception] = {}

    def is_configured(self) -> bool:
        return self.configured

    def upload(self, payload: UploadPayload) -> StoredFile:
        self.upload_calls.append(payload)
        if self.fail_upload:
            raise UploadError(self.provider, "boom")
        file_id = f"{self.provider.value}-{len(self.upload_calls)}"
        return StoredFile(
            file_id=file_id,
            url=self.resolve_url(file_id),
            size=payload.size,
            file_name=payload.file_name,
            file_type=payload.content_type,
            storage_provider=self.provider,
        )

    def delete(self, file_id: str) -> DeleteOutcome:
        self.delete_calls.append(file_id)
        outcome = self.delete_outcomes.get(file_id, DeleteOutcome.DELETED)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def resolve_url(self, file_id: str) -> str:
        return self.url_template.format(file_id=file_id)

    def fail_delete_of(self, file_id: str) -> None:
        self.delete_outcomes[file_id] = DeleteError(self.provider, "temporarily unavailable")


def make_record(
    document_id: str,
    *,
    session_id: str = "session-1",
    uploaded_at: datetime | None = None,
    ttl: timedelta = timedelta(hours=48),
    storage_provider: StorageProvider = StorageProvider.CLOUD,
    backend_id: str | None = "__document__",
    is_anonymous: bool = True,
    file_name: str = "paper.pdf",
) -> CleanupRecord:
    uploaded_at = uploaded_at or datetime.now(timezone.utc)
    return CleanupRecord(
        document_id=document_id,
        session_id=session_id,
        backend_id=f"obj-{document_id}" if backend_id == "__document__" else backend_id,
        storage_provider=storage_provider,
        uploaded_at=uploaded_at,
        expires_at=uploaded_at + ttl,
        is_anonymous=is_anonymous,
        file_name=file_name,
        file_type="application/pdf",
        file_size=1024,
    )


def expired_record(document_id: str, *, hours_ago: int = 72, **kwargs) -> CleanupRecord:
    uploaded_at = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return make_record(document_id, uploaded_at=uploaded_at, ttl=timedelta(hours=48), **kwargs)


@pytest.fixture
def ledger(tmp_path) -> CleanupLedger:
    return CleanupLedger(tmp_path / "data" / "cleanup.db")


@pytest.fixture
def pdf_payload() -> UploadPayload:
    return UploadPayload(file_name="my paper (v2).pdf", content_type="application/pdf", data=b"%PDF-1.7 body")
