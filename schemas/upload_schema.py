from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.cleanup.types import CleanupRecord, CleanupStats, SweepResult
from core.storage.types import StorageProvider, StoredFile, UploadAttempt


class StoredFileOut(BaseModel):
    file_id: str
    url: str
    public_id: str | None = None
    size: int
    file_name: str
    file_type: str
    storage_provider: StorageProvider

    @classmethod
    def from_stored(cls, stored: StoredFile) -> "StoredFileOut":
        return cls(
            file_id=stored.file_id,
            url=stored.url,
            public_id=stored.public_id,
            size=stored.size,
            file_name=stored.file_name,
            file_type=stored.file_type,
            storage_provider=stored.storage_provider,
        )


class UploadAttemptOut(BaseModel):
    provider: StorageProvider
    status: str
    reason: str | None = None

    @classmethod
    def from_attempt(cls, attempt: UploadAttempt) -> "UploadAttemptOut":
        return cls(provider=attempt.provider, status=attempt.status.value, reason=attempt.reason)


class CleanupRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document_id: str
    session_id: str
    backend_id: str | None = None
    storage_provider: StorageProvider
    uploaded_at: datetime
    expires_at: datetime
    is_anonymous: bool
    file_name: str
    file_type: str
    file_size: int
    cleaned: bool

    @classmethod
    def from_record(cls, record: CleanupRecord) -> "CleanupRecordOut":
        return cls.model_validate(record)


class UploadOut(BaseModel):
    document_id: str
    file: StoredFileOut
    record: CleanupRecordOut | None = None
    tracked: bool
    attempts: list[UploadAttemptOut] = Field(default_factory=list)


class CleanupStatsOut(BaseModel):
    total: int
    cleaned: int
    pending: int
    expired: int
    active: int

    @classmethod
    def from_stats(cls, stats: CleanupStats) -> "CleanupStatsOut":
        return cls(**stats.as_dict())


class SweepResultOut(BaseModel):
    started_at: datetime
    completed_at: datetime | None = None
    duration_seconds: float
    expired_records: int
    deleted: int
    not_found: int
    skipped: int
    failed: int
    pruned: int
    errors: list[str] = Field(default_factory=list)
    stats_before: CleanupStatsOut | None = None
    stats: CleanupStatsOut | None = None

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResultOut":
        return cls(
            started_at=result.started_at,
            completed_at=result.completed_at,
            duration_seconds=result.duration_seconds,
            expired_records=result.expired_records,
            deleted=result.deleted,
            not_found=result.not_found,
            skipped=result.skipped,
            failed=result.failed,
            pruned=result.pruned,
            errors=list(result.errors),
            stats_before=CleanupStatsOut.from_stats(result.stats_before) if result.stats_before else None,
            stats=CleanupStatsOut.from_stats(result.stats) if result.stats else None,
        )
