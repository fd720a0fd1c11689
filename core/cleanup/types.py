from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from core.storage.types import StorageProvider


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CleanupRecord:
    document_id: str
    session_id: str
    uploaded_at: datetime
    expires_at: datetime
    is_anonymous: bool
    file_name: str
    file_type: str
    file_size: int
    backend_id: str | None = None
    storage_provider: StorageProvider = StorageProvider.LOCAL
    cleaned: bool = False
    id: int | None = None
    created_at: str | None = None

    @property
    def has_stored_object(self) -> bool:
        return self.storage_provider is not StorageProvider.LOCAL and bool(self.backend_id)


@dataclass(frozen=True)
class CleanupStats:
    total: int
    cleaned: int
    pending: int
    expired: int
    active: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "cleaned": self.cleaned,
            "pending": self.pending,
            "expired": self.expired,
            "active": self.active,
        }


@dataclass
class SweepResult:
    started_at: datetime
    completed_at: datetime | None = None
    expired_records: int = 0
    deleted: int = 0
    not_found: int = 0
    skipped: int = 0
    failed: int = 0
    pruned: int = 0
    errors: list[str] = field(default_factory=list)
    stats_before: CleanupStats | None = None
    stats: CleanupStats | None = None

    @property
    def cleaned(self) -> int:
        return self.deleted + self.not_found + self.skipped

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()
