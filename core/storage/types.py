from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StorageProvider(str, Enum):
    CLOUD = "cloud"
    CHUNKED = "chunked"
    LOCAL = "local"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"


class UploadStatus(str, Enum):
    SUCCESS = "success"
    UNCONFIGURED = "unconfigured"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadPayload:
    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoredFile:
    file_id: str
    url: str
    size: int
    file_name: str
    file_type: str
    storage_provider: StorageProvider
    public_id: str | None = None

    @property
    def is_durable(self) -> bool:
        return self.storage_provider is not StorageProvider.LOCAL


@dataclass(frozen=True)
class UploadAttempt:
    provider: StorageProvider
    status: UploadStatus
    reason: str | None = None


@dataclass(frozen=True)
class DownloadedFile:
    file_name: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class UploadReport:
    stored: StoredFile
    attempts: tuple[UploadAttempt, ...]

    @property
    def degraded(self) -> bool:
        return not self.stored.is_durable
