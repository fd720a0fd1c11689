from __future__ import annotations

from typing import Protocol

from core.storage.types import DeleteOutcome, StorageProvider, StoredFile, UploadPayload


class StorageBackend(Protocol):
    provider: StorageProvider

    def is_configured(self) -> bool:
        ...

    def upload(self, payload: UploadPayload) -> StoredFile:
        ...

    def delete(self, file_id: str) -> DeleteOutcome:
        ...

    def resolve_url(self, file_id: str) -> str:
        ...
