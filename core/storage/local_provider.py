from __future__ import annotations

import secrets
import time

from core.storage.provider import StorageBackend
from core.storage.types import DeleteOutcome, StorageProvider, StoredFile, UploadPayload


class LocalStorageProvider(StorageBackend):
    """Metadata-only fallback; nothing is persisted and the URL is empty."""

    provider = StorageProvider.LOCAL

    def is_configured(self) -> bool:
        return True

    def upload(self, payload: UploadPayload) -> StoredFile:
        return StoredFile(
            file_id=f"local-{int(time.time() * 1000)}-{secrets.token_hex(5)}",
            url="",
            size=payload.size,
            file_name=payload.file_name,
            file_type=payload.content_type,
            storage_provider=self.provider,
        )

    def delete(self, file_id: str) -> DeleteOutcome:
        return DeleteOutcome.DELETED

    def resolve_url(self, file_id: str) -> str:
        return ""
