from __future__ import annotations

from core.storage.types import StorageProvider


class StorageError(Exception):
    def __init__(self, provider: StorageProvider | str, message: str) -> None:
        self.provider = provider.value if isinstance(provider, StorageProvider) else str(provider)
        super().__init__(f"[{self.provider}] {message}")


class UploadError(StorageError):
    """Transfer or authentication failure while storing a file."""


class DeleteError(StorageError):
    """A delete that may succeed on retry; missing objects never raise this."""
