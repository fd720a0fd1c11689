from core.storage.errors import DeleteError, StorageError, UploadError
from core.storage.manager import FileStorageManager
from core.storage.types import (
    DeleteOutcome,
    StorageProvider,
    StoredFile,
    UploadAttempt,
    UploadPayload,
    UploadReport,
    UploadStatus,
)

__all__ = [
    "DeleteError",
    "DeleteOutcome",
    "FileStorageManager",
    "StorageError",
    "StorageProvider",
    "StoredFile",
    "UploadAttempt",
    "UploadError",
    "UploadPayload",
    "UploadReport",
    "UploadStatus",
]
