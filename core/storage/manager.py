from __future__ import annotations

import logging
from typing import Sequence

from core.settings import Settings, get_settings
from core.storage.errors import DeleteError
from core.storage.gridfs_provider import GridFSStorageProvider
from core.storage.local_provider import LocalStorageProvider
from core.storage.provider import StorageBackend
from core.storage.s3_provider import S3StorageProvider
from core.storage.types import (
    DeleteOutcome,
    StorageProvider,
    StoredFile,
    UploadAttempt,
    UploadPayload,
    UploadReport,
    UploadStatus,
)

logger = logging.getLogger(__name__)


def _parse_provider(value: StorageProvider | str) -> StorageProvider | None:
    try:
        return StorageProvider(value)
    except ValueError:
        return None


class FileStorageManager:
    """Uploads through an ordered fallback chain of storage backends.

    Backends are tried in order; unconfigured ones are skipped without being
    called and failing ones are logged and passed over. ``upload`` never
    raises: when nothing durable works the caller gets a local descriptor
    with an empty URL.
    """

    def __init__(self, backends: Sequence[StorageBackend]) -> None:
        self._backends = list(backends)
        self._fallback = LocalStorageProvider()

    @classmethod
    def configure_from_settings(cls, settings: Settings | None = None) -> "FileStorageManager":
        settings = settings or get_settings()
        backends: list[StorageBackend] = [
            S3StorageProvider(
                bucket_name=settings.s3_bucket_name,
                access_key_id=settings.s3_access_key_id,
                secret_access_key=settings.s3_secret_access_key,
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
                public_base_url=settings.s3_public_base_url,
                key_prefix=settings.storage_upload_prefix,
            ),
            GridFSStorageProvider(
                mongo_url=settings.mongo_url,
                db_name=settings.db_name,
                bucket_name=settings.gridfs_bucket_name,
            ),
            LocalStorageProvider(),
        ]
        manager = cls(backends)
        logger.info("Storage chain configured: %s", ", ".join(manager.configured_providers()) or "<none>")
        return manager

    @property
    def backends(self) -> list[StorageBackend]:
        return list(self._backends)

    def configured_providers(self) -> list[str]:
        return [backend.provider.value for backend in self._backends if backend.is_configured()]

    def get_backend(self, provider: StorageProvider | str) -> StorageBackend | None:
        key = _parse_provider(provider)
        if key is None:
            return None
        for backend in self._backends:
            if backend.provider is key:
                return backend
        if key is StorageProvider.LOCAL:
            return self._fallback
        return None

    def upload_with_report(self, payload: UploadPayload) -> UploadReport:
        attempts: list[UploadAttempt] = []
        for backend in self._backends:
            if not backend.is_configured():
                attempts.append(UploadAttempt(provider=backend.provider, status=UploadStatus.UNCONFIGURED))
                continue
            try:
                stored = backend.upload(payload)
            except Exception as exc:
                logger.warning(
                    "Upload of %s via %s failed, falling back: %s",
                    payload.file_name,
                    backend.provider.value,
                    exc,
                )
                attempts.append(
                    UploadAttempt(provider=backend.provider, status=UploadStatus.FAILED, reason=str(exc))
                )
                continue
            attempts.append(UploadAttempt(provider=backend.provider, status=UploadStatus.SUCCESS))
            logger.info("Stored %s via %s as %s", payload.file_name, backend.provider.value, stored.file_id)
            return UploadReport(stored=stored, attempts=tuple(attempts))

        logger.warning("No file storage available for %s, returning metadata only", payload.file_name)
        stored = self._fallback.upload(payload)
        attempts.append(UploadAttempt(provider=StorageProvider.LOCAL, status=UploadStatus.SUCCESS))
        return UploadReport(stored=stored, attempts=tuple(attempts))

    def upload(self, payload: UploadPayload) -> StoredFile:
        return self.upload_with_report(payload).stored

    def delete_file(self, file_id: str, storage_provider: StorageProvider | str) -> DeleteOutcome:
        provider = _parse_provider(storage_provider)
        if provider is None:
            raise DeleteError(storage_provider, f"cannot delete {file_id}: unknown storage provider")
        if provider is StorageProvider.LOCAL:
            return DeleteOutcome.DELETED

        backend = self.get_backend(provider)
        if backend is None or not backend.is_configured():
            raise DeleteError(provider, f"cannot delete {file_id}: provider is not configured")

        outcome = backend.delete(file_id)
        logger.info("Delete of %s via %s: %s", file_id, provider.value, outcome.value)
        return outcome

    def resolve_url(self, file_id: str, storage_provider: StorageProvider | str) -> str:
        backend = self.get_backend(storage_provider)
        if backend is None or not backend.is_configured():
            return ""
        return backend.resolve_url(file_id)
