from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from bson import ObjectId
from gridfs import GridFSBucket
from gridfs.errors import NoFile
from pymongo import MongoClient

from core.storage.errors import DeleteError, UploadError
from core.storage.provider import StorageBackend
from core.storage.types import DeleteOutcome, DownloadedFile, StorageProvider, StoredFile, UploadPayload

logger = logging.getLogger(__name__)

FILES_PROXY_PATH = "/api/files/{file_id}"


class GridFSStorageProvider(StorageBackend):
    """Chunked storage inside MongoDB.

    A client is opened for each operation and closed right after, so a
    long-running process never holds idle connections to the chunked store.
    """

    provider = StorageProvider.CHUNKED

    def __init__(
        self,
        *,
        mongo_url: str | None,
        db_name: str | None,
        bucket_name: str = "uploads",
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        self._mongo_url = mongo_url
        self._db_name = db_name
        self._bucket_name = bucket_name
        self._timeout_ms = server_selection_timeout_ms

    def is_configured(self) -> bool:
        return bool(self._mongo_url and self._db_name)

    @contextmanager
    def _bucket(self) -> Iterator[GridFSBucket]:
        client = MongoClient(self._mongo_url, serverSelectionTimeoutMS=self._timeout_ms)
        try:
            yield GridFSBucket(client[self._db_name], bucket_name=self._bucket_name)
        finally:
            client.close()

    def upload(self, payload: UploadPayload) -> StoredFile:
        logger.info("Uploading %s to GridFS bucket %s", payload.file_name, self._bucket_name)
        metadata = {
            "originalName": payload.file_name,
            "contentType": payload.content_type,
            "uploadedAt": datetime.now(timezone.utc),
        }
        try:
            with self._bucket() as bucket:
                object_id = bucket.upload_from_stream(
                    payload.file_name,
                    io.BytesIO(payload.data),
                    metadata=metadata,
                )
        except Exception as exc:
            raise UploadError(self.provider, f"upload of {payload.file_name} failed: {exc}") from exc

        file_id = str(object_id)
        return StoredFile(
            file_id=file_id,
            url=self.resolve_url(file_id),
            size=payload.size,
            file_name=payload.file_name,
            file_type=payload.content_type,
            storage_provider=self.provider,
        )

    def delete(self, file_id: str) -> DeleteOutcome:
        if not ObjectId.is_valid(file_id):
            return DeleteOutcome.NOT_FOUND
        try:
            with self._bucket() as bucket:
                bucket.delete(ObjectId(file_id))
        except NoFile:
            return DeleteOutcome.NOT_FOUND
        except Exception as exc:
            raise DeleteError(self.provider, f"delete of {file_id} failed: {exc}") from exc
        return DeleteOutcome.DELETED

    def resolve_url(self, file_id: str) -> str:
        return FILES_PROXY_PATH.format(file_id=file_id)

    def open_download(self, file_id: str) -> DownloadedFile | None:
        if not ObjectId.is_valid(file_id):
            return None
        with self._bucket() as bucket:
            try:
                grid_out = bucket.open_download_stream(ObjectId(file_id))
            except NoFile:
                return None
            metadata = grid_out.metadata or {}
            return DownloadedFile(
                file_name=grid_out.filename,
                content_type=metadata.get("contentType") or "application/octet-stream",
                data=grid_out.read(),
            )
