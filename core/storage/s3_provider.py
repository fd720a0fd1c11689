from __future__ import annotations

import logging
import re
import time
from typing import Any
from urllib.parse import quote

from core.storage.errors import DeleteError, UploadError
from core.storage.provider import StorageBackend
from core.storage.types import DeleteOutcome, StorageProvider, StoredFile, UploadPayload

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", file_name)


def _error_code(exc: Exception) -> str | None:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    return str(response.get("Error", {}).get("Code"))


class S3StorageProvider(StorageBackend):
    provider = StorageProvider.CLOUD

    def __init__(
        self,
        *,
        bucket_name: str | None,
        access_key_id: str | None,
        secret_access_key: str | None,
        region: str | None = None,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        key_prefix: str = "paper-uploads",
        url_expires_in: int = 7 * 24 * 3600,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket_name
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._region = region
        self._endpoint_url = endpoint_url
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._key_prefix = key_prefix.strip("/")
        self._url_expires_in = url_expires_in
        self._client = client

    def is_configured(self) -> bool:
        return bool(self._bucket and self._access_key_id and self._secret_access_key)

    @property
    def client(self) -> Any:
        if self._client is None:
            import boto3

            self._client = boto3.client(
                "s3",
                region_name=self._region,
                endpoint_url=self._endpoint_url,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
            )
        return self._client

    def build_object_key(self, file_name: str) -> str:
        object_name = f"{int(time.time() * 1000)}-{sanitize_file_name(file_name)}"
        if not self._key_prefix:
            return object_name
        return f"{self._key_prefix}/{object_name}"

    def upload(self, payload: UploadPayload) -> StoredFile:
        object_key = self.build_object_key(payload.file_name)
        logger.info("Uploading %s to s3://%s/%s", payload.file_name, self._bucket, object_key)
        try:
            self.client.put_object(
                Bucket=self._bucket,
                Key=object_key,
                Body=payload.data,
                ContentType=payload.content_type,
                Metadata={"original-name": sanitize_file_name(payload.file_name)},
            )
            head = self.client.head_object(Bucket=self._bucket, Key=object_key)
        except Exception as exc:
            raise UploadError(self.provider, f"upload of {payload.file_name} failed: {exc}") from exc

        stored_size = int(head.get("ContentLength", 0))
        if stored_size != payload.size:
            logger.warning(
                "S3 reported %s bytes for %s, client sent %s",
                stored_size,
                object_key,
                payload.size,
            )

        return StoredFile(
            file_id=object_key,
            url=self.resolve_url(object_key),
            public_id=object_key,
            size=stored_size,
            file_name=payload.file_name,
            file_type=payload.content_type,
            storage_provider=self.provider,
        )

    def delete(self, file_id: str) -> DeleteOutcome:
        try:
            self.client.head_object(Bucket=self._bucket, Key=file_id)
        except Exception as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                return DeleteOutcome.NOT_FOUND
            raise DeleteError(self.provider, f"lookup of {file_id} failed: {exc}") from exc

        try:
            self.client.delete_object(Bucket=self._bucket, Key=file_id)
        except Exception as exc:
            raise DeleteError(self.provider, f"delete of {file_id} failed: {exc}") from exc
        return DeleteOutcome.DELETED

    def resolve_url(self, file_id: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{quote(file_id)}"
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": file_id},
            ExpiresIn=self._url_expires_in,
        )
