from __future__ import annotations

import pytest
from bson import ObjectId
from gridfs.errors import NoFile

from core.storage import gridfs_provider
from core.storage.errors import DeleteError, UploadError
from core.storage.gridfs_provider import GridFSStorageProvider
from core.storage.types import DeleteOutcome, StorageProvider


class _FakeGridOut:
    def __init__(self, filename: str, data: bytes, metadata: dict) -> None:
        self.filename = filename
        self.metadata = metadata
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeMongoClient:
    instances: list["_FakeMongoClient"] = []

    def __init__(self, url, **kwargs) -> None:
        self.url = url
        self.kwargs = kwargs
        self.closed = False
        _FakeMongoClient.instances.append(self)

    def __getitem__(self, name):
        return name

    def close(self) -> None:
        self.closed = True


class _FakeBucketStore:
    def __init__(self) -> None:
        self.files: dict[ObjectId, tuple[str, bytes, dict]] = {}
        self.fail_with: Exception | None = None
        self.bucket_names: list[str] = []

    def bucket(self, database, bucket_name: str = "fs"):
        store = self
        store.bucket_names.append(bucket_name)

        class _Bucket:
            def upload_from_stream(self, filename, source, metadata=None):
                if store.fail_with is not None:
                    raise store.fail_with
                object_id = ObjectId()
                store.files[object_id] = (filename, source.read(), metadata or {})
                return object_id

            def delete(self, file_id):
                if store.fail_with is not None:
                    raise store.fail_with
                if file_id not in store.files:
                    raise NoFile(f"no file {file_id}")
                del store.files[file_id]

            def open_download_stream(self, file_id):
                if file_id not in store.files:
                    raise NoFile(f"no file {file_id}")
                filename, data, metadata = store.files[file_id]
                return _FakeGridOut(filename, data, metadata)

        return _Bucket()


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> _FakeBucketStore:
    fake_store = _FakeBucketStore()
    _FakeMongoClient.instances = []
    monkeypatch.setattr(gridfs_provider, "MongoClient", _FakeMongoClient)
    monkeypatch.setattr(gridfs_provider, "GridFSBucket", fake_store.bucket)
    return fake_store


def _provider(**overrides) -> GridFSStorageProvider:
    options = {"mongo_url": "mongodb://localhost:27017", "db_name": "paperlm"}
    options.update(overrides)
    return GridFSStorageProvider(**options)


def test_is_configured_requires_url_and_database():
    assert _provider().is_configured() is True
    assert _provider(mongo_url=None).is_configured() is False
    assert _provider(db_name=None).is_configured() is False


def test_upload_stores_metadata_and_returns_proxy_url(store, pdf_payload):
    stored = _provider().upload(pdf_payload)

    assert stored.storage_provider is StorageProvider.CHUNKED
    assert stored.url == f"/api/files/{stored.file_id}"
    assert stored.public_id is None
    filename, data, metadata = store.files[ObjectId(stored.file_id)]
    assert filename == pdf_payload.file_name
    assert data == pdf_payload.data
    assert metadata["originalName"] == pdf_payload.file_name
    assert metadata["contentType"] == "application/pdf"
    assert "uploadedAt" in metadata
    assert store.bucket_names == ["uploads"]


def test_each_operation_closes_its_client(store, pdf_payload):
    provider = _provider()
    stored = provider.upload(pdf_payload)
    provider.delete(stored.file_id)

    assert len(_FakeMongoClient.instances) == 2
    assert all(client.closed for client in _FakeMongoClient.instances)


def test_upload_failure_raises_upload_error_and_closes_client(store, pdf_payload):
    store.fail_with = ConnectionError("connection refused")

    with pytest.raises(UploadError):
        _provider().upload(pdf_payload)

    assert _FakeMongoClient.instances[-1].closed is True


def test_delete_missing_or_invalid_ids_report_not_found(store):
    provider = _provider()

    assert provider.delete(str(ObjectId())) is DeleteOutcome.NOT_FOUND
    assert provider.delete("not-an-object-id") is DeleteOutcome.NOT_FOUND


def test_delete_transient_error_raises_delete_error(store):
    store.fail_with = ConnectionError("timeout")

    with pytest.raises(DeleteError):
        _provider().delete(str(ObjectId()))


def test_open_download_returns_file_or_none(store, pdf_payload):
    provider = _provider()
    stored = provider.upload(pdf_payload)

    downloaded = provider.open_download(stored.file_id)

    assert downloaded.data == pdf_payload.data
    assert downloaded.content_type == "application/pdf"
    assert provider.open_download(str(ObjectId())) is None
    assert provider.open_download("bogus") is None
