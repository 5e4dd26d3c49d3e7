"""Tests for the cloud adapters against mocked SDK clients."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from syncenv.errors import ConfigError, NotFoundError, StorageError
from syncenv.storage import AzureBlobStore, GCSStore, S3Store


class FakeClientError(Exception):
    """Shaped like botocore.exceptions.ClientError."""

    def __init__(self, code: str):
        super().__init__(f"An error occurred ({code})")
        self.response = {"Error": {"Code": code}}


class FakeHttpError(Exception):
    """Shaped like azure/google HTTP errors."""

    def __init__(self, status: int):
        super().__init__(f"HTTP {status}")
        self.status_code = status
        self.code = status


class TestS3Store:
    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def store(self, client: MagicMock) -> S3Store:
        return S3Store(bucket="team-envs", region="us-east-1", prefix="app/", client=client)

    def test_upload(self, store: S3Store, client: MagicMock):
        store.upload("v1", b"blob")
        client.put_object.assert_called_once_with(
            Bucket="team-envs", Key="app/v1.env", Body=b"blob"
        )

    def test_download(self, store: S3Store, client: MagicMock):
        client.get_object.return_value = {"Body": MagicMock(read=lambda: b"blob")}
        assert store.download("v1") == b"blob"
        client.get_object.assert_called_once_with(Bucket="team-envs", Key="app/v1.env")

    def test_download_missing(self, store: S3Store, client: MagicMock):
        client.get_object.side_effect = FakeClientError("NoSuchKey")
        with pytest.raises(NotFoundError):
            store.download("v1")

    def test_download_other_error(self, store: S3Store, client: MagicMock):
        client.get_object.side_effect = FakeClientError("AccessDenied")
        with pytest.raises(StorageError, match="app/v1.env"):
            store.download("v1")

    def test_list_paginates(self, store: S3Store, client: MagicMock):
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "app/v1.env"}, {"Key": "app/v2.env"}]},
            {"Contents": [{"Key": "app/v3.env"}]},
            {},
        ]
        client.get_paginator.return_value = paginator

        assert store.list() == ["v1", "v2", "v3"]
        paginator.paginate.assert_called_once_with(Bucket="team-envs", Prefix="app/")

    def test_exists(self, store: S3Store, client: MagicMock):
        assert store.exists("v1")
        client.head_object.side_effect = FakeClientError("404")
        assert not store.exists("v1")

    def test_exists_other_error(self, store: S3Store, client: MagicMock):
        client.head_object.side_effect = FakeClientError("403")
        with pytest.raises(StorageError):
            store.exists("v1")

    def test_delete(self, store: S3Store, client: MagicMock):
        store.delete("v1")
        client.delete_object.assert_called_once_with(Bucket="team-envs", Key="app/v1.env")


class TestAzureBlobStore:
    @pytest.fixture
    def container(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def store(self, container: MagicMock) -> AzureBlobStore:
        return AzureBlobStore(
            account_name="acct", container_name="envs", container_client=container
        )

    def test_upload_overwrites(self, store: AzureBlobStore, container: MagicMock):
        store.upload("v1", b"blob")
        container.upload_blob.assert_called_once_with("v1.env", b"blob", overwrite=True)

    def test_download(self, store: AzureBlobStore, container: MagicMock):
        container.download_blob.return_value.readall.return_value = b"blob"
        assert store.download("v1") == b"blob"

    def test_download_missing(self, store: AzureBlobStore, container: MagicMock):
        container.download_blob.side_effect = FakeHttpError(404)
        with pytest.raises(NotFoundError):
            store.download("v1")

    def test_list(self, store: AzureBlobStore, container: MagicMock):
        container.list_blobs.return_value = [
            SimpleNamespace(name="v1.env"),
            SimpleNamespace(name="v2.env"),
        ]
        assert store.list() == ["v1", "v2"]
        container.list_blobs.assert_called_once_with(name_starts_with=None)

    def test_exists(self, store: AzureBlobStore, container: MagicMock):
        container.get_blob_client.return_value.exists.return_value = False
        assert not store.exists("v1")
        container.get_blob_client.assert_called_with("v1.env")

    def test_delete_missing_is_ignored(self, store: AzureBlobStore, container: MagicMock):
        container.delete_blob.side_effect = FakeHttpError(404)
        store.delete("v1")

    def test_delete_other_error(self, store: AzureBlobStore, container: MagicMock):
        container.delete_blob.side_effect = FakeHttpError(500)
        with pytest.raises(StorageError):
            store.delete("v1")

    def test_missing_connection_string(self, monkeypatch):
        monkeypatch.delenv(AzureBlobStore.CONNECTION_STRING_ENV, raising=False)
        store = AzureBlobStore(account_name="acct", container_name="envs")

        with pytest.raises(ConfigError, match="AZURE_STORAGE_CONNECTION_STRING"):
            store.upload("v1", b"blob")


class TestGCSStore:
    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def blob(self, client: MagicMock) -> MagicMock:
        return client.bucket.return_value.blob.return_value

    @pytest.fixture
    def store(self, client: MagicMock) -> GCSStore:
        return GCSStore(project_id="proj", bucket_name="envs", prefix="p-", client=client)

    def test_upload(self, store: GCSStore, client: MagicMock, blob: MagicMock):
        store.upload("v1", b"blob")
        client.bucket.assert_called_with("envs")
        client.bucket.return_value.blob.assert_called_with("p-v1.env")
        blob.upload_from_string.assert_called_once_with(b"blob")

    def test_download_missing(self, store: GCSStore, blob: MagicMock):
        blob.download_as_bytes.side_effect = FakeHttpError(404)
        with pytest.raises(NotFoundError):
            store.download("v1")

    def test_download_error(self, store: GCSStore, blob: MagicMock):
        blob.download_as_bytes.side_effect = RuntimeError("network down")
        with pytest.raises(StorageError, match="network down"):
            store.download("v1")

    def test_list(self, store: GCSStore, client: MagicMock):
        client.list_blobs.return_value = [SimpleNamespace(name="p-v1.env")]
        assert store.list() == ["v1"]
        client.list_blobs.assert_called_once_with("envs", prefix="p-")

    def test_exists(self, store: GCSStore, blob: MagicMock):
        blob.exists.return_value = True
        assert store.exists("v1")

    def test_delete_missing_is_ignored(self, store: GCSStore, blob: MagicMock):
        blob.delete.side_effect = FakeHttpError(404)
        store.delete("v1")
