"""
Cloud object store adapters -- S3, Azure Blob Storage, Google Cloud Storage.

Each adapter is a thin leaf over its vendor SDK. The SDKs are optional
extras and imported only when an adapter is first used, so a project
on S3 never needs the Azure or Google packages installed.

Credentials come from each SDK's usual sources:

- S3: the default boto3 chain (env vars, ~/.aws, instance role)
- Azure: AZURE_STORAGE_CONNECTION_STRING
- GCS: Application Default Credentials
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from ..errors import ConfigError, NotFoundError, StorageError
from .base import ObjectStore, tag_from_key

logger = logging.getLogger("syncenv.storage.cloud")

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "BlobNotFound"}


def _is_not_found(exc: Exception) -> bool:
    """Recognise "object missing" across the three SDKs' exceptions."""
    if getattr(exc, "status_code", None) == 404 or getattr(exc, "code", None) == 404:
        return True
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        code = str(response.get("Error", {}).get("Code", ""))
        return code in _NOT_FOUND_CODES
    return False


class S3Store(ObjectStore):
    """AWS S3 (or any S3-compatible endpoint) via boto3.

    Args:
        bucket: Bucket name.
        region: AWS region.
        prefix: Key prefix.
        client: Pre-built boto3 S3 client. Created lazily when omitted.
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        prefix: str = "",
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self._client = client

    @property
    def name(self) -> str:
        return "s3"

    @property
    def client(self) -> Any:
        """Create the boto3 S3 client on first use.

        Raises:
            ConfigError: If boto3 is not installed.
        """
        if self._client is None:
            try:
                import boto3
            except ImportError as exc:
                raise ConfigError(
                    "S3 storage requires boto3: pip install 'syncenv[s3]'"
                ) from exc
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def upload(self, tag: str, data: bytes) -> None:
        key = self.key(tag)
        client = self.client
        try:
            client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except Exception as exc:
            raise StorageError(f"Failed to upload to S3 ({key}): {exc}") from exc
        logger.info("Uploaded s3://%s/%s (%d bytes)", self.bucket, key, len(data))

    def download(self, tag: str) -> bytes:
        key = self.key(tag)
        client = self.client
        try:
            result = client.get_object(Bucket=self.bucket, Key=key)
            return result["Body"].read()
        except Exception as exc:
            if _is_not_found(exc):
                raise NotFoundError(tag) from exc
            raise StorageError(f"Failed to download from S3 ({key}): {exc}") from exc

    def list(self) -> list[str]:
        client = self.client
        tags: list[str] = []
        try:
            paginator = client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    tag = tag_from_key(self.prefix, obj["Key"])
                    if tag:
                        tags.append(tag)
        except Exception as exc:
            raise StorageError(f"Failed to list S3 objects: {exc}") from exc
        return tags

    def exists(self, tag: str) -> bool:
        key = self.key(tag)
        client = self.client
        try:
            client.head_object(Bucket=self.bucket, Key=key)
        except Exception as exc:
            if _is_not_found(exc):
                return False
            raise StorageError(f"Failed to check S3 object {key}: {exc}") from exc
        return True

    def delete(self, tag: str) -> None:
        key = self.key(tag)
        client = self.client
        try:
            client.delete_object(Bucket=self.bucket, Key=key)
        except Exception as exc:
            raise StorageError(f"Failed to delete from S3 ({key}): {exc}") from exc


class AzureBlobStore(ObjectStore):
    """Azure Blob Storage via azure-storage-blob.

    Args:
        account_name: Storage account (informational; the connection
            string carries the credentials).
        container_name: Blob container.
        prefix: Blob name prefix.
        container_client: Pre-built ``ContainerClient``. Created lazily
            from ``AZURE_STORAGE_CONNECTION_STRING`` when omitted.
    """

    CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

    def __init__(
        self,
        account_name: str,
        container_name: str,
        prefix: str = "",
        container_client: Any = None,
    ) -> None:
        self.account_name = account_name
        self.container_name = container_name
        self.prefix = prefix
        self._container = container_client

    @property
    def name(self) -> str:
        return "azure"

    @property
    def container(self) -> Any:
        """Create the container client on first use.

        Raises:
            ConfigError: If the SDK is missing or no connection string
                is set.
        """
        if self._container is None:
            connection_string = os.environ.get(self.CONNECTION_STRING_ENV, "")
            if not connection_string:
                raise ConfigError(
                    f"{self.CONNECTION_STRING_ENV} environment variable not set"
                )
            try:
                from azure.storage.blob import BlobServiceClient
            except ImportError as exc:
                raise ConfigError(
                    "Azure storage requires azure-storage-blob: "
                    "pip install 'syncenv[azure]'"
                ) from exc
            service = BlobServiceClient.from_connection_string(connection_string)
            self._container = service.get_container_client(self.container_name)
        return self._container

    def upload(self, tag: str, data: bytes) -> None:
        blob_name = self.key(tag)
        container = self.container
        try:
            container.upload_blob(blob_name, data, overwrite=True)
        except Exception as exc:
            raise StorageError(f"Failed to upload to Azure ({blob_name}): {exc}") from exc
        logger.info(
            "Uploaded azure://%s/%s (%d bytes)",
            self.container_name, blob_name, len(data),
        )

    def download(self, tag: str) -> bytes:
        blob_name = self.key(tag)
        container = self.container
        try:
            return container.download_blob(blob_name).readall()
        except Exception as exc:
            if _is_not_found(exc):
                raise NotFoundError(tag) from exc
            raise StorageError(
                f"Failed to download from Azure ({blob_name}): {exc}"
            ) from exc

    def list(self) -> list[str]:
        container = self.container
        tags: list[str] = []
        try:
            for blob in container.list_blobs(name_starts_with=self.prefix or None):
                tag = tag_from_key(self.prefix, blob.name)
                if tag:
                    tags.append(tag)
        except Exception as exc:
            raise StorageError(f"Failed to list Azure blobs: {exc}") from exc
        return tags

    def exists(self, tag: str) -> bool:
        blob_name = self.key(tag)
        container = self.container
        try:
            return bool(container.get_blob_client(blob_name).exists())
        except Exception as exc:
            raise StorageError(f"Failed to check Azure blob {blob_name}: {exc}") from exc

    def delete(self, tag: str) -> None:
        blob_name = self.key(tag)
        container = self.container
        try:
            container.delete_blob(blob_name)
        except Exception as exc:
            if _is_not_found(exc):
                return
            raise StorageError(f"Failed to delete from Azure ({blob_name}): {exc}") from exc


class GCSStore(ObjectStore):
    """Google Cloud Storage via google-cloud-storage.

    Args:
        project_id: GCP project.
        bucket_name: Bucket name.
        prefix: Object name prefix.
        client: Pre-built ``google.cloud.storage.Client``.
    """

    def __init__(
        self,
        project_id: str,
        bucket_name: str,
        prefix: str = "",
        client: Any = None,
    ) -> None:
        self.project_id = project_id
        self.bucket_name = bucket_name
        self.prefix = prefix
        self._client = client

    @property
    def name(self) -> str:
        return "gcs"

    @property
    def client(self) -> Any:
        """Create the GCS client on first use.

        Raises:
            ConfigError: If google-cloud-storage is not installed.
        """
        if self._client is None:
            try:
                from google.cloud import storage
            except ImportError as exc:
                raise ConfigError(
                    "GCS storage requires google-cloud-storage: "
                    "pip install 'syncenv[gcs]'"
                ) from exc
            self._client = storage.Client(project=self.project_id)
        return self._client

    def _blob(self, tag: str) -> Any:
        return self.client.bucket(self.bucket_name).blob(self.key(tag))

    def upload(self, tag: str, data: bytes) -> None:
        blob = self._blob(tag)
        try:
            blob.upload_from_string(data)
        except Exception as exc:
            raise StorageError(f"Failed to upload to GCS ({self.key(tag)}): {exc}") from exc
        logger.info(
            "Uploaded gs://%s/%s (%d bytes)", self.bucket_name, self.key(tag), len(data)
        )

    def download(self, tag: str) -> bytes:
        blob = self._blob(tag)
        try:
            return blob.download_as_bytes()
        except Exception as exc:
            if _is_not_found(exc):
                raise NotFoundError(tag) from exc
            raise StorageError(
                f"Failed to download from GCS ({self.key(tag)}): {exc}"
            ) from exc

    def list(self) -> list[str]:
        client = self.client
        tags: list[str] = []
        try:
            for blob in client.list_blobs(self.bucket_name, prefix=self.prefix or None):
                tag = tag_from_key(self.prefix, blob.name)
                if tag:
                    tags.append(tag)
        except Exception as exc:
            raise StorageError(f"Failed to list GCS objects: {exc}") from exc
        return tags

    def exists(self, tag: str) -> bool:
        blob = self._blob(tag)
        try:
            return bool(blob.exists())
        except Exception as exc:
            raise StorageError(f"Failed to check GCS object {self.key(tag)}: {exc}") from exc

    def delete(self, tag: str) -> None:
        blob = self._blob(tag)
        try:
            blob.delete()
        except Exception as exc:
            if _is_not_found(exc):
                return
            raise StorageError(f"Failed to delete from GCS ({self.key(tag)}): {exc}") from exc
