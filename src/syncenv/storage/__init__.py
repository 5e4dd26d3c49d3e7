"""
Object stores -- where tagged env blobs live.

The pipeline only ever talks to :class:`ObjectStore`; which backend
sits behind it is decided here from the project configuration.
"""

from __future__ import annotations

from ..config import StorageConfig, StorageType
from ..errors import ConfigError
from .base import KEY_SUFFIX, LocalStore, MemoryStore, ObjectStore, build_key, tag_from_key
from .cloud import AzureBlobStore, GCSStore, S3Store


def create_store(config: StorageConfig) -> ObjectStore:
    """Factory function to create the configured backend.

    Args:
        config: Storage section of the project configuration.

    Returns:
        Instantiated ObjectStore. SDK clients are created lazily.

    Raises:
        ConfigError: If the storage type is missing or unsupported.
    """
    factories = {
        StorageType.S3: lambda: S3Store(
            bucket=config.bucket, region=config.region, prefix=config.prefix
        ),
        StorageType.AZURE: lambda: AzureBlobStore(
            account_name=config.account_name,
            container_name=config.container_name,
            prefix=config.prefix,
        ),
        StorageType.GCS: lambda: GCSStore(
            project_id=config.project_id,
            bucket_name=config.bucket_name,
            prefix=config.prefix,
        ),
        StorageType.LOCAL: lambda: LocalStore(root=config.path, prefix=config.prefix),
    }
    factory = factories.get(config.type)
    if factory is None:
        raise ConfigError(f"unsupported storage type: {config.type}")
    return factory()


__all__ = [
    "AzureBlobStore",
    "GCSStore",
    "KEY_SUFFIX",
    "LocalStore",
    "MemoryStore",
    "ObjectStore",
    "S3Store",
    "build_key",
    "create_store",
    "tag_from_key",
]
