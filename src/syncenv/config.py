"""
Project configuration -- the .syncenv.yml document.

    storage:
      type: s3
      bucket: my-team-envs
      region: us-west-2
      prefix: myapp/
    encryption:
      enabled: true
      key: 3f9c...               # or key_file: .syncenv.key
    env_files:
      - .env
      - config/.env.local

Loading only checks that the document is well-formed. Backend-specific
requirements are enforced by :meth:`SyncEnvConfig.ensure_valid`, which
every command runs before touching the network.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from . import CONFIG_FILE
from .crypto import decode_key, load_key, write_private
from .errors import ConfigError, FileAccessError, FormatError

logger = logging.getLogger("syncenv.config")

DEFAULT_ENV_FILE = ".env"
CONFIG_FILE_MODE = 0o600


class StorageType(str, Enum):
    """Supported object store backends."""

    S3 = "s3"
    AZURE = "azure"
    GCS = "gcs"
    LOCAL = "local"


# Fields each backend cannot work without, in the order they are reported.
REQUIRED_FIELDS: dict[StorageType, tuple[str, ...]] = {
    StorageType.S3: ("bucket", "region"),
    StorageType.AZURE: ("account_name", "container_name"),
    StorageType.GCS: ("bucket_name", "project_id"),
    StorageType.LOCAL: ("path",),
}


class StorageConfig(BaseModel):
    """Where stored versions live."""

    type: Optional[StorageType] = None
    prefix: str = ""

    # AWS S3
    bucket: Optional[str] = None
    region: Optional[str] = None

    # Azure Blob Storage
    account_name: Optional[str] = None
    container_name: Optional[str] = None

    # Google Cloud Storage
    project_id: Optional[str] = None
    bucket_name: Optional[str] = None

    # Local directory (NAS, USB, shared mount)
    path: Optional[Path] = None


class EncryptionConfig(BaseModel):
    """Encryption at rest.

    Attributes:
        enabled: Encrypt on push, decrypt on pull.
        key: Hex-encoded 32-byte key stored inline.
        key_file: Path to a file holding the hex key, used when ``key``
            is not set. Relative paths resolve against the config file.
        strict: Fail pulls whose blob does not decrypt instead of
            treating it as plaintext uploaded before encryption was on.
    """

    enabled: bool = False
    key: Optional[str] = None
    key_file: Optional[Path] = None
    strict: bool = False


class SyncEnvConfig(BaseModel):
    """Complete syncenv project configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)
    env_file: Optional[str] = None  # deprecated, folded into env_files
    env_files: list[str] = Field(default_factory=list)

    config_dir: Optional[Path] = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _fold_env_file(self) -> "SyncEnvConfig":
        if self.env_file and not self.env_files:
            self.env_files = [self.env_file]
        return self

    def get_env_files(self) -> list[str]:
        """Return the env files this project manages."""
        if self.env_files:
            return list(self.env_files)
        if self.env_file:
            return [self.env_file]
        return [DEFAULT_ENV_FILE]

    def has_key(self) -> bool:
        return bool(self.encryption.key or self.encryption.key_file)

    def ensure_valid(self) -> None:
        """Check the configuration is usable.

        Raises:
            ConfigError: If the backend type is missing, one of its
                required fields is empty, or encryption is enabled
                without a key.
            FormatError: If the configured key is malformed.
            FileAccessError: If the key file cannot be read.
        """
        storage_type = self.storage.type
        if storage_type is None:
            raise ConfigError("storage type is required")

        for field_name in REQUIRED_FIELDS[storage_type]:
            if not getattr(self.storage, field_name):
                raise ConfigError(f"{storage_type.value} {field_name} is required")

        if self.encryption.enabled:
            if not self.has_key():
                raise ConfigError("encryption is enabled but no key is configured")
            self.resolve_key()

    def resolve_key(self) -> Optional[bytes]:
        """Return the configured encryption key, or None if none is set.

        Raises:
            FormatError: If the key is malformed.
            FileAccessError: If the key file cannot be read.
        """
        if self.encryption.key:
            return decode_key(self.encryption.key)
        if self.encryption.key_file:
            key_path = self.encryption.key_file.expanduser()
            if not key_path.is_absolute() and self.config_dir is not None:
                key_path = self.config_dir / key_path
            return load_key(key_path)
        return None


def default_config_path() -> Path:
    return Path(CONFIG_FILE)


def load_config(path: Optional[Union[str, Path]] = None) -> SyncEnvConfig:
    """Load a project configuration from YAML.

    Args:
        path: Config file. Defaults to ``.syncenv.yml`` (or
            ``$SYNCENV_CONFIG``).

    Raises:
        FileAccessError: If the file cannot be read.
        FormatError: If the file is not valid YAML or does not match
            the schema.
    """
    config_path = Path(path) if path is not None else default_config_path()

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileAccessError(
            f"Failed to read config file {config_path}: {exc}"
        ) from exc

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise FormatError(f"Failed to parse config file {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise FormatError(f"Config file {config_path} must contain a mapping")

    try:
        config = SyncEnvConfig(**data)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) for err in exc.errors()
        )
        raise FormatError(f"Invalid config file {config_path}: {fields}") from exc

    config.config_dir = config_path.resolve().parent
    logger.debug("Loaded config from %s", config_path)
    return config


def save_config(
    config: SyncEnvConfig, path: Optional[Union[str, Path]] = None
) -> Path:
    """Write the configuration to YAML (mode 0600, it may hold the key).

    Returns:
        The path written.

    Raises:
        FileAccessError: If the file cannot be written.
    """
    config_path = Path(path) if path is not None else default_config_path()
    data = config.model_dump(mode="json", exclude_none=True)
    if config.env_files:
        data.pop("env_file", None)

    try:
        write_private(
            config_path,
            yaml.dump(data, default_flow_style=False, sort_keys=False).encode("utf-8"),
            CONFIG_FILE_MODE,
        )
    except OSError as exc:
        raise FileAccessError(
            f"Failed to write config file {config_path}: {exc}"
        ) from exc

    logger.info("Configuration saved to %s", config_path)
    return config_path
