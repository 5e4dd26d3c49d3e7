"""
Sync pipeline -- turns env files into one stored blob and back.

    push  ->  read (archive if >1 file) -> encrypt -> upload(tag)
    pull  ->  exists? -> confirm -> download -> decrypt -> write / extract
    diff  ->  download both tags -> decrypt -> parse -> compare

The pipeline holds no state between calls. Prompts are delegated to an
injected ``confirm(message) -> bool`` so scripted callers can answer
up front; printing is left to the CLI.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field

from . import archive, crypto
from .config import SyncEnvConfig
from .envfile import EnvDiff, diff_env_maps, merge_entries, parse_env
from .errors import (
    AuthenticationError,
    ConfigError,
    FileAccessError,
    FormatError,
    NotFoundError,
)
from .storage import ObjectStore

logger = logging.getLogger("syncenv.pipeline")

ENV_FILE_MODE = 0o600

ConfirmFn = Callable[[str], bool]


def _decline(message: str) -> bool:
    return False


class PushResult(BaseModel):
    """Outcome of a push."""

    tag: str
    key: str
    files: list[str] = Field(default_factory=list)
    size: int = 0
    encrypted: bool = False
    overwritten: bool = False


class PullResult(BaseModel):
    """Outcome of a pull.

    Attributes:
        cancelled: The overwrite prompt was declined; nothing was written.
        decrypt_fallback: Encryption is on but the blob did not decrypt
            and was written as plaintext.
    """

    tag: str
    files: list[str] = Field(default_factory=list)
    encrypted: bool = False
    cancelled: bool = False
    decrypt_fallback: bool = False


class SyncPipeline:
    """Push, pull, and compare tagged env file versions.

    Args:
        config: Validated project configuration.
        store: Object store holding the tagged blobs.
        confirm: Called before overwriting local files on pull.
            Defaults to declining, so nothing is overwritten without
            ``force=True`` or an explicit answer.
    """

    def __init__(
        self,
        config: SyncEnvConfig,
        store: ObjectStore,
        confirm: Optional[ConfirmFn] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.confirm = confirm or _decline

    @property
    def files(self) -> list[str]:
        return self.config.get_env_files()

    @property
    def encrypted(self) -> bool:
        return self.config.encryption.enabled

    def _require_key(self) -> bytes:
        key = self.config.resolve_key()
        if key is None:
            raise ConfigError("encryption is enabled but no key is configured")
        return key

    # ------------------------------------------------------------------
    # Blob assembly
    # ------------------------------------------------------------------

    def _read_files(self) -> bytes:
        """Read the configured files into one payload.

        A single file is passed through raw; several are archived.
        """
        files = self.files
        for path in files:
            if not os.path.isfile(path):
                raise FileAccessError(f"File not found: {path}")

        if len(files) == 1:
            try:
                return Path(files[0]).read_bytes()
            except OSError as exc:
                raise FileAccessError(f"Failed to read file {files[0]}: {exc}") from exc

        logger.debug("Archiving %d files", len(files))
        return archive.create(files)

    def _seal(self, data: bytes) -> bytes:
        if not self.encrypted:
            return data
        return crypto.encrypt(data, self._require_key())

    def _open(self, data: bytes, tag: str) -> tuple[bytes, bool]:
        """Decrypt a downloaded blob.

        Returns:
            (payload, fell_back). ``fell_back`` is True when decryption
            failed and the raw bytes were kept (non-strict mode only).

        Raises:
            AuthenticationError: In strict mode, if the blob does not
                decrypt.
        """
        if not self.encrypted:
            return data, False

        key = self._require_key()
        try:
            return crypto.decrypt(data, key), False
        except AuthenticationError as exc:
            if self.config.encryption.strict:
                raise AuthenticationError(f"Failed to decrypt tag '{tag}': {exc}") from exc
            logger.warning(
                "Tag '%s' did not decrypt; treating it as plaintext "
                "(uploaded before encryption was enabled?)",
                tag,
            )
            return data, True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def push(self, tag: str) -> PushResult:
        """Upload the configured env files under ``tag``.

        An existing tag is overwritten; the result reports it.

        Raises:
            FileAccessError: If a configured file is missing or unreadable.
            ConfigError: If encryption is on without a key.
        """
        files = self.files
        payload = self._read_files()
        blob = self._seal(payload)

        overwritten = self.store.exists(tag)
        if overwritten:
            logger.warning(
                "Tag '%s' already exists in storage and will be overwritten", tag
            )

        self.store.upload(tag, blob)
        logger.info("Pushed %d file(s) as '%s' (%d bytes)", len(files), tag, len(blob))

        return PushResult(
            tag=tag,
            key=self.store.key(tag),
            files=files,
            size=len(blob),
            encrypted=self.encrypted,
            overwritten=overwritten,
        )

    def existing_files(self) -> list[str]:
        """Configured files that already exist locally."""
        return [path for path in self.files if os.path.exists(path)]

    def pull(self, tag: str, force: bool = False) -> PullResult:
        """Download ``tag`` and write it over the local env files.

        Args:
            tag: Version to restore.
            force: Overwrite existing files without asking.

        Raises:
            NotFoundError: If the tag is not stored.
            AuthenticationError: In strict mode, if the blob does not
                decrypt.
            FormatError: If a multi-file blob is not a valid archive.
        """
        if not self.store.exists(tag):
            raise NotFoundError(tag)

        if not force:
            existing = self.existing_files()
            if existing:
                if len(existing) == 1:
                    message = f"Local file '{existing[0]}' already exists and will be overwritten."
                else:
                    message = f"{len(existing)} local files already exist and will be overwritten."
                if not self.confirm(message):
                    logger.info("Pull of '%s' cancelled", tag)
                    return PullResult(tag=tag, encrypted=self.encrypted, cancelled=True)

        data = self.store.download(tag)
        payload, fell_back = self._open(data, tag)

        files = self.files
        if len(files) == 1:
            target = Path(files[0])
            try:
                crypto.write_private(target, payload, ENV_FILE_MODE)
            except OSError as exc:
                raise FileAccessError(f"Failed to write file {target}: {exc}") from exc
            written = [files[0]]
        else:
            try:
                written = [str(p) for p in archive.extract_to_files(payload)]
            except FormatError as exc:
                raise FormatError(
                    f"Failed to extract archive for tag '{tag}': {exc}"
                ) from exc

        logger.info("Pulled '%s' into %d file(s)", tag, len(written))
        return PullResult(
            tag=tag,
            files=written,
            encrypted=self.encrypted,
            decrypt_fallback=fell_back,
        )

    def fetch(self, tag: str) -> bytes:
        """Download and decrypt ``tag`` without touching local files."""
        data = self.store.download(tag)
        payload, _ = self._open(data, tag)
        return payload

    def load_env(self, tag: str) -> dict[str, str]:
        """Parse the stored version ``tag`` into one env mapping.

        Multi-file versions merge every env-like member, later files
        overriding earlier ones.

        Raises:
            NotFoundError: If the tag is not stored.
            FormatError: If a multi-file blob is not a valid archive.
        """
        payload = self.fetch(tag)
        if len(self.files) == 1:
            return parse_env(payload)

        try:
            entries = archive.extract(payload)
        except FormatError as exc:
            raise FormatError(f"Failed to extract archive for tag '{tag}': {exc}") from exc
        return merge_entries(entries)

    def diff(self, old_tag: str, new_tag: str) -> EnvDiff:
        """Compare the variables stored under two tags."""
        old_env = self.load_env(old_tag)
        new_env = self.load_env(new_tag)
        return diff_env_maps(old_env, new_env)

    def list_versions(self) -> list[str]:
        """Stored tags, newest first (reverse lexical order)."""
        return sorted(self.store.list(), reverse=True)

    def delete(self, tag: str) -> None:
        """Remove a stored version.

        Raises:
            NotFoundError: If the tag is not stored.
        """
        if not self.store.exists(tag):
            raise NotFoundError(tag)
        self.store.delete(tag)
        logger.info("Deleted '%s'", tag)
