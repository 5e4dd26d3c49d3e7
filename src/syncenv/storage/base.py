"""
Object store contract and the two SDK-free backends.

Every backend stores one blob per tag under the key
``prefix + tag + ".env"``. Key derivation lives in free functions so
adapters share it without sharing state.
"""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..errors import FileAccessError, NotFoundError

logger = logging.getLogger("syncenv.storage")

KEY_SUFFIX = ".env"


def build_key(prefix: str, tag: str) -> str:
    """Derive the storage key for a tag.

    No separator is inserted between prefix and tag, and path
    separators inside the tag are not escaped.

    >>> build_key("envs/", "v1.0.0")
    'envs/v1.0.0.env'
    """
    return f"{prefix or ''}{tag}{KEY_SUFFIX}"


def tag_from_key(prefix: str, key: str) -> str:
    """Recover the tag from a storage key (inverse of :func:`build_key`).

    Returns an empty string for keys that hold nothing but the prefix.
    """
    tag = key
    if prefix and tag.startswith(prefix):
        tag = tag[len(prefix):]
    if len(tag) > len(KEY_SUFFIX) and tag.endswith(KEY_SUFFIX):
        tag = tag[: -len(KEY_SUFFIX)]
    return tag


class ObjectStore(ABC):
    """Key/value blob storage addressed by tag."""

    prefix: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @abstractmethod
    def upload(self, tag: str, data: bytes) -> None:
        """Store ``data`` under ``tag``, replacing any previous blob."""

    @abstractmethod
    def download(self, tag: str) -> bytes:
        """Fetch the blob stored under ``tag``.

        Raises:
            NotFoundError: If nothing is stored under the tag.
        """

    @abstractmethod
    def list(self) -> list[str]:
        """Return every stored tag, in no particular order."""

    @abstractmethod
    def exists(self, tag: str) -> bool:
        """Check whether a blob is stored under ``tag``."""

    @abstractmethod
    def delete(self, tag: str) -> None:
        """Remove the blob stored under ``tag``. Missing tags are ignored."""

    def key(self, tag: str) -> str:
        return build_key(self.prefix, tag)


class MemoryStore(ObjectStore):
    """In-process store, safe to share between threads.

    Used as a test double and for dry runs. A single lock guards the
    whole mapping; bytes are copied on the way in and out so callers
    never share buffers with the store.

    Args:
        prefix: Key prefix.
        error: When set, every operation raises it.
    """

    def __init__(self, prefix: str = "", error: Optional[Exception] = None):
        self.prefix = prefix
        self.error = error
        self._data: dict[str, bytes] = {}
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return "memory"

    def _check_error(self) -> None:
        if self.error is not None:
            raise self.error

    def upload(self, tag: str, data: bytes) -> None:
        self._check_error()
        with self._lock:
            self._data[self.key(tag)] = bytes(data)

    def download(self, tag: str) -> bytes:
        self._check_error()
        with self._lock:
            data = self._data.get(self.key(tag))
        if data is None:
            raise NotFoundError(tag, f"tag {tag} not found")
        return bytes(data)

    def list(self) -> list[str]:
        self._check_error()
        with self._lock:
            keys = list(self._data)
        tags = []
        for key in keys:
            tag = tag_from_key(self.prefix, key)
            if tag:
                tags.append(tag)
        return tags

    def exists(self, tag: str) -> bool:
        self._check_error()
        with self._lock:
            return self.key(tag) in self._data

    def delete(self, tag: str) -> None:
        self._check_error()
        with self._lock:
            self._data.pop(self.key(tag), None)

    def reset(self) -> None:
        """Drop all stored blobs and clear the injected error."""
        with self._lock:
            self._data = {}
            self.error = None


class LocalStore(ObjectStore):
    """Directory-backed store for USB drives, NAS, or shared mounts.

    Each key maps to a file under ``root``; a '/' in the prefix or tag
    becomes a subdirectory.
    """

    def __init__(self, root: Path, prefix: str = ""):
        self.root = Path(root).expanduser()
        self.prefix = prefix

    @property
    def name(self) -> str:
        return "local"

    def _path(self, tag: str) -> Path:
        return self.root / self.key(tag)

    def upload(self, tag: str, data: bytes) -> None:
        target = self._path(tag)
        tmp = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as exc:
            raise FileAccessError(f"Failed to write {target}: {exc}") from exc
        logger.debug("Stored %d bytes at %s", len(data), target)

    def download(self, tag: str) -> bytes:
        target = self._path(tag)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(tag) from exc
        except OSError as exc:
            raise FileAccessError(f"Failed to read {target}: {exc}") from exc

    def list(self) -> list[str]:
        if not self.root.exists():
            return []
        tags = []
        for path in self.root.rglob(f"*{KEY_SUFFIX}"):
            if not path.is_file():
                continue
            key = path.relative_to(self.root).as_posix()
            if self.prefix and not key.startswith(self.prefix):
                continue
            tag = tag_from_key(self.prefix, key)
            if tag:
                tags.append(tag)
        return tags

    def exists(self, tag: str) -> bool:
        return self._path(tag).is_file()

    def delete(self, tag: str) -> None:
        try:
            self._path(tag).unlink(missing_ok=True)
        except OSError as exc:
            raise FileAccessError(f"Failed to delete {self._path(tag)}: {exc}") from exc
