"""
Exception hierarchy for syncenv.

Every failure the pipeline can surface derives from SyncEnvError so the
CLI can report it with context and exit non-zero.
"""

from __future__ import annotations

from typing import Optional


class SyncEnvError(Exception):
    """Base class for all syncenv errors."""


class FileAccessError(SyncEnvError, OSError):
    """A local file could not be read or written."""


class FormatError(SyncEnvError):
    """Malformed key, archive, or configuration content."""


class AuthenticationError(SyncEnvError):
    """Ciphertext failed authentication (wrong key or tampered data)."""


class NotFoundError(SyncEnvError):
    """The requested tag does not exist in the object store."""

    def __init__(self, tag: str, message: Optional[str] = None):
        self.tag = tag
        super().__init__(
            message
            or f"Tag '{tag}' not found in storage. Run 'syncenv list' to see available versions"
        )


class ConfigError(SyncEnvError):
    """Configuration is incomplete for the requested operation."""


class StorageError(SyncEnvError):
    """A storage backend call failed."""


class GitError(SyncEnvError):
    """The current version could not be derived from Git."""
