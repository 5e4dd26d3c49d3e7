"""Shared test fixtures for syncenv."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Optional

import pytest

from syncenv import crypto
from syncenv.config import EncryptionConfig, StorageConfig, StorageType, SyncEnvConfig
from syncenv.storage import MemoryStore


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Provide an empty project directory and make it the working directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def key() -> bytes:
    """A fresh 32-byte encryption key."""
    return crypto.generate_key()


@pytest.fixture
def store() -> MemoryStore:
    """A shared in-memory object store."""
    return MemoryStore()


@pytest.fixture
def make_config(tmp_path: Path):
    """Build a local-storage config for the given files and key."""

    def _make(
        files: Optional[list[str]] = None,
        key: Optional[bytes] = None,
        strict: bool = False,
    ) -> SyncEnvConfig:
        return SyncEnvConfig(
            storage=StorageConfig(type=StorageType.LOCAL, path=tmp_path / "remote"),
            encryption=EncryptionConfig(
                enabled=key is not None,
                key=crypto.encode_key(key) if key is not None else None,
                strict=strict,
            ),
            env_files=files or [".env"],
        )

    return _make


@pytest.fixture
def modes_before_chmod(monkeypatch: pytest.MonkeyPatch) -> dict[str, int]:
    """Record each file's permission bits at the moment it is chmod'ed.

    Runs under a 022 umask, so a file created with default permissions
    shows up as 0644 here.
    """
    seen: dict[str, int] = {}
    real_chmod = os.chmod

    def spy(path, mode, *args, **kwargs):
        seen[str(path)] = stat.S_IMODE(os.stat(path).st_mode)
        return real_chmod(path, mode, *args, **kwargs)

    old_umask = os.umask(0o022)
    monkeypatch.setattr(os, "chmod", spy)
    yield seen
    os.umask(old_umask)
