"""
Env file parsing and diffing.

Parsing is line based: one KEY=VALUE per line, split on the
first '=', both sides trimmed. Blank lines and '#' comments are
skipped; lines without '=' are dropped. No quoting or interpolation.
"""

from __future__ import annotations

import posixpath
from typing import Iterable, Mapping, Union

from pydantic import BaseModel, Field

from .archive import FileEntry


class ValueChange(BaseModel):
    """Old and new value of a variable present in both versions."""

    old: str
    new: str

    def __str__(self) -> str:
        return f"{self.old} -> {self.new}"


class EnvDiff(BaseModel):
    """Differences between two env mappings.

    Attributes:
        added: Keys only in the new mapping, with their values.
        removed: Keys only in the old mapping, with their values.
        changed: Keys in both with differing values.
    """

    added: dict[str, str] = Field(default_factory=dict)
    removed: dict[str, str] = Field(default_factory=dict)
    changed: dict[str, ValueChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def summary(self) -> str:
        return f"+{len(self.added)} -{len(self.removed)} ~{len(self.changed)}"


def parse_env(content: Union[bytes, str]) -> dict[str, str]:
    """Parse KEY=VALUE text into a mapping.

    Later occurrences of a key overwrite earlier ones.

    Args:
        content: File content, bytes are decoded as UTF-8.

    Returns:
        Mapping of variable name to value.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    env: dict[str, str] = {}
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        env[key.strip()] = value.strip()
    return env


def format_env(env: Mapping[str, str]) -> str:
    """Render a mapping back to KEY=VALUE lines, sorted by key."""
    if not env:
        return ""
    return "\n".join(f"{key}={env[key]}" for key in sorted(env)) + "\n"


def is_env_file(path: str) -> bool:
    """Whether an archive member holds KEY=VALUE content.

    Matches ``*.env`` as well as dotenv variants like ``.env.local``.
    """
    return path.endswith(".env") or posixpath.basename(path).startswith(".env")


def merge_entries(entries: Iterable[FileEntry]) -> dict[str, str]:
    """Parse every env-like entry and merge them in order.

    Non-env members (JSON, YAML, ...) are ignored. When two files define
    the same key, the later file wins.
    """
    merged: dict[str, str] = {}
    for entry in entries:
        if not is_env_file(entry.path):
            continue
        merged.update(parse_env(entry.data))
    return merged


def diff_env_maps(old: Mapping[str, str], new: Mapping[str, str]) -> EnvDiff:
    """Compare two env mappings.

    Args:
        old: Mapping for the base version.
        new: Mapping for the version being compared.

    Returns:
        EnvDiff with added, removed, and changed keys. Equal keys are
        omitted.
    """
    diff = EnvDiff()

    for key, new_value in new.items():
        if key not in old:
            diff.added[key] = new_value
        elif old[key] != new_value:
            diff.changed[key] = ValueChange(old=old[key], new=new_value)

    for key, old_value in old.items():
        if key not in new:
            diff.removed[key] = old_value

    return diff
