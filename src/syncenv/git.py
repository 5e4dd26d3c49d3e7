"""
Git version detection.

A push or pull without ``--tag`` stores under the current Git version:
the exact tag on HEAD if there is one, else the nearest reachable tag,
else the branch name.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from .errors import GitError

logger = logging.getLogger("syncenv.git")


def _git(*args: str, cwd: Optional[Path] = None) -> Optional[str]:
    """Run a git command and return stripped stdout, or None on failure."""
    if shutil.which("git") is None:
        return None
    result = subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=False,
        cwd=str(cwd) if cwd else None,
    )
    if result.returncode != 0:
        logger.debug("git %s failed: %s", " ".join(args), result.stderr.strip())
        return None
    return result.stdout.strip()


def is_git_repository(cwd: Optional[Path] = None) -> bool:
    """Check whether ``cwd`` is inside a Git work tree."""
    return _git("rev-parse", "--git-dir", cwd=cwd) is not None


def current_tag(cwd: Optional[Path] = None) -> Optional[str]:
    """Return the exact tag on HEAD, else the nearest tag, else None."""
    tag = _git("describe", "--tags", "--exact-match", "HEAD", cwd=cwd)
    if tag:
        return tag
    return _git("describe", "--tags", "--abbrev=0", "HEAD", cwd=cwd) or None


def current_branch(cwd: Optional[Path] = None) -> Optional[str]:
    """Return the checked-out branch, or None when detached."""
    branch = _git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)
    if not branch or branch == "HEAD":
        return None
    return branch


def commit_hash(cwd: Optional[Path] = None) -> Optional[str]:
    """Return the short hash of HEAD, or None outside a repository."""
    return _git("rev-parse", "--short", "HEAD", cwd=cwd) or None


def current_version(cwd: Optional[Path] = None) -> str:
    """Return the version to tag stored env files with.

    Raises:
        GitError: If not in a repository, or HEAD is detached and no
            tag is reachable.
    """
    if not is_git_repository(cwd):
        raise GitError("not a git repository and no --tag specified")

    tag = current_tag(cwd)
    if tag:
        return tag

    branch = current_branch(cwd)
    if branch:
        return branch

    raise GitError(
        "failed to determine current version: detached HEAD with no tags "
        "(use --tag to specify manually)"
    )

