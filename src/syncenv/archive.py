"""
Archiver -- pack several env files into one blob and back.

A single-file push never touches this module: the raw file bytes are
stored as-is. Only when a project tracks more than one env file do we
bundle them into a gzip-compressed tar so the storage layer always
deals with exactly one blob per tag.

Member names are the paths exactly as configured (relative paths stay
relative), and each member carries the file's permission bits so a
pull restores them.
"""

from __future__ import annotations

import gzip
import logging
import os
import stat
import tarfile
import zlib
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Union

from .errors import FileAccessError, FormatError

logger = logging.getLogger("syncenv.archive")

DIR_MODE = 0o755


@dataclass
class FileEntry:
    """One file recovered from an archive.

    Attributes:
        path: Path string as stored in the archive, unmodified.
        data: File content.
        mode: Permission bits (e.g. 0o600).
    """

    path: str
    data: bytes
    mode: int = 0o644


def create(paths: Iterable[Union[str, Path]]) -> bytes:
    """Pack files into a tar.gz blob, in the given order.

    Args:
        paths: Files to include. Each is stored under its path string.

    Returns:
        The compressed archive bytes.

    Raises:
        FileAccessError: If any file cannot be read. Nothing is returned
            for the files read before the failure.
    """
    buf = BytesIO()
    count = 0

    # Fixed gzip and member mtimes keep the blob a function of content only.
    with gzip.GzipFile(fileobj=buf, mode="wb", mtime=0) as gz, \
            tarfile.open(fileobj=gz, mode="w") as tar:
        for path in paths:
            name = str(path)
            try:
                data = Path(name).read_bytes()
                st = os.stat(name)
            except OSError as exc:
                raise FileAccessError(f"Failed to read file {name}: {exc}") from exc

            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            info.mode = stat.S_IMODE(st.st_mode)
            tar.addfile(info, BytesIO(data))
            count += 1

    logger.debug("Archived %d file(s), %d bytes", count, buf.tell())
    return buf.getvalue()


def extract(blob: bytes) -> list[FileEntry]:
    """Unpack a blob produced by :func:`create`.

    Args:
        blob: Archive bytes.

    Returns:
        Entries in archive order.

    Raises:
        FormatError: If the blob is not a complete, well-formed tar.gz.
    """
    entries: list[FileEntry] = []

    try:
        with tarfile.open(fileobj=BytesIO(blob), mode="r:gz") as tar:
            for member in tar:
                if not member.isfile():
                    logger.debug("Skipping non-file member %s", member.name)
                    continue

                fh = tar.extractfile(member)
                data = fh.read() if fh is not None else b""
                if len(data) != member.size:
                    raise FormatError(
                        f"Truncated archive member {member.name}: "
                        f"expected {member.size} bytes, got {len(data)}"
                    )

                entries.append(
                    FileEntry(path=member.name, data=data, mode=member.mode)
                )
    except (tarfile.TarError, EOFError, zlib.error, OSError) as exc:
        raise FormatError(f"Invalid archive: {exc}") from exc

    return entries


def extract_to_files(blob: bytes, base_dir: Optional[Path] = None) -> list[Path]:
    """Unpack a blob and write every entry to disk.

    Parent directories are created with mode 0755. Files written before
    a failure are left in place.

    Args:
        blob: Archive bytes.
        base_dir: Directory relative entry paths resolve against.
            Defaults to the current working directory.

    Returns:
        Paths of the written files.

    Raises:
        FormatError: If the blob is malformed.
        FileAccessError: If a directory or file cannot be written.
    """
    entries = extract(blob)
    root = Path(base_dir) if base_dir is not None else Path(".")
    written: list[Path] = []

    for entry in entries:
        target = root / entry.path
        parent = target.parent
        try:
            if str(parent) not in ("", "."):
                os.makedirs(parent, mode=DIR_MODE, exist_ok=True)
        except OSError as exc:
            raise FileAccessError(
                f"Failed to create directory {parent}: {exc}"
            ) from exc

        try:
            target.write_bytes(entry.data)
            os.chmod(target, entry.mode)
        except OSError as exc:
            raise FileAccessError(f"Failed to write file {target}: {exc}") from exc

        written.append(target)

    logger.info("Extracted %d file(s)", len(written))
    return written


def list_files(blob: bytes) -> list[str]:
    """Return the paths stored in an archive, in order."""
    return [entry.path for entry in extract(blob)]
