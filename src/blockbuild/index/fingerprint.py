"""Deterministic fingerprints over block sources and compiled output directories."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

from blockbuild.errors import SourceError


@dataclass(slots=True, frozen=True)
class FileStamp:
    """Path and modification metadata contributing to a fingerprint."""

    path: str
    size: int
    mtime_ns: int


def block_stamp(block_path: Path, workspace_path: Path) -> str:
    """Fingerprint the block directory plus every variant level down to ``workspace_path``.

    Only files directly inside each directory count: the base block directory, then one
    directory per variant segment. ``workspace_path`` must be ``block_path`` itself or a
    descendant of it.
    """
    base = block_path.resolve()
    workspace = workspace_path.resolve()
    if not base.is_dir():
        raise SourceError(f'Block directory not found "{block_path}"')
    if not workspace.is_relative_to(base):
        raise SourceError(
            f'Template directory "{workspace_path}" is not inside the directory '
            f'of the block "{block_path}"'
        )

    stamps = list_file_stamps(base, base, recursive=False)
    level = base
    for segment in workspace.relative_to(base).parts:
        level = level / segment
        if not level.is_dir():
            raise SourceError(f'Template directory not found "{level}"')
        stamps.extend(list_file_stamps(level, base, recursive=False))
    return digest_stamps(stamps)


def directory_stamp(path: Path) -> str:
    """Fingerprint every file below ``path`` by relative path and modification time."""
    root = path.resolve()
    if not root.is_dir():
        raise SourceError(f'Directory not found "{path}"')
    return digest_stamps(list_file_stamps(root, root, recursive=True))


def list_file_stamps(directory: Path, relative_to: Path, *, recursive: bool) -> list[FileStamp]:
    """List file stamps in deterministic path order."""
    output: list[FileStamp] = []
    stack: list[Path] = [directory]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            raise SourceError(
                f'Unable to list directory "{current}": {exc.strerror or exc}'
            ) from exc
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                if recursive:
                    stack.append(full_path)
                continue
            if not entry.is_file():
                continue
            stat = entry.stat()
            output.append(
                FileStamp(
                    path=full_path.relative_to(relative_to).as_posix(),
                    size=stat.st_size,
                    mtime_ns=stat.st_mtime_ns,
                )
            )
    output.sort(key=lambda item: item.path)
    return output


def digest_stamps(stamps: list[FileStamp]) -> str:
    """Hash stamps into a stable hex digest."""
    digest = hashlib.sha256()
    for stamp in stamps:
        digest.update(stamp.path.encode("utf-8"))
        digest.update(b"|")
        digest.update(str(stamp.size).encode("ascii"))
        digest.update(b"|")
        digest.update(str(stamp.mtime_ns).encode("ascii"))
        digest.update(b"\n")
    return digest.hexdigest()
