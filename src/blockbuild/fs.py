"""Filesystem primitives that report failures as ``SourceError``."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path

from blockbuild.errors import SourceError

# Escaped as \u sequences so the JSON can be embedded in markup.
_HTML_UNSAFE_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("'", "\\u0027"),
)


def read_text(path: Path) -> str:
    """Read a UTF-8 text file."""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceError(f'Unable to load file "{path}": {exc.strerror or exc}') from exc


def write_text(path: Path, content: str) -> None:
    """Write a UTF-8 text file, creating parent directories as needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise SourceError(f'Can not write to file "{path}": {exc.strerror or exc}') from exc


def read_json_object(path: Path) -> dict[str, object] | None:
    """Return a JSON object from ``path``, or None when missing or not an object."""
    if not path.is_file():
        return None
    try:
        payload = json.loads(read_text(path))
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def dump_json(payload: object) -> str:
    """Serialize pretty-printed JSON with HTML-unsafe characters escaped."""
    if isinstance(payload, dict) and not payload:
        return "{}"
    text = json.dumps(payload, indent=4, sort_keys=True, ensure_ascii=False)
    for raw, escaped in _HTML_UNSAFE_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def write_json(path: Path, payload: object) -> None:
    """Atomically write ``payload`` as pretty-printed JSON."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    write_text(tmp, dump_json(payload))
    try:
        tmp.replace(path)
    except OSError as exc:
        raise SourceError(f'Can not write to file "{path}": {exc.strerror or exc}') from exc


def ensure_dir(path: Path) -> Path:
    """Create ``path`` (and parents) when missing."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SourceError(f'Can not create directory "{path}": {exc.strerror or exc}') from exc
    return path


def clear_dir(path: Path) -> None:
    """Delete every file and directory inside ``path``, keeping ``path`` itself."""
    if not path.is_dir():
        raise SourceError(f'Directory not found "{path}"')
    for entry in sorted(path.iterdir()):
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as exc:
            raise SourceError(f'Can not delete "{entry}": {exc.strerror or exc}') from exc


def list_dir_files(path: Path) -> list[Path]:
    """Return regular files directly inside ``path`` in name order."""
    try:
        with os.scandir(path) as entries:
            names = sorted(entry.name for entry in entries if entry.is_file())
    except OSError as exc:
        raise SourceError(f'Unable to list directory "{path}": {exc.strerror or exc}') from exc
    return [path / name for name in names]


def copy_file(source: Path, target: Path) -> str | None:
    """Copy a file preserving metadata; return a warning message on failure."""
    try:
        shutil.copy2(source, target)
    except OSError as exc:
        reason = exc.strerror or exc
        return f'Could not copy file "{source}" to directory "{target.parent}": {reason}'
    return None


def remove_file(path: Path) -> str | None:
    """Delete a file; return a warning message on failure."""
    try:
        path.unlink()
    except OSError as exc:
        return f'Could not delete stale file "{path}": {exc.strerror or exc}'
    return None
