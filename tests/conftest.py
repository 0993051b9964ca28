from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from blockbuild.bundle import Bundle


def _write_files(directory: Path, files: dict[str, str]) -> Path:
    for relative, content in files.items():
        path = directory / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return directory


def _touch(path: Path, content: str) -> None:
    """Rewrite ``path`` and move its mtime forward so the change is always visible."""
    before = path.stat()
    path.write_text(content, encoding="utf-8")
    os.utime(path, ns=(before.st_atime_ns, before.st_mtime_ns + 5_000_000_000))


@pytest.fixture
def write_files() -> Callable[[Path, dict[str, str]], Path]:
    return _write_files


@pytest.fixture
def touch() -> Callable[[Path, str], None]:
    return _touch


@pytest.fixture
def make_bundle(tmp_path: Path) -> Callable[..., Bundle]:
    def create(pages: tuple[str, ...] = ("page1",), **overrides: object) -> Bundle:
        payload: dict[str, object] = {
            "sources_pages": "src/pages",
            "sources_blocks": "src/blocks",
            "attachable_files": "src/attach",
            "pages": list(pages),
        }
        payload.update(overrides)
        return Bundle.create(tmp_path / "bundle", payload)

    return create
