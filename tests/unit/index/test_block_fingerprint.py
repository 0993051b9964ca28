from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from blockbuild.errors import SourceError
from blockbuild.index import block_stamp, directory_stamp


def test_block_stamp_is_stable_without_changes(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    block = write_files(tmp_path / "card", {"card.html": "<div></div>", "card.css": ".a{}"})

    assert block_stamp(block, block) == block_stamp(block, block)


def test_block_stamp_covers_base_and_selected_variant_levels_only(
    tmp_path: Path,
    write_files: Callable[[Path, dict[str, str]], Path],
    touch: Callable[[Path, str], None],
) -> None:
    block = write_files(
        tmp_path / "card",
        {
            "card.html": "<div></div>",
            "mobile/card.html": "<div>m</div>",
            "mobile/ru/card.css": ".ru{}",
            "desktop/card.html": "<div>d</div>",
            "assets/nested.txt": "not part of the base level",
        },
    )
    workspace = block / "mobile" / "ru"
    before = block_stamp(block, workspace)

    touch(block / "desktop" / "card.html", "<div>desktop changed</div>")
    touch(block / "assets" / "nested.txt", "still not part of the base level")
    assert block_stamp(block, workspace) == before

    touch(block / "mobile" / "card.html", "<div>mobile changed</div>")
    assert block_stamp(block, workspace) != before


def test_block_stamp_changes_when_base_file_added(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    block = write_files(tmp_path / "card", {"card.html": "<div></div>"})
    before = block_stamp(block, block)

    (block / "logo.svg").write_text("<svg/>", encoding="utf-8")

    assert block_stamp(block, block) != before


def test_block_stamp_rejects_workspace_outside_block(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    block = write_files(tmp_path / "card", {"card.html": ""})
    other = write_files(tmp_path / "other", {"other.html": ""})

    with pytest.raises(SourceError, match="is not inside the directory"):
        block_stamp(block, other)


def test_block_stamp_requires_existing_directories(tmp_path: Path) -> None:
    with pytest.raises(SourceError, match="Block directory not found"):
        block_stamp(tmp_path / "missing", tmp_path / "missing")


def test_directory_stamp_is_recursive(
    tmp_path: Path,
    write_files: Callable[[Path, dict[str, str]], Path],
    touch: Callable[[Path, str], None],
) -> None:
    output = write_files(tmp_path / "out", {"page.html": "x", "img/logo.svg": "<svg/>"})
    before = directory_stamp(output)

    touch(output / "img" / "logo.svg", "<svg></svg>")

    assert directory_stamp(output) != before
