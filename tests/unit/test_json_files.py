from __future__ import annotations

import json
from pathlib import Path

from blockbuild.fs import dump_json, read_json_object, write_json


def test_dump_json_escapes_markup_characters() -> None:
    text = dump_json({"name": "<b>Tom & Jerry's</b>"})

    assert text == '{\n    "name": "\\u003cb\\u003eTom \\u0026 Jerry\\u0027s\\u003c/b\\u003e"\n}'
    assert json.loads(text) == {"name": "<b>Tom & Jerry's</b>"}


def test_empty_object_is_written_compactly(tmp_path: Path) -> None:
    path = tmp_path / "index.json"

    write_json(path, {})

    assert path.read_text(encoding="utf-8") == "{}"
    assert read_json_object(path) == {}
