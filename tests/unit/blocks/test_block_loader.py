from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from blockbuild.blocks import load_block_source, split_identifier
from blockbuild.config import MixinRule
from blockbuild.errors import ConfigError, SourceError


def test_split_identifier_separates_variant_levels() -> None:
    assert split_identifier("card") == ("card", ())
    assert split_identifier("card_mobile_ru") == ("card", ("mobile", "ru"))


@pytest.mark.parametrize("identifier", ["", "card__x", "_card", "card/x", "card x"])
def test_split_identifier_rejects_malformed_identifiers(identifier: str) -> None:
    with pytest.raises(ConfigError, match="Incorrect block identifier"):
        split_identifier(identifier)


def test_base_block_resolves_named_files_and_attachments(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(
        tmp_path / "card",
        {
            "card.html": "<div>#title#</div>",
            "template.html": "<div>fallback</div>",
            "card.css": ".card{}",
            "card.js": "var card;",
            "card.json": '{"description": "A card"}',
            "logo.svg": "<svg/>",
        },
    )

    source = load_block_source(tmp_path, "card", compression=True)

    assert source.key == "card"
    assert source.template_file == tmp_path.resolve() / "card" / "card.html"
    assert [path.name for path in source.css_files] == ["card.css"]
    assert [path.name for path in source.js_files] == ["card.js"]
    assert list(source.attachments) == ["logo.svg"]
    assert source.config.description == "A card"
    assert source.config.compression is True


def test_variant_levels_override_template_and_accumulate_assets(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(
        tmp_path / "card",
        {
            "card.html": "<div>base</div>",
            "style.css": ".base{}",
            "logo.svg": "<svg>base</svg>",
            "config.json": '{"dependencies": ["title"], "mixins": [{"mixin": "a", "tag": "p"}]}',
            "mobile/template.tpl": "<div>mobile</div>",
            "mobile/card.css": ".mobile{}",
            "mobile/logo.svg": "<svg>mobile</svg>",
            "mobile/icon.png": "png",
            "mobile/config.json": (
                '{"dependencies": ["badge", "title"], "mixins": [{"mixin": "b", "id": "x"}]}'
            ),
        },
    )

    source = load_block_source(tmp_path, "card_mobile")

    assert source.key == "card_mobile"
    assert source.workspace_name == "mobile"
    assert source.workspace_path == tmp_path.resolve() / "card" / "mobile"
    assert source.template_file is not None
    assert source.template_file.parent.name == "mobile"
    assert [path.parent.name for path in source.css_files] == ["card", "mobile"]
    assert source.attachments["logo.svg"].parent.name == "card"
    assert source.attachments["icon.png"].parent.name == "mobile"
    assert source.config.dependencies == ("title", "badge")
    assert source.config.mixins == (MixinRule(mixin="a", tag="p"), MixinRule(mixin="b", id="x"))


def test_config_json_takes_priority_over_named_config(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(
        tmp_path / "card",
        {
            "card.html": "",
            "config.json": '{"name": "from config"}',
            "card.json": '{"name": "from named file"}',
        },
    )

    assert load_block_source(tmp_path, "card").config.name == "from config"


def test_ignore_globs_exclude_attachments(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(
        tmp_path / "card",
        {
            "card.html": "",
            "notes.md": "draft",
            "photo.psd": "layers",
            "logo.svg": "<svg/>",
            "mobile/draft.txt": "x",
            "config.json": '{"ignore": ["*.psd"]}',
        },
    )

    source = load_block_source(tmp_path, "card_mobile", ignore=("*.md", "mobile/draft.txt"))

    assert list(source.attachments) == ["logo.svg"]


def test_missing_block_directory_is_reported(tmp_path: Path) -> None:
    with pytest.raises(SourceError, match="Block directory not found"):
        load_block_source(tmp_path, "missing")


def test_missing_variant_directory_is_reported(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(tmp_path / "card", {"card.html": ""})

    with pytest.raises(SourceError, match="Template directory not found"):
        load_block_source(tmp_path, "card_tablet")


def test_invalid_block_configuration_fails(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(tmp_path / "card", {"card.html": "", "config.json": "{broken"})

    with pytest.raises(ConfigError, match="must be a JSON object"):
        load_block_source(tmp_path, "card")


def test_unknown_block_configuration_key_names_the_file(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(tmp_path / "card", {"card.html": "", "card.json": '{"colour": "red"}'})

    with pytest.raises(ConfigError) as error:
        load_block_source(tmp_path, "card")

    assert error.value.message == 'Property "colour" not found'
    assert error.value.contexts[0].startswith("Reading block configuration")


def test_block_without_template_is_allowed(
    tmp_path: Path, write_files: Callable[[Path, dict[str, str]], Path]
) -> None:
    write_files(tmp_path / "fonts", {"fonts.css": "@font-face{font-family:A}"})

    source = load_block_source(tmp_path, "fonts")

    assert source.template_file is None
    assert [path.name for path in source.css_files] == ["fonts.css"]
