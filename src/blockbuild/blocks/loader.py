"""Resolve a block identifier to its source files across variant levels."""

from __future__ import annotations

import fnmatch
from dataclasses import replace
from pathlib import Path

from blockbuild.blocks.models import BlockSource
from blockbuild.config import IDENTIFIER_PATTERN, BlockConfig, merge_block_config
from blockbuild.errors import ConfigError, SourceError
from blockbuild.fs import list_dir_files, read_json_object

CONFIG_FILENAME = "config.json"


def split_identifier(identifier: str) -> tuple[str, tuple[str, ...]]:
    """Split ``card_mobile_ru`` into ``("card", ("mobile", "ru"))``."""
    if not IDENTIFIER_PATTERN.match(identifier):
        raise ConfigError(f'Incorrect block identifier "{identifier}"')
    name, *workspace = identifier.split("_")
    return name, tuple(workspace)


def load_block_source(
    sources_dir: Path,
    identifier: str,
    *,
    compression: bool = False,
    ignore: tuple[str, ...] = (),
) -> BlockSource:
    """Load the base block directory, then overlay each variant directory in order.

    The template file of a later level replaces an earlier one. Stylesheets and scripts
    accumulate level by level. Attachments keep their first occurrence. Configuration
    files merge per key.
    """
    name, workspace = split_identifier(identifier)
    base_path = (sources_dir / name).resolve()
    if not base_path.is_dir():
        raise SourceError(f'Block directory not found "{sources_dir / name}"')

    config = BlockConfig()
    template_file: Path | None = None
    css_files: list[Path] = []
    js_files: list[Path] = []
    attachments: dict[str, Path] = {}

    level = base_path
    levels = [base_path]
    for segment in workspace:
        level = level / segment
        if not level.is_dir():
            raise SourceError(f'Template directory not found "{level}"')
        levels.append(level)

    for level in levels:
        config = _overlay_config(config, level, name)
        template_file = _first_existing(level, _template_names(name)) or template_file
        stylesheet = _first_existing(level, (f"{name}.css", "style.css"))
        if stylesheet is not None:
            css_files.append(stylesheet)
        script = _first_existing(level, (f"{name}.js", "script.js"))
        if script is not None:
            js_files.append(script)
        patterns = (*ignore, *config.ignore)
        for path in list_dir_files(level):
            if path.name in attachments or _is_reserved(path.name, name):
                continue
            if _is_ignored(path, base_path, patterns):
                continue
            attachments[path.name] = path

    return BlockSource(
        name=name,
        base_path=base_path,
        workspace=workspace,
        workspace_path=levels[-1],
        template_file=template_file,
        css_files=tuple(css_files),
        js_files=tuple(js_files),
        attachments=attachments,
        config=replace(config, compression=compression),
    )


def _overlay_config(config: BlockConfig, level: Path, name: str) -> BlockConfig:
    for filename in (CONFIG_FILENAME, f"{name}.json"):
        path = level / filename
        if not path.is_file():
            continue
        payload = read_json_object(path)
        if payload is None:
            raise ConfigError(f'Block configuration "{path}" must be a JSON object')
        try:
            return merge_block_config(config, payload)
        except ConfigError as exc:
            raise exc.with_context(f'Reading block configuration "{path}"')
    return config


def _template_names(name: str) -> tuple[str, ...]:
    return (f"{name}.html", "template.html", f"{name}.tpl", "template.tpl")


def _first_existing(directory: Path, names: tuple[str, ...]) -> Path | None:
    for filename in names:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def _is_reserved(filename: str, name: str) -> bool:
    reserved = {
        CONFIG_FILENAME,
        "template.html",
        "template.tpl",
        "style.css",
        "script.js",
        *(f"{name}.{suffix}" for suffix in ("html", "tpl", "css", "js", "json")),
    }
    return filename.lower() in {item.lower() for item in reserved}


def _is_ignored(path: Path, base_path: Path, patterns: tuple[str, ...]) -> bool:
    relative = path.relative_to(base_path).as_posix()
    return any(
        fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern)
        for pattern in patterns
    )
