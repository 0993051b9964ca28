"""Write a compiled block to its output directory."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from blockbuild.assets.css import compile_stylesheets
from blockbuild.assets.js import compile_scripts
from blockbuild.blocks.models import CompiledBlock
from blockbuild.errors import SourceError
from blockbuild.fs import copy_file, ensure_dir, list_dir_files, read_text, remove_file, write_text
from blockbuild.security.paths import PathBlockedError, resolve_sandboxed_path

ATTACH_REFERENCE: Final[re.Pattern[str]] = re.compile(r"(?<![\w./-])/?_?attach/([\w./-]*[\w-])")


@dataclass(slots=True, frozen=True)
class SavedBlock:
    """Output directory of a saved block plus non-fatal transfer warnings."""

    path: Path
    warnings: tuple[str, ...]


def save_block(block: CompiledBlock, kind_dir: Path, attachable_dir: Path) -> SavedBlock:
    """Write ``<name>.html/.css/.js`` and copy attachments into ``kind_dir/<output name>``.

    Files left over from a previous compile are deleted unless they are one of the
    three block files or a tracked attachment.
    """
    output = kind_dir / block.output_name
    warnings: list[str] = []
    keep = {*block.attachments, *(f"{block.name}.{suffix}" for suffix in ("html", "css", "js"))}
    if output.is_dir():
        for path in list_dir_files(output):
            if path.name in keep:
                continue
            warning = remove_file(path)
            if warning is not None:
                warnings.append(warning)
    else:
        ensure_dir(output)

    marker = block.output_name
    template = f"<!--block:{marker}-->{block.template}<!--end:{marker}-->" if block.template else ""
    compression = block.config.compression
    stylesheet = compile_stylesheets(
        [read_text(path) for path in block.stylesheets], compression=compression
    )
    script = compile_scripts(
        [(str(path), read_text(path)) for path in block.scripts], compression=compression
    )
    template = _transfer_references(template, attachable_dir, output, warnings)

    try:
        write_text(output / f"{block.name}.html", template)
        write_text(output / f"{block.name}.css", stylesheet)
        write_text(output / f"{block.name}.js", script)
    except SourceError as exc:
        raise exc.with_context(f'Save the compiled files of the "{block.name}" block')

    for filename, source in block.attachments.items():
        warning = copy_file(source, output / filename)
        if warning is not None:
            warnings.append(warning)
    return SavedBlock(path=output, warnings=tuple(warnings))


def flatten_reference(reference: str) -> str:
    """Return the output filename for an ``attach/<path>`` reference."""
    return reference.replace("/", "_")


def _transfer_references(
    template: str, attachable_dir: Path, output: Path, warnings: list[str]
) -> str:
    """Rewrite ``attach/<path>`` references and copy each referenced file once."""
    references: list[str] = []

    def rewrite(match: re.Match[str]) -> str:
        reference = match.group(1)
        if reference not in references:
            references.append(reference)
        return flatten_reference(reference)

    template = ATTACH_REFERENCE.sub(rewrite, template)
    for reference in references:
        try:
            source = resolve_sandboxed_path(attachable_dir, reference)
        except PathBlockedError as exc:
            warnings.append(f'Attachment "{reference}" skipped: {exc.reason}')
            continue
        if not source.is_file():
            warnings.append(f'File "{reference}" not found in attach directory')
            continue
        warning = copy_file(source, output / flatten_reference(reference))
        if warning is not None:
            warnings.append(warning)
    return template
