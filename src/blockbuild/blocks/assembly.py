"""Recursive block compilation and merge."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, Protocol

from blockbuild.assets.mixins import apply_mixins
from blockbuild.blocks.loader import load_block_source
from blockbuild.blocks.models import BlockSource, CompiledBlock
from blockbuild.blocks.writer import save_block
from blockbuild.config import MixinRule, merge_mixins
from blockbuild.errors import BuildError, CyclicDependencyError
from blockbuild.fs import read_text
from blockbuild.index.fingerprint import block_stamp, directory_stamp
from blockbuild.index.models import (
    BLOCK,
    KIND_DIRECTORIES,
    PAGE,
    CompilationRecord,
    IndexEntry,
    entry_key,
)
from blockbuild.logging.audit import format_timestamp

PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"#([a-z0-9-]+(?:_[a-z0-9-]+)*)#", re.IGNORECASE
)


class RecordEntryFn(Protocol):
    """Index callback invoked once per compiled page or block."""

    def __call__(self, entry: IndexEntry) -> None:
        """Store a freshly built entry."""


@dataclass(slots=True, frozen=True)
class AssemblySettings:
    """Bundle-level inputs shared by every block compiled in one run."""

    output_root: Path
    pages_source: Path
    blocks_source: Path
    attachable_files: Path
    anchor_css: str
    anchor_js: str
    compression: bool = False
    ignore: tuple[str, ...] = ()

    @property
    def anchors(self) -> tuple[str, str]:
        return (self.anchor_css, self.anchor_js)

    def sources_for(self, kind: str) -> Path:
        return self.pages_source if kind == PAGE else self.blocks_source


class BlockAssembler:
    """Compile pages and their dependency trees into output directories."""

    def __init__(
        self,
        settings: AssemblySettings,
        record_entry: RecordEntryFn,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._record_entry = record_entry
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self.warnings: list[str] = []

    def compile(
        self,
        kind: str,
        identifier: str,
        parent: str = "",
        mixins: Sequence[MixinRule] = (),
    ) -> CompiledBlock:
        """Compile ``identifier`` and every dependency below it, recording index entries."""
        return self._compile(kind, identifier, parent, tuple(mixins), ())

    def _compile(
        self,
        kind: str,
        identifier: str,
        parent: str,
        mixins: tuple[MixinRule, ...],
        trail: tuple[str, ...],
    ) -> CompiledBlock:
        key = entry_key(kind, identifier)
        if key in trail:
            chain = " -> ".join([*trail, key])
            raise CyclicDependencyError(f"Recursive connection of blocks: {chain}")
        try:
            source = load_block_source(
                self._settings.sources_for(kind),
                identifier,
                compression=self._settings.compression,
                ignore=self._settings.ignore,
            )
            block = self._resolve(kind, identifier, source, parent, mixins)
            environment = merge_mixins(mixins, block.config.mixins)
            block.environment_mixins = environment
            for dependency in list(block.dependencies):
                if dependency in self._settings.anchors:
                    continue
                child = self._compile(
                    BLOCK, dependency, identifier, environment, (*trail, key)
                )
                merge_blocks(block, child)
            if kind == PAGE:
                self._link_assets(block)
            self._save(block, parent)
        except BuildError as exc:
            raise exc.with_context(f'Compilation of block "{identifier}"')
        return block

    def _resolve(
        self,
        kind: str,
        identifier: str,
        source: BlockSource,
        parent: str,
        mixins: tuple[MixinRule, ...],
    ) -> CompiledBlock:
        template = read_text(source.template_file) if source.template_file else ""
        dependencies = list(source.config.dependencies)
        for token in PLACEHOLDER_PATTERN.findall(template):
            if token not in dependencies:
                dependencies.append(token)
        used: tuple[MixinRule, ...] = ()
        if template and mixins:
            template, used = apply_mixins(template, mixins)
        is_mixed = bool(used)
        return CompiledBlock(
            kind=kind,
            identifier=identifier,
            source=source,
            config=source.config.with_label(parent if is_mixed else ""),
            template=template,
            dependencies=dependencies,
            used_mixins=list(used),
            css=list(source.css_files),
            js=list(source.js_files),
            attachments=dict(source.attachments),
            is_mixed=is_mixed,
        )

    def _link_assets(self, block: CompiledBlock) -> None:
        version = int(self._clock().timestamp())
        block.replace_placeholder(
            self._settings.anchor_css,
            f'<link href="{block.name}.css?{version}" rel="stylesheet"/>',
        )
        block.replace_placeholder(
            self._settings.anchor_js,
            f'<script src="{block.name}.js?{version}"></script>',
        )

    def _save(self, block: CompiledBlock, parent: str) -> None:
        kind_dir = self._settings.output_root / KIND_DIRECTORIES[block.kind]
        saved = save_block(block, kind_dir, self._settings.attachable_files)
        self.warnings.extend(saved.warnings)
        source = block.source
        self._record_entry(
            IndexEntry(
                id=block.identifier,
                name=block.name,
                workspace=source.workspace_name,
                type=block.kind,
                config=block.config.to_dict(),
                stamp=block_stamp(source.base_path, source.workspace_path),
                block_path=str(source.base_path),
                template_path=str(source.workspace_path),
                parent=parent,
                dependencies=tuple(block.dependencies),
                environment_mixins=tuple(rule.to_dict() for rule in block.environment_mixins),
                used_mixins=tuple(rule.to_dict() for rule in block.used_mixins),
                compilation=CompilationRecord(
                    time=format_timestamp(self._clock()),
                    stamp=directory_stamp(saved.path),
                    path=str(saved.path),
                    compression=self._settings.compression,
                ),
            )
        )


def merge_blocks(parent: CompiledBlock, child: CompiledBlock) -> None:
    """Inline ``child`` into ``parent`` and inherit its assets and dependencies."""
    if parent.source.workspace_path == child.source.workspace_path:
        raise CyclicDependencyError(
            f'Recursive connection of blocks in "{parent.source.workspace_path}"'
        )
    marker = f"{child.config.output_prefix}{child.key}"
    wrapped = f"<!--block:{marker}-->{child.template}<!--end:{marker}-->" if child.template else ""
    if parent.replace_placeholder(child.key, wrapped):
        parent.used_mixins = list(merge_mixins(tuple(parent.used_mixins), tuple(child.used_mixins)))

    known_css = parent.stylesheets
    for path in child.stylesheets:
        if path not in known_css:
            parent.inherited_css.append(path)
            known_css.append(path)
    known_js = parent.scripts
    for path in child.scripts:
        if path not in known_js:
            parent.inherited_js.append(path)
            known_js.append(path)

    for filename, path in child.attachments.items():
        if filename in parent.attachments or path in parent.attachments.values():
            continue
        parent.attachments[filename] = path

    for dependency in child.dependencies:
        if dependency not in parent.dependencies:
            parent.dependencies.append(dependency)
    parent.is_merged = True
