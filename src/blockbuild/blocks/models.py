"""Block source descriptions and compile-time results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from blockbuild.config import BlockConfig, MixinRule


@dataclass(slots=True, frozen=True)
class BlockSource:
    """Files resolved for one block identifier across its variant levels."""

    name: str
    base_path: Path
    workspace: tuple[str, ...]
    workspace_path: Path
    template_file: Path | None
    css_files: tuple[Path, ...]
    js_files: tuple[Path, ...]
    attachments: dict[str, Path]
    config: BlockConfig

    @property
    def workspace_name(self) -> str:
        return "_".join(self.workspace)

    @property
    def key(self) -> str:
        """Return ``name`` or ``name_workspace``, the placeholder a parent uses."""
        if not self.workspace:
            return self.name
        return f"{self.name}_{self.workspace_name}"


@dataclass(slots=True)
class CompiledBlock:
    """A block after template resolution and mixin application.

    Dependencies merged into the block append their stylesheets and scripts to the
    ``inherited_*`` lists, which are emitted before the block's own files.
    """

    kind: str
    identifier: str
    source: BlockSource
    config: BlockConfig
    template: str
    dependencies: list[str]
    used_mixins: list[MixinRule]
    environment_mixins: tuple[MixinRule, ...] = ()
    css: list[Path] = field(default_factory=list)
    js: list[Path] = field(default_factory=list)
    inherited_css: list[Path] = field(default_factory=list)
    inherited_js: list[Path] = field(default_factory=list)
    attachments: dict[str, Path] = field(default_factory=dict)
    is_mixed: bool = False
    is_merged: bool = False

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def key(self) -> str:
        return self.source.key

    @property
    def output_name(self) -> str:
        """Return the output directory name, ``<label><key>`` for mixed blocks."""
        return f"{self.config.output_prefix}{self.key}"

    @property
    def stylesheets(self) -> list[Path]:
        return [*self.inherited_css, *self.css]

    @property
    def scripts(self) -> list[Path]:
        return [*self.inherited_js, *self.js]

    def replace_placeholder(self, key: str, value: str) -> bool:
        """Replace every ``#key#`` token; return True when at least one was found."""
        token = f"#{key.strip()}#"
        if not key.strip() or token not in self.template:
            return False
        self.template = self.template.replace(token, value)
        return True
