"""Typed models for persisted index entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

PAGE: Final = "page"
BLOCK: Final = "block"
KIND_DIRECTORIES: Final[dict[str, str]] = {PAGE: "pages", BLOCK: "blocks"}


def entry_key(kind: str, identifier: str) -> str:
    """Return the index key, e.g. ``pages:home`` or ``blocks:card_mobile``."""
    try:
        return f"{KIND_DIRECTORIES[kind]}:{identifier}"
    except KeyError:
        raise ValueError(f"Unknown block type: {kind}") from None


@dataclass(slots=True, frozen=True)
class CompilationRecord:
    """When, where and how a block was last compiled."""

    time: str
    stamp: str
    path: str
    compression: bool


@dataclass(slots=True, frozen=True)
class IndexEntry:
    """Cache metadata for one compiled page or block."""

    id: str
    name: str
    workspace: str
    type: str
    config: dict[str, object]
    stamp: str
    block_path: str
    template_path: str
    parent: str
    dependencies: tuple[str, ...]
    environment_mixins: tuple[dict[str, str], ...]
    used_mixins: tuple[dict[str, str], ...]
    compilation: CompilationRecord

    @property
    def key(self) -> str:
        return entry_key(self.type, self.id)

    def to_dict(self) -> dict[str, object]:
        """Return the JSON form stored in ``index.json``."""
        return {
            "id": self.id,
            "name": self.name,
            "workspace": self.workspace,
            "type": self.type,
            "config": self.config,
            "stamp": self.stamp,
            "path": {"block": self.block_path, "template": self.template_path},
            "parent": self.parent,
            "dependencies": list(self.dependencies),
            "mixins": {
                "environment": [dict(item) for item in self.environment_mixins],
                "used": [dict(item) for item in self.used_mixins],
            },
            "compilation": {
                "time": self.compilation.time,
                "stamp": self.compilation.stamp,
                "path": self.compilation.path,
                "compression": self.compilation.compression,
            },
        }

    @classmethod
    def from_dict(cls, payload: object) -> IndexEntry | None:
        """Parse a stored entry; malformed entries yield None and are recompiled."""
        if not isinstance(payload, dict):
            return None
        paths = payload.get("path")
        mixins = payload.get("mixins")
        compilation = payload.get("compilation")
        config = payload.get("config")
        if not isinstance(paths, dict) or not isinstance(mixins, dict):
            return None
        if not isinstance(compilation, dict) or not isinstance(config, dict):
            return None
        strings = {
            "id": payload.get("id"),
            "name": payload.get("name"),
            "workspace": payload.get("workspace", ""),
            "type": payload.get("type"),
            "stamp": payload.get("stamp"),
            "block_path": paths.get("block"),
            "template_path": paths.get("template"),
            "parent": payload.get("parent", ""),
            "time": compilation.get("time"),
            "output_stamp": compilation.get("stamp"),
            "output_path": compilation.get("path"),
        }
        if not all(isinstance(value, str) for value in strings.values()):
            return None
        if strings["type"] not in KIND_DIRECTORIES:
            return None
        compression = compilation.get("compression")
        if not isinstance(compression, bool):
            return None
        dependencies = _string_tuple(payload.get("dependencies"))
        environment = _mixin_tuple(mixins.get("environment"))
        used = _mixin_tuple(mixins.get("used"))
        if dependencies is None or environment is None or used is None:
            return None
        return cls(
            id=strings["id"],
            name=strings["name"],
            workspace=strings["workspace"],
            type=strings["type"],
            config=config,
            stamp=strings["stamp"],
            block_path=strings["block_path"],
            template_path=strings["template_path"],
            parent=strings["parent"],
            dependencies=dependencies,
            environment_mixins=environment,
            used_mixins=used,
            compilation=CompilationRecord(
                time=strings["time"],
                stamp=strings["output_stamp"],
                path=strings["output_path"],
                compression=compression,
            ),
        )


def _string_tuple(value: object) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return tuple(value)


def _mixin_tuple(value: object) -> tuple[dict[str, str], ...] | None:
    if not isinstance(value, list):
        return None
    output: list[dict[str, str]] = []
    for item in value:
        if not isinstance(item, dict):
            return None
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in item.items()):
            return None
        output.append(dict(item))
    return tuple(output)
