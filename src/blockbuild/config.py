"""Bundle and block configuration with explicit per-field validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Final

from blockbuild.errors import ConfigError

DEFAULT_ANCHOR_CSS = "css-block"
DEFAULT_ANCHOR_JS = "js-block"

IDENTIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-z0-9-]+(?:_[a-z0-9-]+)*$", re.IGNORECASE
)
LABEL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)
TAG_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9-]*$", re.IGNORECASE)
ATTRIBUTE_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^\s\"'<>=]+$")

_BUNDLE_FIELDS = (
    "sources_pages",
    "sources_blocks",
    "attachable_files",
    "anchor_css",
    "anchor_js",
    "compression",
    "pages",
    "ignore",
)
_BLOCK_FIELDS = ("name", "description", "mixins", "dependencies", "ignore")


@dataclass(slots=True, frozen=True)
class MixinRule:
    """Inject ``mixin`` into the class attribute of elements matching tag/id/class."""

    mixin: str
    tag: str = ""
    id: str = ""
    class_name: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON form used in block configuration files."""
        payload = {"mixin": self.mixin}
        if self.tag:
            payload["tag"] = self.tag
        if self.id:
            payload["id"] = self.id
        if self.class_name:
            payload["class"] = self.class_name
        return payload


@dataclass(slots=True, frozen=True)
class BundleConfig:
    """Validated bundle configuration."""

    sources_pages: str
    sources_blocks: str
    attachable_files: str
    anchor_css: str = DEFAULT_ANCHOR_CSS
    anchor_js: str = DEFAULT_ANCHOR_JS
    compression: bool = False
    pages: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()

    @property
    def anchors(self) -> tuple[str, str]:
        """Return the CSS and JS anchor placeholder names."""
        return (self.anchor_css, self.anchor_js)

    def to_dict(self) -> dict[str, object]:
        """Return the serializable form written to ``config.json``."""
        return {
            "sources_pages": self.sources_pages,
            "sources_blocks": self.sources_blocks,
            "attachable_files": self.attachable_files,
            "anchor_css": self.anchor_css,
            "anchor_js": self.anchor_js,
            "compression": self.compression,
            "pages": list(self.pages),
            "ignore": list(self.ignore),
        }

    def add_pages(self, pages: list[str]) -> BundleConfig:
        """Append new page identifiers, skipping ones already configured."""
        added = _identifiers(pages, "pages")
        merged = list(self.pages)
        for page in added:
            if page not in merged:
                merged.append(page)
        return replace(self, pages=tuple(merged))

    def remove_pages(self, pages: list[str]) -> BundleConfig:
        """Drop the given page identifiers."""
        return replace(self, pages=tuple(page for page in self.pages if page not in pages))

    def add_ignore(self, patterns: list[str]) -> BundleConfig:
        """Append new ignore globs, skipping ones already configured."""
        added = _trimmed_strings(patterns, "ignore")
        merged = list(self.ignore)
        for pattern in added:
            if pattern not in merged:
                merged.append(pattern)
        return replace(self, ignore=tuple(merged))

    def remove_ignore(self, patterns: list[str]) -> BundleConfig:
        """Drop the given ignore globs."""
        return replace(self, ignore=tuple(item for item in self.ignore if item not in patterns))


@dataclass(slots=True, frozen=True)
class BlockConfig:
    """Validated per-block configuration."""

    name: str = ""
    description: str = ""
    mixins: tuple[MixinRule, ...] = ()
    dependencies: tuple[str, ...] = ()
    compression: bool = False
    label: str = ""
    ignore: tuple[str, ...] = ()

    @property
    def output_prefix(self) -> str:
        """Return the label prefix used for output directories and markers."""
        return self.label

    def with_label(self, label: str) -> BlockConfig:
        """Return a copy carrying a validated output label."""
        label = label.strip()
        if label and not LABEL_PATTERN.match(label):
            raise ConfigError(f'Incorrect label "{label}" for the block')
        return replace(self, label=label)

    def to_dict(self) -> dict[str, object]:
        """Return the serializable form stored in index entries."""
        return {
            "name": self.name,
            "description": self.description,
            "mixins": [rule.to_dict() for rule in self.mixins],
            "dependencies": list(self.dependencies),
            "compression": self.compression,
            "label": self.label,
            "ignore": list(self.ignore),
        }


def bundle_config_from_payload(payload: dict[str, object]) -> BundleConfig:
    """Validate a raw ``config.json`` payload into a ``BundleConfig``."""
    if not isinstance(payload, dict):
        raise ConfigError("Bundle configuration must be a JSON object.")
    _reject_unknown_fields(payload, _BUNDLE_FIELDS)
    missing = [
        field
        for field in ("sources_pages", "sources_blocks", "attachable_files")
        if not payload.get(field)
    ]
    if missing:
        names = '", "'.join(missing)
        raise ConfigError(f'Properties "{names}" must be set')

    config = BundleConfig(
        sources_pages=_required_string(payload["sources_pages"], "sources_pages"),
        sources_blocks=_required_string(payload["sources_blocks"], "sources_blocks"),
        attachable_files=_required_string(payload["attachable_files"], "attachable_files"),
    )
    if "anchor_css" in payload:
        config = replace(config, anchor_css=_anchor(payload["anchor_css"], "anchor_css"))
    if "anchor_js" in payload:
        config = replace(config, anchor_js=_anchor(payload["anchor_js"], "anchor_js"))
    if config.anchor_css == config.anchor_js:
        raise ConfigError("Config fields 'anchor_css' and 'anchor_js' must differ.")
    if "compression" in payload:
        config = replace(config, compression=_boolean(payload["compression"], "compression"))
    if "pages" in payload:
        config = replace(config, pages=_identifiers(payload["pages"], "pages"))
    if "ignore" in payload:
        config = replace(config, ignore=_trimmed_strings(payload["ignore"], "ignore"))
    return config


def block_config_from_payload(payload: dict[str, object]) -> BlockConfig:
    """Validate a block ``config.json`` payload into a ``BlockConfig``."""
    return merge_block_config(BlockConfig(), payload)


def merge_block_config(base: BlockConfig, payload: dict[str, object]) -> BlockConfig:
    """Overlay a variant-level payload: list fields union, scalar fields replace."""
    if not isinstance(payload, dict):
        raise ConfigError("Block configuration must be a JSON object.")
    _reject_unknown_fields(payload, _BLOCK_FIELDS)
    config = base
    if "name" in payload:
        config = replace(config, name=_string(payload["name"], "name"))
    if "description" in payload:
        config = replace(config, description=_string(payload["description"], "description"))
    if "mixins" in payload:
        config = replace(config, mixins=_union(config.mixins, _mixin_rules(payload["mixins"])))
    if "dependencies" in payload:
        dependencies = _identifiers(payload["dependencies"], "dependencies")
        config = replace(config, dependencies=_union(config.dependencies, dependencies))
    if "ignore" in payload:
        ignore = _trimmed_strings(payload["ignore"], "ignore")
        config = replace(config, ignore=_union(config.ignore, ignore))
    return config


def merge_mixins(
    inherited: tuple[MixinRule, ...], declared: tuple[MixinRule, ...]
) -> tuple[MixinRule, ...]:
    """Return ``declared`` followed by inherited rules it does not already contain."""
    return _union(declared, inherited)


def _union(first: tuple[Any, ...], second: tuple[Any, ...]) -> tuple[Any, ...]:
    merged = list(first)
    for item in second:
        if item not in merged:
            merged.append(item)
    return tuple(merged)


def _reject_unknown_fields(payload: dict[str, object], allowed: tuple[str, ...]) -> None:
    for key in payload:
        if key not in allowed:
            raise ConfigError(f'Property "{key}" not found')


def _string(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Config field '{field}' must be a string.")
    return value


def _required_string(value: object, field: str) -> str:
    text = _string(value, field).strip()
    if not text:
        raise ConfigError(f'Property "{field}" must be set')
    return text


def _boolean(value: object, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Config field '{field}' must be a boolean.")
    return value


def _anchor(value: object, field: str) -> str:
    text = _required_string(value, field)
    if not IDENTIFIER_PATTERN.match(text):
        raise ConfigError(f"Config field '{field}' must be a placeholder name like 'css-block'.")
    return text


def _tuple_of_strings(value: object, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigError(f"Config field '{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(f"Config field '{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _trimmed_strings(value: object, field: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in _tuple_of_strings(value, field) if item.strip())


def _identifiers(value: object, field: str) -> tuple[str, ...]:
    output: list[str] = []
    for item in _trimmed_strings(value, field):
        if not IDENTIFIER_PATTERN.match(item):
            raise ConfigError(f"Incorrect identifier '{item}' in config field '{field}'.")
        output.append(item)
    return tuple(output)


def _mixin_rules(value: object) -> tuple[MixinRule, ...]:
    if not isinstance(value, list):
        raise ConfigError("Config field 'mixins' must be a list of objects.")
    rules: list[MixinRule] = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigError("Incorrect mixin stack format in block configuration")
        unknown = set(item) - {"mixin", "tag", "id", "class"}
        if unknown:
            raise ConfigError(f"Unknown mixin keys: {', '.join(sorted(unknown))}")
        fields: dict[str, str] = {}
        for key in ("mixin", "tag", "id", "class"):
            raw = item.get(key, "")
            if not isinstance(raw, str):
                raise ConfigError(f"Mixin field '{key}' must be a string.")
            fields[key] = raw.strip()
        if not fields["mixin"] or not (fields["tag"] or fields["id"] or fields["class"]):
            raise ConfigError(
                "Incorrect mixin stack format in block configuration: "
                "'mixin' and one of 'tag', 'id' or 'class' are required."
            )
        if fields["tag"] and not TAG_PATTERN.match(fields["tag"]):
            raise ConfigError(f"Incorrect mixin tag '{fields['tag']}'.")
        for key in ("mixin", "id", "class"):
            if fields[key] and not ATTRIBUTE_TOKEN_PATTERN.match(fields[key]):
                raise ConfigError(f"Incorrect mixin {key} '{fields[key]}'.")
        rules.append(
            MixinRule(
                mixin=fields["mixin"],
                tag=fields["tag"],
                id=fields["id"],
                class_name=fields["class"],
            )
        )
    return tuple(rules)
