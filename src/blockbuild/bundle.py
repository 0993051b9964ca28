"""Bundle orchestration: incremental compile, index maintenance and navigation map."""

from __future__ import annotations

import html
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from blockbuild.blocks.assembly import AssemblySettings, BlockAssembler
from blockbuild.config import BundleConfig, bundle_config_from_payload
from blockbuild.errors import BuildError, ConfigError, SourceError
from blockbuild.fs import clear_dir, ensure_dir, read_json_object, write_json, write_text
from blockbuild.index.manager import INDEX_FILENAME, BuildIndex, FreshnessPolicy
from blockbuild.index.models import KIND_DIRECTORIES, PAGE, IndexEntry, entry_key
from blockbuild.logging.audit import (
    BUILD_LOG_FILENAME,
    LEVEL_ERROR,
    LEVEL_INFO,
    LEVEL_WARNING,
    BuildEvent,
    JsonlBuildLogger,
    utc_timestamp,
)

CONFIG_FILENAME = "config.json"
NAVIGATION_FILENAME = "index.html"
EMPTY_CELL = "—"
NAVIGATION_DATE_FORMAT = "%d.%m.%Y %H:%M:%S"

_NAVIGATION_STYLE = (
    "table{width:auto;min-width:50%;margin:16px;border-collapse:collapse;}"
    "td{color:#333333;font-size:14px;vertical-align:top;padding:12px 0;"
    "border-bottom:1px solid #e6e6e6;}"
    "td a{color:#1976D2;text-decoration:none;}"
)
_SOURCE_LABELS = (
    ("sources_pages", "source pages"),
    ("sources_blocks", "source blocks"),
    ("attachable_files", "attachable files"),
)


@dataclass(slots=True, frozen=True)
class CompileReport:
    """Outcome of one ``Bundle.compile`` call."""

    compiled: tuple[str, ...]
    skipped: tuple[str, ...]
    warnings: tuple[str, ...] = ()
    notices: tuple[str, ...] = ()
    duration_ms: int = 0
    timestamp: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "compiled": list(self.compiled),
            "skipped": list(self.skipped),
            "warnings": list(self.warnings),
            "notices": list(self.notices),
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class _Paths:
    pages_source: Path
    blocks_source: Path
    attachable_files: Path
    created: list[str] = field(default_factory=list)


class Bundle:
    """One buildable site: configuration, cache index and compiled output."""

    def __init__(
        self,
        root: Path,
        config: BundleConfig,
        index: BuildIndex,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._root = root
        self._config = config
        self._index = index
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._logger = JsonlBuildLogger(root / BUILD_LOG_FILENAME)
        self._paths = self._prepare_sources()

    @classmethod
    def create(
        cls,
        root: Path,
        payload: dict[str, object],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> Bundle:
        """Create a bundle directory with config, an empty index and output folders."""
        root = root.expanduser().resolve()
        try:
            config = bundle_config_from_payload(payload)
            if (root / CONFIG_FILENAME).exists():
                raise ConfigError(f'A bundle already exists in "{root}"')
            ensure_dir(root)
            write_json(root / CONFIG_FILENAME, config.to_dict())
            write_text(root / INDEX_FILENAME, "{}")
            for directory in KIND_DIRECTORIES.values():
                ensure_dir(root / directory)
        except BuildError as exc:
            raise exc.with_context("Creating a bundle")
        return cls(root, config, BuildIndex(root / INDEX_FILENAME), clock=clock)

    @classmethod
    def load(
        cls,
        root: Path,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> Bundle:
        """Open an existing bundle; a missing or unreadable index starts empty."""
        root = root.expanduser().resolve()
        config_path = root / CONFIG_FILENAME
        try:
            if not config_path.is_file():
                raise SourceError(f'File not found "{config_path}"')
            payload = read_json_object(config_path)
            if payload is None:
                raise ConfigError(f'Bundle configuration "{config_path}" must be a JSON object')
            config = bundle_config_from_payload(payload)
            index = BuildIndex.load(root / INDEX_FILENAME)
        except BuildError as exc:
            raise exc.with_context("Initializing a bundle")
        return cls(root, config, index, clock=clock)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def name(self) -> str:
        return self._root.name

    @property
    def config(self) -> BundleConfig:
        return self._config

    @property
    def index(self) -> BuildIndex:
        return self._index

    @property
    def notices(self) -> tuple[str, ...]:
        """Return notices about source directories created while opening the bundle."""
        return tuple(self._paths.created)

    @property
    def log_path(self) -> Path:
        return self._logger.path

    def compile(self) -> CompileReport:
        """Compile every stale configured page and persist the index.

        Work happens on a staging copy of the index. The copy replaces the current
        index, and ``index.json`` is written, only after every page compiled.
        """
        started = time.perf_counter()
        timestamp = utc_timestamp()
        staging = self._index.staging_copy()
        policy = self._policy()
        assembler = BlockAssembler(self._settings(), staging.record, clock=self._clock)
        compiled: list[str] = []
        skipped: list[str] = []

        for page in self._config.pages:
            if staging.is_actual(entry_key(PAGE, page), policy):
                skipped.append(page)
                self._log("skip_page", page, message=f'Page "{page}" is up to date')
                continue
            try:
                assembler.compile(PAGE, page)
            except BuildError as exc:
                exc.with_context(f'Compilation of page "{page}" in bundle')
                self._log("compile_page", page, ok=False, level=LEVEL_ERROR, message=exc.render())
                raise
            compiled.append(page)
            self._log("compile_page", page, message=f'Page "{page}" compiled')

        staging.reset_memo()
        try:
            self._write_navigation(staging)
            staging.save()
        except BuildError as exc:
            raise exc.with_context("Saving the bundle index")
        self._index = staging

        warnings = tuple(assembler.warnings)
        for warning in warnings:
            self._log("warning", "", level=LEVEL_WARNING, message=warning)
        report = CompileReport(
            compiled=tuple(compiled),
            skipped=tuple(skipped),
            warnings=warnings,
            notices=self.notices,
            duration_ms=int((time.perf_counter() - started) * 1000),
            timestamp=timestamp,
        )
        self._log(
            "compile",
            "",
            message=f"{len(compiled)} compiled, {len(skipped)} up to date",
            metadata={"compiled": list(compiled), "skipped": list(skipped)},
        )
        return report

    def reset_index(self) -> None:
        """Forget every compiled entry so the next compile rebuilds all pages."""
        try:
            self._index.reset()
        except BuildError as exc:
            raise exc.with_context("Resetting the bundle index")
        self._log("reset", "", message="Index reset")

    def clear_compilation(self) -> None:
        """Delete compiled output below ``pages/`` and ``blocks/``."""
        for directory in KIND_DIRECTORIES.values():
            path = ensure_dir(self._root / directory)
            try:
                clear_dir(path)
            except BuildError as exc:
                raise exc.with_context("Clearing compiled output")
        self._log("clear", "", message="Compiled output cleared")

    def get_info(
        self,
        kind: str,
        identifier: str,
        fields: Sequence[str] = (),
    ) -> dict[str, object]:
        """Return selected fields of a compiled entry; ``actual`` reports freshness."""
        return self._index.info(entry_key(kind, identifier), self._policy(), tuple(fields))

    def update_config(
        self,
        *,
        add_pages: Sequence[str] = (),
        remove_pages: Sequence[str] = (),
        add_ignore: Sequence[str] = (),
        remove_ignore: Sequence[str] = (),
    ) -> BundleConfig:
        """Apply page and ignore list changes and persist ``config.json``."""
        config = self._config
        try:
            if add_pages:
                config = config.add_pages(list(add_pages))
            if remove_pages:
                config = config.remove_pages(list(remove_pages))
            if add_ignore:
                config = config.add_ignore(list(add_ignore))
            if remove_ignore:
                config = config.remove_ignore(list(remove_ignore))
            write_json(self._root / CONFIG_FILENAME, config.to_dict())
        except BuildError as exc:
            raise exc.with_context("Updating the bundle configuration")
        self._config = config
        self._log("config", "", message="Configuration updated", metadata=config.to_dict())
        return config

    def navigation_rows(self, index: BuildIndex | None = None) -> list[dict[str, str]]:
        """Return one navigation row per compiled page, ordered by identifier."""
        source = index if index is not None else self._index
        pages = sorted(
            (entry for entry in source.entries() if entry.type == PAGE),
            key=lambda entry: entry.id,
        )
        return [self._navigation_row(entry) for entry in pages]

    def _navigation_row(self, entry: IndexEntry) -> dict[str, str]:
        return {
            "id": entry.id,
            "name": _config_text(entry, "name") or entry.id,
            "description": _config_text(entry, "description") or EMPTY_CELL,
            "compiled": _format_compile_time(entry.compilation.time),
            "link": self._relative_link(Path(entry.compilation.path), entry.name),
        }

    def _write_navigation(self, index: BuildIndex) -> None:
        rows = []
        for row in self.navigation_rows(index):
            values = {key: html.escape(value) for key, value in row.items()}
            rows.append(
                f'<tr><td><a href="{values["link"]}" target="_blank">'
                f'{values["name"]} (ID: {values["id"]})</a><br />{values["description"]}</td>'
                f'<td>Compiled: {values["compiled"]}</td></tr>'
            )
        document = (
            f"<!DOCTYPE html><html><head><style>{_NAVIGATION_STYLE}</style></head>"
            f"<body><table>{''.join(rows)}</table></body></html>"
        )
        try:
            write_text(self._root / NAVIGATION_FILENAME, document)
        except BuildError as exc:
            raise exc.with_context("Compiling pages of the navigation map")

    def _relative_link(self, output: Path, name: str) -> str:
        try:
            relative = output.relative_to(self._root).as_posix()
        except ValueError:
            return (output / f"{name}.html").as_posix()
        return f"./{relative}/{name}.html"

    def _policy(self) -> FreshnessPolicy:
        return FreshnessPolicy(compression=self._config.compression, anchors=self._config.anchors)

    def _settings(self) -> AssemblySettings:
        return AssemblySettings(
            output_root=self._root,
            pages_source=self._paths.pages_source,
            blocks_source=self._paths.blocks_source,
            attachable_files=self._paths.attachable_files,
            anchor_css=self._config.anchor_css,
            anchor_js=self._config.anchor_js,
            compression=self._config.compression,
            ignore=self._config.ignore,
        )

    def _prepare_sources(self) -> _Paths:
        created: list[str] = []
        resolved: dict[str, Path] = {}
        for field_name, label in _SOURCE_LABELS:
            path = Path(getattr(self._config, field_name)).expanduser()
            if not path.is_absolute():
                path = self._root / path
            if not path.is_dir():
                ensure_dir(path)
                created.append(f'Created directory for {label} "{path}"')
            resolved[field_name] = path.resolve()
        return _Paths(
            pages_source=resolved["sources_pages"],
            blocks_source=resolved["sources_blocks"],
            attachable_files=resolved["attachable_files"],
            created=created,
        )

    def _log(
        self,
        action: str,
        target: str,
        *,
        ok: bool = True,
        level: str = LEVEL_INFO,
        message: str = "",
        metadata: dict[str, object] | None = None,
    ) -> None:
        self._logger.append(
            BuildEvent(
                timestamp=utc_timestamp(),
                bundle=self.name,
                action=action,
                target=target,
                ok=ok,
                level=level,
                message=message,
                metadata=metadata or {},
            )
        )


def _config_text(entry: IndexEntry, key: str) -> str:
    value = entry.config.get(key)
    return value if isinstance(value, str) else ""


def _format_compile_time(value: str) -> str:
    if not value:
        return EMPTY_CELL
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return EMPTY_CELL
    return moment.strftime(NAVIGATION_DATE_FORMAT)
