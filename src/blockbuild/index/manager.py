"""Persistent bundle index and freshness checks."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from blockbuild.errors import EntryNotFoundError, SourceError
from blockbuild.fs import read_json_object, write_json, write_text
from blockbuild.index.fingerprint import block_stamp, directory_stamp
from blockbuild.index.models import BLOCK, IndexEntry, entry_key

INDEX_FILENAME = "index.json"


@dataclass(slots=True, frozen=True)
class FreshnessPolicy:
    """Bundle settings an entry must still agree with to be trusted."""

    compression: bool
    anchors: tuple[str, ...]


class BuildIndex:
    """In-memory view of ``index.json`` with a per-run memo of stale keys."""

    def __init__(self, path: Path, entries: dict[str, IndexEntry] | None = None) -> None:
        self._path = path
        self._entries: dict[str, IndexEntry] = dict(entries or {})
        self._irrelevant: set[str] = set()

    @classmethod
    def load(cls, path: Path) -> BuildIndex:
        """Load entries from disk; a missing or unreadable index starts empty."""
        payload = read_json_object(path)
        if payload is None:
            write_text(path, "{}")
            return cls(path)
        entries: dict[str, IndexEntry] = {}
        for key, raw in payload.items():
            entry = IndexEntry.from_dict(raw)
            if entry is None or entry.key != key:
                continue
            entries[key] = entry
        return cls(path, entries)

    @property
    def path(self) -> Path:
        return self._path

    def staging_copy(self) -> BuildIndex:
        """Return a copy to compile into; committed only when every page succeeds."""
        return BuildIndex(self._path, self._entries)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries.keys())

    def entries(self) -> tuple[IndexEntry, ...]:
        return tuple(self._entries.values())

    def get(self, key: str) -> IndexEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: IndexEntry) -> None:
        """Store a freshly compiled entry, replacing any previous one."""
        self._entries[entry.key] = entry

    def reset_memo(self) -> None:
        """Forget stale keys seen this run, including ones recompiled since."""
        self._irrelevant.clear()

    def reset(self) -> None:
        """Drop all entries and persist an empty index."""
        self._entries.clear()
        self._irrelevant.clear()
        write_text(self._path, "{}")

    def save(self) -> None:
        """Persist entries to ``index.json``."""
        write_json(self._path, {key: entry.to_dict() for key, entry in self._entries.items()})

    def is_actual(self, key: str, policy: FreshnessPolicy) -> bool:
        """Return True when ``key`` and its immediate dependencies are still fresh.

        Dependency entries are checked one level deep. Compiling a block unions its
        children's dependency lists into its own, so the list already spans the whole
        subtree.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._irrelevant.add(key)
            return False
        if key in self._irrelevant:
            return False
        if not self._entry_is_current(entry, policy):
            self._irrelevant.add(key)
            return False

        for dependency in entry.dependencies:
            if dependency in policy.anchors:
                continue
            dependency_key = entry_key(BLOCK, dependency)
            if dependency_key in self._irrelevant:
                return False
            dependency_entry = self._entries.get(dependency_key)
            if dependency_entry is None or not self._entry_is_current(dependency_entry, policy):
                self._irrelevant.add(dependency_key)
                return False
        return True

    def info(
        self,
        key: str,
        policy: FreshnessPolicy,
        fields: tuple[str, ...] = (),
    ) -> dict[str, object]:
        """Return selected entry fields; ``actual`` reports freshness."""
        entry = self._entries.get(key)
        if entry is None:
            self._irrelevant.add(key)
            raise EntryNotFoundError(
                f'No compiled entry for "{key}". To obtain information, compile the bundle.'
            )
        payload = entry.to_dict()
        if not fields or "actual" in fields:
            payload["actual"] = self.is_actual(key, policy)
        if not fields:
            return payload
        return {field: payload[field] for field in fields if field in payload}

    @staticmethod
    def _entry_is_current(entry: IndexEntry, policy: FreshnessPolicy) -> bool:
        compilation = entry.compilation
        if compilation.compression != policy.compression:
            return False
        output_path = Path(compilation.path)
        if not output_path.exists():
            return False
        try:
            source_stamp = block_stamp(Path(entry.block_path), Path(entry.template_path))
            output_stamp = directory_stamp(output_path)
        except SourceError:
            return False
        return source_stamp == entry.stamp and output_stamp == compilation.stamp
