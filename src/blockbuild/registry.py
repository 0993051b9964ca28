"""Named bundle registry persisted as a JSON ``{name: path}`` table."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from blockbuild.bundle import CONFIG_FILENAME, Bundle
from blockbuild.errors import BuildError, RegistryError
from blockbuild.fs import read_json_object, write_json, write_text

REGISTRY_ENV_VAR = "BLOCKBUILD_REGISTRY"
DEFAULT_REGISTRY_PATH = Path("~") / ".blockbuild" / "bundles.json"
BUNDLE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)


def resolve_registry_path(
    explicit: str | None = None, environ: Mapping[str, str] | None = None
) -> Path:
    """Pick the registry file: explicit path, then environment variable, then home default."""
    if explicit:
        return Path(explicit).expanduser()
    env = os.environ if environ is None else environ
    from_env = env.get(REGISTRY_ENV_VAR, "").strip()
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_REGISTRY_PATH.expanduser()


class BundleRegistry:
    """Create, import, remove and look up bundles by name."""

    def __init__(self, path: Path, bundles: dict[str, str] | None = None) -> None:
        self._path = path
        self._bundles: dict[str, str] = dict(bundles or {})

    @classmethod
    def load(cls, path: Path) -> BundleRegistry:
        """Load the registry; a missing or unreadable file starts empty."""
        payload = read_json_object(path)
        if payload is None:
            try:
                write_text(path, "{}")
            except BuildError as exc:
                raise exc.with_context("Initializing bundles manager")
            return cls(path)
        bundles = {
            name: location
            for name, location in payload.items()
            if isinstance(location, str) and BUNDLE_NAME_PATTERN.match(name)
        }
        return cls(path, bundles)

    @property
    def path(self) -> Path:
        return self._path

    def items(self) -> dict[str, str]:
        """Return registered names mapped to bundle directories, ordered by name."""
        return dict(sorted(self._bundles.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._bundles

    def create(self, name: str, directory: Path, payload: dict[str, object]) -> Bundle:
        """Create a bundle in ``directory/name`` and register it."""
        try:
            self._check_new_name(name)
            bundle = Bundle.create(directory / name, payload)
        except BuildError as exc:
            raise exc.with_context("Creating bundle")
        self._bundles[name] = str(bundle.root)
        self._save("Creating bundle")
        return bundle

    def import_bundle(self, name: str, directory: Path) -> Bundle:
        """Register an existing bundle directory under ``name``."""
        root = directory.expanduser().resolve()
        try:
            self._check_new_name(name)
            if not (root / CONFIG_FILENAME).is_file():
                raise RegistryError(f'File not found "{root / CONFIG_FILENAME}"')
            bundle = Bundle.load(root)
        except BuildError as exc:
            raise exc.with_context("Import bundle")
        self._bundles[name] = str(bundle.root)
        self._save("Import bundle")
        return bundle

    def remove(self, name: str) -> bool:
        """Forget ``name``; the bundle directory itself is left on disk."""
        if name not in self._bundles:
            return False
        del self._bundles[name]
        self._save("Removing bundle")
        return True

    def get(self, name: str) -> Bundle:
        """Open a registered bundle."""
        if name not in self._bundles:
            raise RegistryError(f'Bundle "{name}" not found')
        return Bundle.load(Path(self._bundles[name]))

    def _check_new_name(self, name: str) -> None:
        if not BUNDLE_NAME_PATTERN.match(name):
            raise RegistryError(f'Incorrect bundle name "{name}"')
        if name in self._bundles:
            raise RegistryError(f'The "{name}" bundle exists')

    def _save(self, operation: str) -> None:
        try:
            write_json(self._path, self._bundles)
        except BuildError as exc:
            raise exc.with_context(operation)
