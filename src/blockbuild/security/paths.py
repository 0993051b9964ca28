"""Path resolution helpers for attachment references."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


class PathBlockedError(Exception):
    """Raised when a referenced path escapes its sandbox directory."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def resolve_sandboxed_path(root: Path, candidate: str) -> Path:
    """Resolve a relative reference against ``root`` without leaving it."""
    base = root.resolve()
    normalized = candidate.replace("\\", "/")

    if not normalized.strip("/"):
        raise PathBlockedError(
            reason="Path is empty.",
            hint="Reference a file such as 'attach/img/logo.png'.",
        )

    if normalized.startswith("/") or WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        raise PathBlockedError(
            reason="Absolute paths are not allowed.",
            hint="Use a path relative to the attachable files directory.",
        )

    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if any(part == ".." for part in parts):
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments from the reference.",
        )

    resolved = (base / Path(*parts)).resolve(strict=False)
    if not resolved.is_relative_to(base):
        raise PathBlockedError(
            reason="Resolved path escapes the attachable files directory.",
            hint="Keep referenced files inside the attachable files directory.",
        )
    return resolved
