"""Sandboxing primitives for referenced files."""

from .paths import PathBlockedError, resolve_sandboxed_path

__all__ = ["PathBlockedError", "resolve_sandboxed_path"]
