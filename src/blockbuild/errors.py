"""Typed build failures with an ordered chain of operation contexts."""

from __future__ import annotations


class BuildError(Exception):
    """Fatal build failure.

    ``contexts`` lists the operations the failure propagated through, outermost first.
    Only the command-line entry point turns a ``BuildError`` into console output and an
    exit code.
    """

    def __init__(self, message: str, contexts: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.contexts = contexts

    def with_context(self, context: str) -> BuildError:
        """Prepend an outer operation context and return the same error."""
        self.contexts = (context, *self.contexts)
        return self

    def render(self) -> str:
        """Return the context chain followed by the failure message."""
        return "\n".join([*self.contexts, self.message])

    def __str__(self) -> str:
        return self.render()


class ConfigError(BuildError, ValueError):
    """Invalid or missing configuration value."""


class SourceError(BuildError):
    """Missing, unreadable or unwritable source or output file."""


class CyclicDependencyError(SourceError):
    """A block depends on itself through its dependency chain."""


class ScriptMinifyError(SourceError):
    """A script could not be minified safely."""


class EntryNotFoundError(BuildError):
    """Requested index entry has not been compiled yet."""


class RegistryError(BuildError):
    """Named bundle registry failure."""
