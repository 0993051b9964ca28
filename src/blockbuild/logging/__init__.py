"""Structured logging utilities."""

from .audit import BuildEvent, JsonlBuildLogger, format_timestamp, utc_timestamp

__all__ = ["BuildEvent", "JsonlBuildLogger", "format_timestamp", "utc_timestamp"]
