"""Pragmatic stylesheet model: parse, merge and serialize CSS without a full AST."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, TypeAlias

Declarations: TypeAlias = dict[str, str | list[str]]

_COMMENT: Final[re.Pattern[str]] = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")
_STATEMENT: Final[re.Pattern[str]] = re.compile(r"@(import|charset)\b\s*([^;{}]*);", re.IGNORECASE)
_PROPERTY: Final[re.Pattern[str]] = re.compile(r"^[\w-]+$")
_FONT_FACE_KEY: Final[re.Pattern[str]] = re.compile(r"^(@font-face)#[0-9a-f]{40}$", re.IGNORECASE)

CHARSET_KEY = "@charset"


@dataclass(slots=True)
class StyleSheetIndex:
    """Three ordered buckets emitted top, main, bottom.

    ``top`` holds ``@charset`` (string value), ``@import`` statements (None value) and
    ``@font-face`` groups keyed by a content hash. ``main`` maps selectors to their
    declarations, or to a nested index for bodies that contain rule blocks. ``bottom``
    holds the remaining at-rule groups keyed by their full prelude.
    """

    top: dict[str, str | Declarations | None] = field(default_factory=dict)
    main: dict[str, Declarations | StyleSheetIndex] = field(default_factory=dict)
    bottom: dict[str, Declarations | StyleSheetIndex] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.top or self.main or self.bottom)


def parse_stylesheet(text: str) -> StyleSheetIndex | None:
    """Parse stylesheet text; returns None when nothing usable was found."""
    index = _parse_source(_COMMENT.sub("", text))
    if index.is_empty():
        return None
    return index


def merge_indexes(first: StyleSheetIndex, second: StyleSheetIndex) -> StyleSheetIndex:
    """Return a new index with ``second`` merged over ``first``."""
    return StyleSheetIndex(
        top=_merge_bucket(first.top, second.top),
        main=_merge_bucket(first.main, second.main),
        bottom=_merge_bucket(first.bottom, second.bottom),
    )


def build_stylesheet(index: StyleSheetIndex | None) -> str:
    """Serialize an index as compact CSS."""
    if index is None:
        return ""
    parts: list[str] = []
    charset = index.top.get(CHARSET_KEY)
    if isinstance(charset, str):
        parts.append(f"{CHARSET_KEY} {charset};")
    for key, value in index.top.items():
        if key == CHARSET_KEY:
            continue
        parts.append(_emit_rule(key, value))
    for key, body in index.main.items():
        parts.append(_emit_rule(key, body))
    for key, body in index.bottom.items():
        parts.append(_emit_rule(key, body))
    return "".join(parts)


def compile_stylesheets(texts: Sequence[str], *, compression: bool) -> str:
    """Combine stylesheets in order: concatenated as-is, or parsed, merged and rebuilt."""
    if not compression:
        return "\n".join(texts)
    merged: StyleSheetIndex | None = None
    for text in texts:
        parsed = parse_stylesheet(text)
        if parsed is None:
            continue
        merged = parsed if merged is None else merge_indexes(merged, parsed)
    return build_stylesheet(merged)


def _parse_source(source: str) -> StyleSheetIndex:
    index = StyleSheetIndex()
    blocks, trailing = _split_blocks(source)
    for prelude, body in blocks:
        selector = _collapse(_take_statements(prelude, index).rsplit(";", 1)[-1])
        if not selector:
            continue
        parsed = _parse_body(body)
        if parsed is None:
            continue
        _store_rule(index, selector, parsed)
    _take_statements(trailing, index)
    return index


def _parse_body(body: str) -> Declarations | StyleSheetIndex | None:
    blocks, _ = _split_blocks(body)
    if blocks:
        nested = _parse_source(body)
        if not nested.is_empty():
            return nested
    declarations = _parse_declarations(body)
    return declarations or None


def _store_rule(
    index: StyleSheetIndex, selector: str, parsed: Declarations | StyleSheetIndex
) -> None:
    if selector.startswith("@"):
        if selector.lower().startswith("@font-face") and isinstance(parsed, dict):
            digest = hashlib.sha1(_emit_declarations(parsed).encode("utf-8")).hexdigest()
            index.top[f"{selector}#{digest}"] = parsed
            return
        bucket = index.bottom
    else:
        bucket = index.main
    current = bucket.get(selector)
    bucket[selector] = parsed if current is None else _merge_value(current, parsed)


def _take_statements(text: str, index: StyleSheetIndex) -> str:
    """Move ``@import``/``@charset`` statements into ``index`` and return the rest."""

    def register(match: re.Match[str]) -> str:
        keyword = match.group(1).lower()
        value = _collapse(match.group(2))
        if keyword == "charset":
            index.top[CHARSET_KEY] = value
        else:
            index.top[f"@import {value}"] = None
        return ""

    return _STATEMENT.sub(register, text)


def _parse_declarations(body: str) -> Declarations:
    declarations: Declarations = {}
    for chunk in _split_top_level(body, ";"):
        name, separator, raw_value = chunk.partition(":")
        name = name.strip()
        value = _collapse(raw_value)
        if not separator or not value or not _PROPERTY.match(name):
            continue
        current = declarations.get(name)
        if current is None:
            declarations[name] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            declarations[name] = [current, value]
    return declarations


def _split_blocks(source: str) -> tuple[list[tuple[str, str]], str]:
    """Return top-level ``(prelude, body)`` pairs and the text after the last block."""
    blocks: list[tuple[str, str]] = []
    depth = 0
    segment_start = 0
    body_start = 0
    prelude = ""
    for position, char in _unquoted(source):
        if char == "{":
            if depth == 0:
                prelude = source[segment_start:position]
                body_start = position + 1
            depth += 1
        elif char == "}":
            if depth == 0:
                segment_start = position + 1
                continue
            depth -= 1
            if depth == 0:
                blocks.append((prelude, source[body_start:position]))
                segment_start = position + 1
    return blocks, source[segment_start:]


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split on ``separator`` outside quotes and parentheses."""
    chunks: list[str] = []
    depth = 0
    start = 0
    for position, char in _unquoted(text):
        if char == "(":
            depth += 1
        elif char == ")" and depth:
            depth -= 1
        elif char == separator and depth == 0:
            chunks.append(text[start:position])
            start = position + 1
    chunks.append(text[start:])
    return chunks


def _unquoted(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(position, char)`` for characters outside string literals."""
    quote = ""
    position = 0
    length = len(text)
    while position < length:
        char = text[position]
        if quote:
            if char == "\\":
                position += 2
                continue
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        else:
            yield position, char
        position += 1


def _merge_bucket(first: dict[str, Any], second: dict[str, Any]) -> dict[str, Any]:
    merged = {key: _copy_value(value) for key, value in first.items()}
    for key, value in second.items():
        if key in merged and merged[key] is not None:
            merged[key] = _merge_value(merged[key], value)
        else:
            merged[key] = _copy_value(value)
    return merged


def _merge_value(current: Any, incoming: Any) -> Any:
    if isinstance(current, StyleSheetIndex) and isinstance(incoming, StyleSheetIndex):
        return merge_indexes(current, incoming)
    if isinstance(current, dict) and isinstance(incoming, dict):
        return _merge_declarations(current, incoming)
    return _copy_value(incoming)


def _merge_declarations(first: Declarations, second: Declarations) -> Declarations:
    merged: Declarations = {name: _copy_value(value) for name, value in first.items()}
    for name, value in second.items():
        current = merged.get(name)
        if isinstance(current, list) and isinstance(value, list):
            current.extend(item for item in value if item not in current)
        else:
            merged[name] = _copy_value(value)
    return merged


def _copy_value(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return {key: _copy_value(item) for key, item in value.items()}
    if isinstance(value, StyleSheetIndex):
        return merge_indexes(StyleSheetIndex(), value)
    return value


def _emit_rule(key: str, value: object) -> str:
    if value is None:
        return f"{key};"
    if isinstance(value, str):
        return f"{key}:{value};"
    selector = _display_key(key)
    if isinstance(value, StyleSheetIndex):
        return f"{selector}{{{build_stylesheet(value)}}}"
    return f"{selector}{{{_emit_declarations(value)}}}"


def _emit_declarations(declarations: Declarations) -> str:
    parts: list[str] = []
    for name, value in declarations.items():
        values = value if isinstance(value, list) else [value]
        parts.extend(f"{name}:{item};" for item in values)
    return "".join(parts)


def _display_key(key: str) -> str:
    match = _FONT_FACE_KEY.match(key)
    if match:
        return match.group(1)
    return key


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()
