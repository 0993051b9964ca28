"""Quote-aware JavaScript comment and whitespace stripping."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Final

from blockbuild.errors import ScriptMinifyError

_BLOCK_COMMENT: Final[re.Pattern[str]] = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT: Final[re.Pattern[str]] = re.compile(r"//[^\n\r]*")
_STRING_LITERAL: Final[re.Pattern[str]] = re.compile(
    r"""(?<!\\)(["'])(?:\\.|(?!\1)[^\\])*\1""", re.DOTALL
)
_PLACEHOLDER: Final[re.Pattern[str]] = re.compile(r"sb#(\d+)#")
_QUOTED_LINE: Final[re.Pattern[str]] = re.compile(r"^.*[\"'].*$", re.MULTILINE)
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")
_IDENTIFIER_CHAR: Final[re.Pattern[str]] = re.compile(r"[\w$]")


def minify_script(text: str) -> str:
    """Strip comments and whitespace while keeping string literals intact."""
    source = _BLOCK_COMMENT.sub("", text)
    literals: list[str] = []

    def stash(match: re.Match[str]) -> str:
        literals.append(match.group(0))
        return f"sb#{len(literals) - 1}#"

    source = _STRING_LITERAL.sub(stash, source)
    source = _LINE_COMMENT.sub("", source)

    unmatched = _QUOTED_LINE.search(source)
    if unmatched is not None:
        line = _restore(unmatched.group(0), literals).strip()
        raise ScriptMinifyError(f'There are unmatched quotes in line "{line}"')

    source = _WHITESPACE.sub(_keep_separator, source)
    return _restore(source, literals)


def compile_scripts(sources: Sequence[tuple[str, str]], *, compression: bool) -> str:
    """Combine ``(origin, text)`` scripts in order, minifying each when compressing."""
    if not compression:
        return "\n".join(text for _, text in sources)
    output: list[str] = []
    for origin, text in sources:
        try:
            output.append(minify_script(text))
        except ScriptMinifyError as exc:
            raise exc.with_context(f'Compressing javascript file "{origin}"') from None
    return "".join(output)


def _keep_separator(match: re.Match[str]) -> str:
    """Drop a whitespace run unless removing it would join two tokens."""
    start, end = match.span()
    text = match.string
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    if not before or not after:
        return ""
    if _IDENTIFIER_CHAR.match(before) and _IDENTIFIER_CHAR.match(after):
        return "\n" if "\n" in match.group(0) else " "
    if before == after and before in "+-":
        return " "
    return ""


def _restore(text: str, literals: list[str]) -> str:
    def literal(match: re.Match[str]) -> str:
        position = int(match.group(1))
        if position >= len(literals):
            return match.group(0)
        return _WHITESPACE.sub(" ", literals[position])

    return _PLACEHOLDER.sub(literal, text)
