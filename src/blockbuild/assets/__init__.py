"""Stylesheet, script and markup processing engines."""

from .css import (
    StyleSheetIndex,
    build_stylesheet,
    compile_stylesheets,
    merge_indexes,
    parse_stylesheet,
)
from .js import compile_scripts, minify_script
from .mixins import apply_mixins

__all__ = [
    "StyleSheetIndex",
    "apply_mixins",
    "build_stylesheet",
    "compile_scripts",
    "compile_stylesheets",
    "merge_indexes",
    "minify_script",
    "parse_stylesheet",
]
