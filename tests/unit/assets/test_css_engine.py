from __future__ import annotations

from blockbuild.assets.css import (
    StyleSheetIndex,
    build_stylesheet,
    compile_stylesheets,
    merge_indexes,
    parse_stylesheet,
)


def _compact(text: str) -> str:
    index = parse_stylesheet(text)
    assert index is not None
    return build_stylesheet(index)


def test_flat_stylesheet_survives_merge_with_itself() -> None:
    source = ".a{display:-webkit-flex;display:flex;color:red;}.b{margin:0 auto;}"
    index = parse_stylesheet(source)
    assert index is not None

    assert build_stylesheet(merge_indexes(index, index)) == source


def test_repeated_properties_accumulate_in_order() -> None:
    index = parse_stylesheet(".box { display: -webkit-box; display: -ms-flexbox; display: flex; }")
    assert index is not None

    assert index.main[".box"] == {"display": ["-webkit-box", "-ms-flexbox", "flex"]}


def test_comments_removed_and_whitespace_collapsed() -> None:
    source = """
    /* heading styles */
    h1 ,  h2 {
        margin :  0
                  auto ;
        font-family: "Open   Sans", sans-serif;
    }
    """

    assert _compact(source) == 'h1 , h2{margin:0 auto;font-family:"Open Sans", sans-serif;}'


def test_statements_are_emitted_first_with_charset_leading() -> None:
    source = '.a{color:red}\n@import url(base.css);\n@charset "utf-8";'

    assert _compact(source) == '@charset "utf-8";@import url(base.css);.a{color:red;}'


def test_at_rule_groups_are_nested_and_emitted_last() -> None:
    source = "@media (max-width: 600px) { .a { color: red } .b { margin: 0 } } .c { padding: 0 }"
    index = parse_stylesheet(source)
    assert index is not None

    nested = index.bottom["@media (max-width: 600px)"]
    assert isinstance(nested, StyleSheetIndex)
    assert list(nested.main) == [".a", ".b"]
    assert build_stylesheet(index) == (
        ".c{padding:0;}@media (max-width: 600px){.a{color:red;}.b{margin:0;}}"
    )


def test_distinct_font_faces_are_kept_apart() -> None:
    source = (
        "@font-face{font-family:Inter;src:url(inter.woff2)}"
        "@font-face{font-family:Mono;src:url(mono.woff2)}"
        ".a{font-family:Inter}"
    )

    assert _compact(source) == (
        "@font-face{font-family:Inter;src:url(inter.woff2);}"
        "@font-face{font-family:Mono;src:url(mono.woff2);}"
        ".a{font-family:Inter;}"
    )


def test_identical_font_faces_collapse_when_merged() -> None:
    face = "@font-face{font-family:Inter;src:url(inter.woff2)}"

    assert compile_stylesheets([face, face], compression=True) == (
        "@font-face{font-family:Inter;src:url(inter.woff2);}"
    )


def test_repeated_selector_in_one_text_is_merged() -> None:
    assert _compact(".a{color:red}.b{margin:0}.a{padding:0;color:blue}") == (
        ".a{color:blue;padding:0;}.b{margin:0;}"
    )


def test_semicolons_inside_urls_and_strings_do_not_split_declarations() -> None:
    source = '.icon{background:url(data:image/png;base64,AAAA);content:"a;b"}'

    assert _compact(source) == '.icon{background:url(data:image/png;base64,AAAA);content:"a;b";}'


def test_braces_inside_strings_do_not_open_blocks() -> None:
    assert _compact('.q::before{content:"{"}.r{color:red}') == (
        '.q::before{content:"{";}.r{color:red;}'
    )


def test_merge_prefers_later_scalars_and_dedupes_lists() -> None:
    merged = compile_stylesheets(
        [
            ".a{color:red;display:-webkit-flex;display:flex}",
            ".a{color:blue;display:flex;display:grid}.b{margin:0}",
        ],
        compression=True,
    )

    assert merged == ".a{color:blue;display:-webkit-flex;display:flex;display:grid;}.b{margin:0;}"


def test_uncompressed_stylesheets_are_concatenated() -> None:
    assert compile_stylesheets([".a { color: red; }", ".b{}"], compression=False) == (
        ".a { color: red; }\n.b{}"
    )


def test_empty_or_declaration_free_text_parses_to_none() -> None:
    assert parse_stylesheet("") is None
    assert parse_stylesheet("/* only a comment */ .empty {}") is None
    assert compile_stylesheets(["/* nothing */"], compression=True) == ""
