from __future__ import annotations

import json
from pathlib import Path

import pytest

from blockbuild.cli import build_arg_parser, main


def _run(registry: Path, *argv: str) -> int:
    return main(["--registry", str(registry), *argv])


def _create_site(tmp_path: Path) -> tuple[Path, Path]:
    registry = tmp_path / "bundles.json"
    exit_code = _run(
        registry,
        "create",
        "site",
        "--directory",
        str(tmp_path),
        "--sources-pages",
        "src/pages",
        "--sources-blocks",
        "src/blocks",
        "--attachable-files",
        "src/attach",
        "--page",
        "home",
    )
    assert exit_code == 0
    root = (tmp_path / "site").resolve()
    page = root / "src" / "pages" / "home"
    page.mkdir(parents=True)
    (page / "home.html").write_text("<body>#css-block#</body>", encoding="utf-8")
    return registry, root


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args([])


def test_info_target_options_are_mutually_exclusive() -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["info", "site", "--page", "a", "--block", "b"])


def test_create_reports_created_source_directories(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _create_site(tmp_path)

    captured = capsys.readouterr()
    assert 'Bundle "site" created in' in captured.out
    assert "Notice: Created directory for source pages" in captured.err


def test_create_merges_config_file_with_options(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "base.json"
    config.write_text(
        json.dumps(
            {
                "sources_pages": "p",
                "sources_blocks": "b",
                "attachable_files": "a",
                "compression": False,
            }
        ),
        encoding="utf-8",
    )

    exit_code = _run(
        tmp_path / "bundles.json",
        "create",
        "site",
        "--directory",
        str(tmp_path),
        "--config",
        str(config),
        "--compression",
        "true",
    )

    assert exit_code == 0
    saved = json.loads((tmp_path / "site" / "config.json").read_text(encoding="utf-8"))
    assert saved["compression"] is True
    assert saved["sources_pages"] == "p"


def test_compile_then_info_and_list(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry, root = _create_site(tmp_path)
    capsys.readouterr()

    assert _run(registry, "compile", "site") == 0
    first = capsys.readouterr().out
    assert '   Page "home" compiled' in first
    assert "Compiled 1 page(s), 0 up to date" in first
    assert (root / "pages" / "home" / "home.html").is_file()

    assert _run(registry, "compile", "site") == 0
    assert "Compiled 0 page(s), 1 up to date" in capsys.readouterr().out

    assert _run(registry, "info", "site", "--page", "home", "--field", "actual") == 0
    assert json.loads(capsys.readouterr().out) == {"actual": True}

    assert _run(registry, "list") == 0
    assert capsys.readouterr().out == f"site\t{root}\n"


def test_info_for_unknown_entry_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry, _ = _create_site(tmp_path)
    capsys.readouterr()

    assert _run(registry, "info", "site", "--block", "ghost") == 1
    assert "compile the bundle" in capsys.readouterr().err


def test_compile_failure_prints_context_chain(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    registry, root = _create_site(tmp_path)
    (root / "src" / "pages" / "home" / "home.html").write_text("#ghost#", encoding="utf-8")
    capsys.readouterr()

    assert _run(registry, "compile", "site") == 1

    err = capsys.readouterr().err
    assert err.startswith('Error: Compilation of page "home" in bundle\n')
    assert 'Compilation of block "ghost"' in err
    assert "Block directory not found" in err


def test_pages_and_ignore_maintenance(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry, root = _create_site(tmp_path)
    capsys.readouterr()

    assert _run(registry, "pages", "site", "--add", "about", "--remove", "home") == 0
    assert capsys.readouterr().out == "about\n"
    assert _run(registry, "ignore", "site", "--add", "*.psd") == 0
    assert capsys.readouterr().out == "*.psd\n"

    saved = json.loads((root / "config.json").read_text(encoding="utf-8"))
    assert saved["pages"] == ["about"]
    assert saved["ignore"] == ["*.psd"]


def test_log_lists_recent_events(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry, _ = _create_site(tmp_path)
    assert _run(registry, "compile", "site") == 0
    capsys.readouterr()

    assert _run(registry, "log", "site", "--action", "compile_page") == 0

    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [(event["action"], event["target"]) for event in events] == [("compile_page", "home")]


def test_remove_unknown_bundle_warns(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path / "bundles.json", "remove", "ghost") == 0

    assert 'Warning: Bundle "ghost" not found' in capsys.readouterr().err


def test_reset_and_clear_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry, root = _create_site(tmp_path)
    assert _run(registry, "compile", "site") == 0

    assert _run(registry, "clear", "site") == 0
    assert list((root / "pages").iterdir()) == []
    assert _run(registry, "reset", "site") == 0
    assert (root / "index.json").read_text(encoding="utf-8") == "{}"
    capsys.readouterr()

    assert _run(registry, "compile", "site", "--reset", "--clear") == 0
    assert '   Page "home" compiled' in capsys.readouterr().out
