"""Command-line entrypoint for managing and compiling bundles."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TextIO

from blockbuild.bundle import Bundle, CompileReport
from blockbuild.errors import BuildError, ConfigError
from blockbuild.fs import dump_json, read_json_object
from blockbuild.index.models import BLOCK, PAGE
from blockbuild.logging.audit import JsonlBuildLogger
from blockbuild.registry import BundleRegistry, resolve_registry_path


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for bundle commands."""
    parser = argparse.ArgumentParser(prog="blockbuild")
    parser.add_argument("--registry", required=False, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="create and register a bundle")
    create.add_argument("name")
    create.add_argument("--directory", required=False, default=".")
    create.add_argument("--config", required=False, default=None)
    create.add_argument("--sources-pages", required=False, default=None)
    create.add_argument("--sources-blocks", required=False, default=None)
    create.add_argument("--attachable-files", required=False, default=None)
    create.add_argument("--anchor-css", required=False, default=None)
    create.add_argument("--anchor-js", required=False, default=None)
    create.add_argument("--compression", choices=("true", "false"), required=False, default=None)
    create.add_argument("--page", action="append", dest="pages", default=None)
    create.add_argument("--ignore", action="append", default=None)

    import_parser = commands.add_parser("import", help="register an existing bundle")
    import_parser.add_argument("name")
    import_parser.add_argument("directory")

    remove = commands.add_parser("remove", help="unregister a bundle")
    remove.add_argument("name")

    commands.add_parser("list", help="list registered bundles")

    compile_parser = commands.add_parser("compile", help="compile stale pages")
    compile_parser.add_argument("name")
    compile_parser.add_argument("--reset", action="store_true")
    compile_parser.add_argument("--clear", action="store_true")

    reset = commands.add_parser("reset", help="reset the bundle index")
    reset.add_argument("name")

    clear = commands.add_parser("clear", help="delete compiled output")
    clear.add_argument("name")

    info = commands.add_parser("info", help="show a compiled entry")
    info.add_argument("name")
    target = info.add_mutually_exclusive_group(required=True)
    target.add_argument("--page", default=None)
    target.add_argument("--block", default=None)
    info.add_argument("--field", action="append", dest="fields", default=None)

    for command in ("pages", "ignore"):
        maintenance = commands.add_parser(command, help=f"show or edit the {command} list")
        maintenance.add_argument("name")
        maintenance.add_argument("--add", action="append", default=None)
        maintenance.add_argument("--remove", action="append", default=None)

    log = commands.add_parser("log", help="show recent build log events")
    log.add_argument("name")
    log.add_argument("--since", required=False, default=None)
    log.add_argument("--limit", type=int, required=False, default=50)
    log.add_argument("--action", required=False, default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the ``blockbuild`` command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        registry = BundleRegistry.load(resolve_registry_path(args.registry))
        return _COMMANDS[args.command](args, registry, sys.stdout)
    except BuildError as exc:
        _report("Error", exc.render())
        return 1


def _create(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    payload = _create_payload(args)
    bundle = registry.create(args.name, Path(args.directory), payload)
    _report_notices(bundle.notices)
    print(f'Bundle "{args.name}" created in "{bundle.root}"', file=out)
    return 0


def _import(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = registry.import_bundle(args.name, Path(args.directory))
    _report_notices(bundle.notices)
    print(f'Bundle "{args.name}" imported from "{bundle.root}"', file=out)
    return 0


def _remove(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    if registry.remove(args.name):
        print(f'Bundle "{args.name}" removed', file=out)
    else:
        _report("Warning", f'Bundle "{args.name}" not found')
    return 0


def _list(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    for name, location in registry.items().items():
        print(f"{name}\t{location}", file=out)
    return 0


def _compile(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = _open(registry, args.name)
    if args.reset:
        bundle.reset_index()
    if args.clear:
        bundle.clear_compilation()
    report = bundle.compile()
    _print_report(report, out)
    return 0


def _reset(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    _open(registry, args.name).reset_index()
    print(f'Index of bundle "{args.name}" reset', file=out)
    return 0


def _clear(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    _open(registry, args.name).clear_compilation()
    print(f'Compiled output of bundle "{args.name}" cleared', file=out)
    return 0


def _info(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = _open(registry, args.name)
    kind, identifier = (PAGE, args.page) if args.page is not None else (BLOCK, args.block)
    payload = bundle.get_info(kind, identifier, tuple(args.fields or ()))
    print(dump_json(payload), file=out)
    return 0


def _pages(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = _open(registry, args.name)
    config = bundle.update_config(add_pages=args.add or (), remove_pages=args.remove or ())
    for page in config.pages:
        print(page, file=out)
    return 0


def _ignore(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = _open(registry, args.name)
    config = bundle.update_config(add_ignore=args.add or (), remove_ignore=args.remove or ())
    for pattern in config.ignore:
        print(pattern, file=out)
    return 0


def _log(args: argparse.Namespace, registry: BundleRegistry, out: TextIO) -> int:
    bundle = _open(registry, args.name)
    for record in JsonlBuildLogger(bundle.log_path).read(
        since=args.since, limit=args.limit, action=args.action
    ):
        print(json.dumps(record, sort_keys=True), file=out)
    return 0


_COMMANDS: dict[str, Callable[[argparse.Namespace, BundleRegistry, TextIO], int]] = {
    "create": _create,
    "import": _import,
    "remove": _remove,
    "list": _list,
    "compile": _compile,
    "reset": _reset,
    "clear": _clear,
    "info": _info,
    "pages": _pages,
    "ignore": _ignore,
    "log": _log,
}


def _create_payload(args: argparse.Namespace) -> dict[str, object]:
    payload: dict[str, object] = {}
    if args.config is not None:
        path = Path(args.config).expanduser()
        loaded = read_json_object(path)
        if loaded is None:
            raise ConfigError(f'Bundle configuration "{path}" must be a JSON object')
        payload.update(loaded)
    options: dict[str, object | None] = {
        "sources_pages": args.sources_pages,
        "sources_blocks": args.sources_blocks,
        "attachable_files": args.attachable_files,
        "anchor_css": args.anchor_css,
        "anchor_js": args.anchor_js,
        "pages": args.pages,
        "ignore": args.ignore,
    }
    if args.compression is not None:
        options["compression"] = args.compression == "true"
    payload.update({key: value for key, value in options.items() if value is not None})
    return payload


def _open(registry: BundleRegistry, name: str) -> Bundle:
    bundle = registry.get(name)
    _report_notices(bundle.notices)
    return bundle


def _print_report(report: CompileReport, out: TextIO) -> None:
    for page in report.compiled:
        print(f'   Page "{page}" compiled', file=out)
    for warning in report.warnings:
        _report("Warning", warning)
    print(
        f"Compiled {len(report.compiled)} page(s), {len(report.skipped)} up to date "
        f"in {report.duration_ms} ms",
        file=out,
    )


def _report_notices(notices: tuple[str, ...]) -> None:
    for notice in notices:
        _report("Notice", notice)


def _report(level: str, message: str) -> None:
    print(f"{level}: {message}", file=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
