"""
Command line tool for module administration.

Commands:
- validate: run a module document through every validation stage
- bootstrap: load bundled and imported modules into the database
- scan: import every document in the import directory
- list: list stored modules
- serve: run the HTTP API
"""

import argparse
import json
import sys
from pathlib import Path

from collectory.modules import (
    ModuleBootstrapError,
    ModuleError,
    ModuleImportService,
    ModuleLoader,
    ModuleQueryService,
    ModuleService,
)
from collectory.observability import setup_logging
from collectory.storage import init_db, session_scope


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a module document without storing it."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    try:
        contract = ModuleLoader().validate_document(path.read_text(encoding="utf-8"), path.name)
    except ModuleError as e:
        print(f"INVALID {e}", file=sys.stderr)
        return 1

    if args.quiet:
        print(f"OK {contract}")
    else:
        print(json.dumps(contract.to_json_dict(), indent=2))
    return 0


def cmd_bootstrap(args: argparse.Namespace) -> int:
    """Load bundled and imported modules."""
    setup_logging()
    init_db()
    try:
        outcomes = ModuleService().load_all_modules()
    except ModuleBootstrapError as e:
        print(f"Bootstrap failed for {len(e.failures)} module(s):", file=sys.stderr)
        for name, error in e.failures:
            print(f"  {name}: {error}", file=sys.stderr)
        return 1

    for outcome in outcomes:
        print(f"{outcome.status.value:<9} {outcome.module_key}")
        for warning in outcome.warnings:
            print(f"  warning: {warning}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Import every document in the import directory."""
    setup_logging()
    init_db()
    result = ModuleImportService().scan_import_dir()
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 1 if result.failed else 0


def cmd_list(args: argparse.Namespace) -> int:
    """List stored modules."""
    init_db()
    with session_scope() as session:
        summaries = ModuleQueryService(session).list_all()

    if not summaries:
        print("No modules stored")
        return 0
    for summary in summaries:
        print(f"{summary.key:<24} {summary.version:<10} {summary.source.value:<9} {summary.name}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("collectory.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="collectory",
        description="Collectory module administration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    validate_parser = subparsers.add_parser("validate", help="Validate a module document")
    validate_parser.add_argument("file", help="Path to the module XML document")
    validate_parser.add_argument("--quiet", "-q", action="store_true", help="Only print OK/INVALID")

    subparsers.add_parser("bootstrap", help="Load bundled and imported modules")
    subparsers.add_parser("scan", help="Import every document in the import directory")
    subparsers.add_parser("list", help="List stored modules")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "validate": cmd_validate,
        "bootstrap": cmd_bootstrap,
        "scan": cmd_scan,
        "list": cmd_list,
        "serve": cmd_serve,
    }
    if not args.command:
        parser.print_help()
        return 1
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
