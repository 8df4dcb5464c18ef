"""CLI entry point — ``defilens serve`` and ``defilens scan``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from defilens import __version__
from defilens.analysis.pipeline import PassResult, run_validation_pass
from defilens.config import Settings
from defilens.constants import Severity
from defilens.logging_config import set_level, setup_logging
from defilens.session import SessionStore


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"defilens {__version__}")
        return

    if args.command == "serve":
        _run_serve(args)
    elif args.command == "scan":
        _run_scan(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="defilens",
        description=(
            "Language server that validates and annotates "
            "Ethereum addresses in plain text."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser(
        "serve",
        help="Start the language server",
    )
    serve.add_argument(
        "--tcp",
        action="store_true",
        help="Listen on TCP instead of stdio",
    )
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address for TCP (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=2087,
        help="Port for TCP (default: 2087)",
    )

    scan = sub.add_parser(
        "scan",
        help="Print the diagnostics for one file",
    )
    scan.add_argument(
        "path",
        type=str,
        help="File to scan",
    )
    scan.add_argument(
        "--format",
        "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    scan.add_argument(
        "--max-problems",
        type=int,
        default=None,
        help=(
            "Diagnostic cap "
            "(default: from settings)"
        ),
    )
    scan.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def _run_serve(args: argparse.Namespace) -> None:
    """Start the language server on stdio or TCP."""
    from defilens.server import create_server

    settings = Settings()
    setup_logging(settings.log_level)
    server = create_server(settings)
    if args.tcp:
        server.start_tcp(args.host, args.port)
    else:
        server.start_io()


def _run_scan(args: argparse.Namespace) -> None:
    """Execute the scan command."""
    path = Path(args.path)
    if not path.is_file():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)
    if args.max_problems is not None and args.max_problems < 0:
        print("Error: --max-problems must be >= 0", file=sys.stderr)
        sys.exit(2)

    settings = Settings()
    setup_logging(settings.log_level)
    if args.verbose:
        set_level("DEBUG")

    text = path.read_text(encoding="utf-8")
    result = asyncio.run(_scan(text, settings, args.max_problems))

    if args.format == "json":
        print(json.dumps(_as_records(result), indent=2))
    else:
        for line in _as_lines(str(path), result):
            print(line)

    if any(d.severity == Severity.ERROR for d in result.diagnostics):
        sys.exit(1)


async def _scan(
    text: str, settings: Settings, max_problems: int | None
) -> PassResult:
    document = settings.default_document_settings()
    if max_problems is not None:
        document = document.model_copy(
            update={"max_number_of_problems": max_problems}
        )
    session = SessionStore(settings)
    try:
        backends = session.backends_for(document)
        return await run_validation_pass(text, document, backends.resolver)
    finally:
        await session.aclose()


def _as_records(result: PassResult) -> list[dict[str, object]]:
    return [
        {
            "line": d.range.start.line + 1,
            "character": d.range.start.character + 1,
            "severity": str(d.severity),
            "message": d.message,
            "code": d.code,
        }
        for d in result.diagnostics
    ]


def _as_lines(path: str, result: PassResult) -> list[str]:
    return [
        f"{path}:{d.range.start.line + 1}:{d.range.start.character + 1}:"
        f" {d.severity}: {d.message} [{d.code}]"
        for d in result.diagnostics
    ]


if __name__ == "__main__":
    main()
