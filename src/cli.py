"""Command-line interface for archguard."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pipeline.run import run_all, run_connections, run_module, run_patterns
from report.render import render_text
from rules.config import ConfigError, load_config
from rules.errors import FatalLoadError

EXIT_FATAL = 2


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Repository root (default: .)",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format (default: text)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file instead of stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )


def _add_schema_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--schema",
        default=None,
        help="Rule schema document (default: config 'schema' or archguard.schema.*)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="archguard")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check", help="Run pattern and connection checks"
    )
    _add_common_options(check_parser)
    _add_schema_option(check_parser)

    patterns_parser = subparsers.add_parser(
        "patterns", help="Scan files against the rule schema"
    )
    _add_common_options(patterns_parser)
    _add_schema_option(patterns_parser)

    connections_parser = subparsers.add_parser(
        "connections", help="Validate module and connection contracts"
    )
    _add_common_options(connections_parser)

    module_parser = subparsers.add_parser("module", help="Validate a single module")
    module_parser.add_argument("name", help="Module name (kebab-case)")
    _add_common_options(module_parser)

    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbosity > 1 else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_schema(schema: str | None) -> Path | None:
    if schema is None:
        return None
    return Path(schema).expanduser().resolve()


def _emit(payload: str, output: str | None) -> None:
    if output is None:
        sys.stdout.write(payload)
        return
    Path(output).expanduser().write_text(payload, encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    root = Path(args.root).expanduser().resolve()

    try:
        config = load_config(root)
        if args.command == "check":
            report = run_all(root, config, schema_path=_resolve_schema(args.schema))
        elif args.command == "patterns":
            report = run_patterns(
                root, config, schema_path=_resolve_schema(args.schema)
            )
        elif args.command == "connections":
            report = run_connections(root, config)
        elif args.command == "module":
            report = run_module(root, config, args.name)
        else:
            raise AssertionError
    except (ConfigError, FatalLoadError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_FATAL

    if args.format == "json":
        payload = report.to_json().decode("utf-8") + "\n"
    else:
        payload = render_text(report)
    _emit(payload, args.output)
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
