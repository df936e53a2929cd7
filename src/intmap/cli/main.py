"""
intmap command line.

Commands:
    intmap render     - Render a view and export it as PNG, SVG or PDF
    intmap summary    - Show topology counters and connections
    intmap topology   - Export a topology as JSON, Mermaid or DOT
"""

from __future__ import annotations

import argparse
from typing import Sequence

from intmap import __version__
from intmap.cli.render import handle_render_command, register_render_parser
from intmap.cli.summary import handle_summary_command, register_summary_parser
from intmap.cli.topology import handle_topology_command, register_topology_parser
from intmap.cli.ux import error
from intmap.config.loader import load_settings
from intmap.core.errors import ExitCode, main_with_error_handling
from intmap.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intmap",
        description="Integration map rendering and export",
    )
    parser.add_argument("--version", action="version", version=f"intmap {__version__}")
    parser.add_argument("--config", "-c", help="Path to a YAML config file")
    parser.add_argument("--verbose", action="store_true", help="Log debug events")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit log events as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    register_render_parser(subparsers)
    register_summary_parser(subparsers)
    register_topology_parser(subparsers)
    return parser


@main_with_error_handling()
def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return ExitCode.VALIDATION_ERROR

    settings = load_settings(args.config)
    configure_logging(
        "DEBUG" if args.verbose else settings.log_level,
        json_output=args.json_logs,
    )

    if args.command == "render":
        return handle_render_command(args, settings)
    if args.command == "summary":
        return handle_summary_command(args)
    if args.command == "topology":
        return handle_topology_command(args)

    error(f"Unknown command: {args.command}")
    return ExitCode.VALIDATION_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
