"""
CLI command for topology export.

Commands:
    intmap topology export <topology.yaml>                  - Export as JSON
    intmap topology export <topology.yaml> --format mermaid - Export as Mermaid
    intmap topology export <topology.yaml> --format dot     - Export as DOT
    intmap topology export --demo                           - Demo hospital map
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from intmap.cli.ux import console, error
from intmap.core.errors import ExitCode, ValidationError
from intmap.topology.demo import example_topology
from intmap.topology.loader import load_topology
from intmap.topology.models import Topology
from intmap.topology.serializers import (
    serialize_dot,
    serialize_json,
    serialize_mermaid,
)

SERIALIZERS = {
    "json": serialize_json,
    "mermaid": serialize_mermaid,
    "dot": serialize_dot,
}


def load_source(topology_file: str | None, demo: bool) -> Topology:
    """The topology named on the command line, or the demo map."""
    if demo:
        return example_topology()
    if topology_file is None:
        raise ValidationError("Topology file is required (or use --demo)")
    return load_topology(topology_file)


def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "topology_file",
        nargs="?",
        help="Path to a topology YAML or JSON file",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use the example hospital integration map",
    )


def topology_export_command(
    topology_file: str | None = None,
    output_format: str = "json",
    output_file: Optional[str] = None,
    demo: bool = False,
) -> int:
    """
    Export a topology as text.

    Args:
        topology_file: Path to a topology YAML/JSON file
        output_format: Output format (json, mermaid, dot)
        output_file: Optional file path for output
        demo: If True, use demo data

    Returns:
        Exit code (0 on success)
    """
    serializer = SERIALIZERS.get(output_format)
    if serializer is None:
        error(f"Unknown format: {output_format}")
        return ExitCode.VALIDATION_ERROR

    output = serializer(load_source(topology_file, demo))

    if output_file:
        Path(output_file).write_text(output + "\n", encoding="utf-8")
        console.print(f"[success]Wrote {output_format} output to {output_file}[/success]")
    else:
        # Machine-readable; rich would treat brackets as markup
        print(output)

    return ExitCode.SUCCESS


def register_topology_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register topology subcommand parser with export sub-subcommand."""
    topology_parser = subparsers.add_parser(
        "topology",
        help="Topology file commands",
    )
    topology_subparsers = topology_parser.add_subparsers(
        dest="topology_command",
        metavar="subcommand",
    )

    export_parser = topology_subparsers.add_parser(
        "export",
        help="Export the topology as JSON, Mermaid or DOT",
    )
    add_source_arguments(export_parser)
    export_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=sorted(SERIALIZERS),
        default="json",
        help="Output format (default: json)",
    )
    export_parser.add_argument(
        "--output",
        "-o",
        dest="output_file",
        help="Write output to file instead of stdout",
    )


def handle_topology_command(args: argparse.Namespace) -> int:
    """Handle topology command from CLI args."""
    if getattr(args, "topology_command", None) != "export":
        error("Usage: intmap topology export [options]")
        return ExitCode.VALIDATION_ERROR

    return topology_export_command(
        topology_file=getattr(args, "topology_file", None),
        output_format=getattr(args, "output_format", "json"),
        output_file=getattr(args, "output_file", None),
        demo=getattr(args, "demo", False),
    )
