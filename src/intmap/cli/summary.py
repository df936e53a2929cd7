"""
CLI command for topology summaries.

Commands:
    intmap summary <topology.yaml>
    intmap summary --demo --only automated
    intmap summary --demo --json
"""

from __future__ import annotations

import argparse
import json
from collections import Counter
from typing import Optional

from intmap.cli.render import add_filter_arguments, filter_from_args
from intmap.cli.topology import add_source_arguments, load_source
from intmap.cli.ux import console, header, print_table, warning
from intmap.core.errors import ExitCode
from intmap.topology.filters import filter_topology
from intmap.topology.models import Quality


def summary_command(
    topology_file: str | None = None,
    only: Optional[str] = None,
    direction: Optional[str] = None,
    as_json: bool = False,
    demo: bool = False,
) -> int:
    topology = load_source(topology_file, demo)
    filtered = filter_topology(topology, filter_from_args(only, direction))
    counters = {
        "total_systems": len(topology.systems),
        "total_connections": len(topology.connections),
        "filtered_connections": len(filtered.connections),
    }

    if as_json:
        print(json.dumps(counters, indent=2))
        return ExitCode.SUCCESS

    header(str(topology.metadata.get("title") or "Integration Map"))
    print_table(
        "Summary",
        ["Metric", "Value"],
        [
            ["Systems", counters["total_systems"]],
            ["Connections", counters["total_connections"]],
            ["Filtered connections", counters["filtered_connections"]],
        ],
    )

    by_quality = Counter(conn.quality for conn in filtered.connections)
    print_table(
        "Connections by quality",
        ["Quality", "Count"],
        [[quality.label, by_quality.get(quality, 0)] for quality in Quality],
    )

    if filtered.connections:
        print_table(
            "Connections",
            ["Source", "Target", "Direction", "Quality", "Volume"],
            [
                [
                    filtered.name_of(conn.source),
                    filtered.name_of(conn.target),
                    conn.direction.value,
                    conn.quality.label,
                    f"{conn.effective_volume:g}",
                ]
                for conn in filtered.connections
            ],
        )
    else:
        console.print("[muted]No connections match the active filter[/muted]")

    dangling = topology.dangling_connections()
    if dangling:
        warning(f"{len(dangling)} connection(s) reference unknown systems")
        return ExitCode.WARNING

    return ExitCode.SUCCESS


def register_summary_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("summary", help="Show topology counters and connections")
    add_source_arguments(parser)
    add_filter_arguments(parser)
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the counters as JSON",
    )


def handle_summary_command(args: argparse.Namespace) -> int:
    return summary_command(
        topology_file=args.topology_file,
        only=args.only,
        direction=args.direction,
        as_json=args.as_json,
        demo=args.demo,
    )
