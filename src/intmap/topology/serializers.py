"""
Topology serializers: JSON, Mermaid, and DOT output formats.

Pure functions that convert a Topology snapshot to string output. The two
legs of a bidirectional pair are emitted as one double-headed edge when they
share quality and volume.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Iterator

from intmap.palette import quality_color
from intmap.topology.models import Direction, Quality

if TYPE_CHECKING:
    from intmap.topology.models import Connection, Topology


def serialize_json(topology: Topology) -> str:
    """Serialize topology as JSON."""
    return json.dumps(topology.to_dict(), indent=2)


def _merged_edges(topology: Topology) -> Iterator[tuple[Connection, bool]]:
    """Yield ``(connection, both_ways)`` with matching bidirectional legs merged."""
    emitted: set[tuple[str, str]] = set()
    for conn in topology.connections:
        if (conn.source, conn.target) in emitted:
            continue
        reverse = topology.get_connection(conn.target, conn.source)
        both_ways = (
            conn.direction is Direction.BIDIRECTIONAL
            and reverse is not None
            and reverse.direction is Direction.BIDIRECTIONAL
            and reverse.quality == conn.quality
            and reverse.effective_volume == conn.effective_volume
        )
        emitted.add((conn.source, conn.target))
        if both_ways:
            emitted.add((conn.target, conn.source))
        yield conn, both_ways


def _volume_label(conn: Connection) -> str:
    return f"{conn.effective_volume:g}"


def serialize_mermaid(topology: Topology) -> str:
    """
    Serialize topology as Mermaid flowchart.

    Uses graph LR layout with volume labels on edges and linkStyle
    colours per integration quality.
    """
    lines: list[str] = ["graph LR"]

    for system in topology.systems:
        lines.append(f'    {_mermaid_id(system.id)}["{system.name}"]')

    lines.append("")

    link_styles: list[str] = []
    for index, (conn, both_ways) in enumerate(_merged_edges(topology)):
        src = _mermaid_id(conn.source)
        tgt = _mermaid_id(conn.target)
        arrow = "<-->" if both_ways else "-->"
        lines.append(f"    {src} {arrow}|{_volume_label(conn)}| {tgt}")
        color = quality_color(conn.quality)
        link_styles.append(f"    linkStyle {index} stroke:{color},stroke-width:2px")

    if link_styles:
        lines.append("")
        lines.extend(link_styles)

    return "\n".join(lines)


def serialize_dot(topology: Topology) -> str:
    """
    Serialize topology as Graphviz DOT digraph.

    Edge colour follows quality, pen width grows with volume, and merged
    bidirectional pairs use ``dir=both``.
    """
    lines: list[str] = [
        "digraph integrations {",
        "    rankdir=LR;",
        '    node [shape=box, style="rounded,filled", fillcolor="#f0f9ff", '
        'color="#3b82f6", fontname="sans-serif"];',
        '    edge [fontname="sans-serif", fontsize=10];',
        "",
    ]

    for system in topology.systems:
        lines.append(f'    {_dot_id(system.id)} [label="{_dot_escape(system.name)}"];')

    lines.append("")

    max_volume = max((c.effective_volume for c in topology.connections), default=0) or 1
    for conn, both_ways in _merged_edges(topology):
        attrs = [
            f'label="{_volume_label(conn)}"',
            f'color="{quality_color(conn.quality)}"',
            f"penwidth={1 + 3 * conn.effective_volume / max_volume:.2f}",
        ]
        if both_ways:
            attrs.append("dir=both")
        if conn.quality is Quality.MANUAL:
            attrs.append("style=dashed")
        lines.append(f"    {_dot_id(conn.source)} -> {_dot_id(conn.target)} [{', '.join(attrs)}];")

    lines.append("}")

    return "\n".join(lines)


def _mermaid_id(system_id: str) -> str:
    """Convert system id to valid Mermaid node ID."""
    return "s_" + re.sub(r"[^a-zA-Z0-9]", "_", system_id)


def _dot_id(system_id: str) -> str:
    """Convert system id to valid DOT node ID."""
    return "s_" + re.sub(r"[^a-zA-Z0-9]", "_", system_id)


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
