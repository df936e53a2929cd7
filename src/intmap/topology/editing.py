"""
Pure edit operations on topology snapshots.

Each function validates the edit and returns a new ``Topology``; the input
snapshot is never modified. This is the single place where a bidirectional
request is expanded into its two directed legs.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from intmap.core.errors import ValidationError
from intmap.topology.models import (
    Connection,
    Direction,
    Quality,
    System,
    Topology,
    parse_direction,
    parse_quality,
    parse_volume,
)

logger = structlog.get_logger()


def next_system_id(topology: Topology) -> str:
    """One more than the largest numeric id in the snapshot."""
    numeric = [int(s.id) for s in topology.systems if s.id.isdigit()]
    return str(max(numeric, default=0) + 1)


def _clean_name(topology: Topology, name: str, exclude_id: str | None = None) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("System name cannot be empty")
    for system in topology.systems:
        if system.id != exclude_id and system.name.lower() == cleaned.lower():
            raise ValidationError(
                "A system with this name already exists", {"name": cleaned}
            )
    return cleaned


def _require_system(topology: Topology, system_id: str) -> System:
    system = topology.get_system(system_id)
    if system is None:
        raise ValidationError("Unknown system", {"system_id": system_id})
    return system


def add_system(
    topology: Topology,
    name: str,
    system_id: str | None = None,
) -> tuple[Topology, System]:
    """Add a system; the id is generated unless given explicitly."""
    cleaned = _clean_name(topology, name)
    new_id = system_id if system_id is not None else next_system_id(topology)
    if topology.get_system(new_id) is not None:
        raise ValidationError("Duplicate system id", {"system_id": new_id})

    system = System(id=new_id, name=cleaned)
    return replace(topology, systems=topology.systems + (system,)), system


def rename_system(topology: Topology, system_id: str, name: str) -> Topology:
    _require_system(topology, system_id)
    cleaned = _clean_name(topology, name, exclude_id=system_id)
    systems = tuple(
        System(id=s.id, name=cleaned) if s.id == system_id else s for s in topology.systems
    )
    return replace(topology, systems=systems)


def remove_system(topology: Topology, system_id: str) -> Topology:
    """Remove a system and every connection that references it."""
    _require_system(topology, system_id)
    systems = tuple(s for s in topology.systems if s.id != system_id)
    connections = tuple(
        c for c in topology.connections if c.source != system_id and c.target != system_id
    )
    pruned = len(topology.connections) - len(connections)
    if pruned:
        logger.debug("connections_pruned", system_id=system_id, count=pruned)
    return replace(topology, systems=systems, connections=connections)


def add_connection(
    topology: Topology,
    source: str,
    target: str,
    direction: Direction | str = Direction.ONE_WAY,
    quality: Quality | str = Quality.AUTOMATED,
    volume: float | None = None,
) -> tuple[Topology, tuple[Connection, ...]]:
    """
    Add a connection between two existing systems.

    Returns:
        The new snapshot and the directed entries created: one for a one-way
        connection, ``(A, B)`` and ``(B, A)`` for a bidirectional one.
    """
    direction = parse_direction(direction)
    quality = parse_quality(quality)
    volume = parse_volume(volume)

    _require_system(topology, source)
    _require_system(topology, target)
    if source == target:
        raise ValidationError("Source and target cannot be the same system", {"system_id": source})

    primary = Connection(
        source=source, target=target, direction=direction, quality=quality, volume=volume
    )
    created: tuple[Connection, ...] = (primary,)
    if direction is Direction.BIDIRECTIONAL:
        created = (primary, primary.reversed())

    for conn in created:
        if topology.has_connection(conn.source, conn.target):
            raise ValidationError(
                "This connection already exists",
                {"source": conn.source, "target": conn.target},
            )

    return replace(topology, connections=topology.connections + created), created


def remove_connection(topology: Topology, source: str, target: str) -> Topology:
    """Remove the directed entry ``(source, target)`` only."""
    if not topology.has_connection(source, target):
        raise ValidationError("Unknown connection", {"source": source, "target": target})
    connections = tuple(
        c for c in topology.connections if not (c.source == source and c.target == target)
    )
    return replace(topology, connections=connections)
