"""
Load topology snapshots from YAML or JSON files.

File layout::

    title: Hospital integrations      # optional
    systems:
      - id: "1"
        name: Electronic Health Record (EHR)
    connections:
      - source: "1"
        target: "2"
        direction: bidirectional
        quality: automated
        volume: 100

A bidirectional connection may be listed once or as both legs; either way
the snapshot holds both directed entries.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml

from intmap.core.errors import DataIntegrityError, ValidationError
from intmap.topology.editing import add_connection, add_system
from intmap.topology.models import Connection, Direction, Topology

logger = structlog.get_logger()


def load_topology(path: str | Path) -> Topology:
    """Read a topology file; the format is chosen by extension."""
    path = Path(path)
    if not path.exists():
        raise ValidationError("Topology file not found", {"path": str(path)})

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(f"Could not parse topology file: {e}", {"path": str(path)}) from e

    topology = topology_from_dict(data or {})
    logger.info(
        "topology_loaded",
        path=str(path),
        systems=len(topology.systems),
        connections=len(topology.connections),
    )
    return topology


def topology_from_dict(data: dict[str, Any]) -> Topology:
    """Build a snapshot through the edit operations so every invariant holds."""
    if not isinstance(data, dict):
        raise ValidationError("Topology document must be a mapping")

    metadata: dict[str, Any] = dict(data.get("metadata") or {})
    if data.get("title"):
        metadata["title"] = str(data["title"])
    topology = Topology(metadata=metadata)

    for entry in data.get("systems") or []:
        if isinstance(entry, str):
            topology, _ = add_system(topology, entry)
            continue
        if not isinstance(entry, dict) or "name" not in entry:
            raise ValidationError("System entries need a name", {"system": entry})
        system_id = str(entry["id"]) if entry.get("id") is not None else None
        topology, _ = add_system(topology, str(entry["name"]), system_id=system_id)

    for entry in data.get("connections") or []:
        if not isinstance(entry, dict):
            raise ValidationError("Connection entries must be mappings", {"connection": entry})
        conn = Connection.from_dict(entry)
        missing = [sid for sid in (conn.source, conn.target) if sid not in topology.system_ids]
        if missing:
            raise DataIntegrityError(
                "Connection references an unknown system",
                {"source": conn.source, "target": conn.target, "missing": missing},
            )
        if _is_listed_second_leg(topology, conn):
            continue
        topology, _ = add_connection(
            topology,
            conn.source,
            conn.target,
            direction=conn.direction,
            quality=conn.quality,
            volume=conn.volume,
        )

    return topology


def _is_listed_second_leg(topology: Topology, conn: Connection) -> bool:
    """True when ``conn`` is the reverse leg already created by expansion."""
    if conn.direction is not Direction.BIDIRECTIONAL:
        return False
    existing = topology.get_connection(conn.source, conn.target)
    return existing is not None and existing == conn
