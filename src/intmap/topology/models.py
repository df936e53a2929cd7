"""
Topology models: systems, directed connections and immutable snapshots.

A bidirectional connection is always stored as two directed entries,
``(A, B)`` and ``(B, A)``, so every consumer works with directed pairs only.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from intmap.core.errors import ValidationError

DEFAULT_VOLUME = 10
UNKNOWN_SYSTEM = "Unknown"


class Quality(Enum):
    """Automation tier of a connection."""

    AUTOMATED = "automated"
    SEMI_AUTOMATED = "semi-automated"
    MANUAL = "manual"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Direction(Enum):
    """Direction a connection was created with."""

    ONE_WAY = "one-way"
    BIDIRECTIONAL = "bidirectional"


@dataclass(frozen=True)
class System:
    """One integrated software system."""

    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Connection:
    """A directed data connection between two systems."""

    source: str
    target: str
    direction: Direction = Direction.ONE_WAY
    quality: Quality = Quality.AUTOMATED
    volume: float | None = None  # None means unspecified

    @property
    def key(self) -> str:
        """``source-target`` display key. Not unique when ids contain ``-``."""
        return connection_key(self.source, self.target)

    @property
    def effective_volume(self) -> float:
        return DEFAULT_VOLUME if self.volume is None else self.volume

    def reversed(self) -> Connection:
        """The opposite leg carrying the same quality and volume."""
        return Connection(
            source=self.target,
            target=self.source,
            direction=self.direction,
            quality=self.quality,
            volume=self.volume,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {
            "source": self.source,
            "target": self.target,
            "direction": self.direction.value,
            "quality": self.quality.value,
        }
        if self.volume is not None:
            result["volume"] = self.volume
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Connection:
        try:
            source = str(data["source"])
            target = str(data["target"])
        except KeyError as e:
            raise ValidationError(f"Connection is missing field {e}", {"connection": data}) from e
        return cls(
            source=source,
            target=target,
            direction=parse_direction(data.get("direction", Direction.ONE_WAY.value)),
            quality=parse_quality(data.get("quality", Quality.AUTOMATED.value)),
            volume=parse_volume(data.get("volume")),
        )


@dataclass(frozen=True)
class Topology:
    """Immutable snapshot of systems and directed connections."""

    systems: tuple[System, ...] = ()
    connections: tuple[Connection, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        # Each snapshot holds its own read-only copy
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def system_ids(self) -> frozenset[str]:
        return frozenset(s.id for s in self.systems)

    def get_system(self, system_id: str) -> System | None:
        for system in self.systems:
            if system.id == system_id:
                return system
        return None

    def name_of(self, system_id: str) -> str:
        """Display name for an id, ``"Unknown"`` when it does not resolve."""
        system = self.get_system(system_id)
        return system.name if system else UNKNOWN_SYSTEM

    def get_connection(self, source: str, target: str) -> Connection | None:
        for conn in self.connections:
            if conn.source == source and conn.target == target:
                return conn
        return None

    def has_connection(self, source: str, target: str) -> bool:
        return self.get_connection(source, target) is not None

    def connection_index(self) -> dict[tuple[str, str], Connection]:
        """Map ``(source, target)`` pairs to connections."""
        return {(conn.source, conn.target): conn for conn in self.connections}

    def dangling_connections(self) -> list[Connection]:
        """Connections with an endpoint that is not a known system."""
        ids = self.system_ids
        return [c for c in self.connections if c.source not in ids or c.target not in ids]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {
            "systems": [s.to_dict() for s in self.systems],
            "connections": [c.to_dict() for c in self.connections],
            "stats": {
                "system_count": len(self.systems),
                "connection_count": len(self.connections),
            },
        }
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topology:
        """Validate and build a snapshot from ``to_dict()`` output or a topology file."""
        from intmap.topology.loader import topology_from_dict

        return topology_from_dict(data)


def connection_key(source: str, target: str) -> str:
    return f"{source}-{target}"


def parse_quality(value: Quality | str) -> Quality:
    if isinstance(value, Quality):
        return value
    try:
        return Quality(str(value).strip().lower())
    except ValueError as e:
        valid = ", ".join(q.value for q in Quality)
        raise ValidationError(f"Unknown quality '{value}' (expected one of: {valid})") from e


def parse_direction(value: Direction | str) -> Direction:
    if isinstance(value, Direction):
        return value
    try:
        return Direction(str(value).strip().lower())
    except ValueError as e:
        valid = ", ".join(d.value for d in Direction)
        raise ValidationError(f"Unknown direction '{value}' (expected one of: {valid})") from e


def parse_volume(value: Any) -> float | None:
    if value is None:
        return None
    try:
        volume = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Volume must be a number, got '{value}'") from e
    if not math.isfinite(volume):
        raise ValidationError(f"Volume must be a finite number, got '{value}'")
    if volume < 0:
        raise ValidationError("Volume cannot be negative", {"volume": volume})
    return volume
