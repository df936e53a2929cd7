"""
Filter engine: (topology, predicate) -> filtered topology.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable

from intmap.topology.models import (
    Connection,
    Direction,
    Quality,
    Topology,
    parse_direction,
    parse_quality,
)

Predicate = Callable[[Connection], bool]


@dataclass(frozen=True)
class ConnectionFilter:
    """Conjunction of a quality axis and a direction axis."""

    automated: bool = True
    semi_automated: bool = True
    manual: bool = True
    one_way: bool = True
    bidirectional: bool = True

    def allows_quality(self, quality: Quality) -> bool:
        return {
            Quality.AUTOMATED: self.automated,
            Quality.SEMI_AUTOMATED: self.semi_automated,
            Quality.MANUAL: self.manual,
        }[quality]

    def allows_direction(self, direction: Direction) -> bool:
        if direction is Direction.BIDIRECTIONAL:
            return self.bidirectional
        return self.one_way

    def __call__(self, connection: Connection) -> bool:
        return self.allows_quality(connection.quality) and self.allows_direction(
            connection.direction
        )

    @property
    def is_default(self) -> bool:
        return self == ConnectionFilter()

    @classmethod
    def from_choices(
        cls,
        qualities: Iterable[str] | None = None,
        directions: Iterable[str] | None = None,
    ) -> ConnectionFilter:
        """Build a filter from allowed quality/direction names (None allows all)."""
        kwargs: dict[str, bool] = {}
        if qualities is not None:
            allowed_q = {parse_quality(q) for q in qualities}
            kwargs["automated"] = Quality.AUTOMATED in allowed_q
            kwargs["semi_automated"] = Quality.SEMI_AUTOMATED in allowed_q
            kwargs["manual"] = Quality.MANUAL in allowed_q
        if directions is not None:
            allowed_d = {parse_direction(d) for d in directions}
            kwargs["one_way"] = Direction.ONE_WAY in allowed_d
            kwargs["bidirectional"] = Direction.BIDIRECTIONAL in allowed_d
        return cls(**kwargs)


def filter_topology(topology: Topology, predicate: Predicate) -> Topology:
    """
    Keep the connections accepted by ``predicate``.

    All systems are retained so isolated systems can still be drawn; the
    surviving connections are always a subset of the input connections.
    """
    connections = tuple(c for c in topology.connections if predicate(c))
    return replace(topology, connections=connections)
