"""
Layout adapter contract.

A layout adapter is a pure transformation from a filtered topology to the
geometry of one view. Adapters never mutate the snapshot they receive and
raise ``NoRenderableContent`` when there is nothing to draw.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar

import structlog

from intmap.core.errors import ValidationError
from intmap.topology.models import Connection, Topology

logger = structlog.get_logger()


class LayoutKind(Enum):
    """The four views of a topology."""

    NETWORK = "network"
    MATRIX = "matrix"
    FLOW = "flow"
    TRANSITION = "transition"

    @property
    def title(self) -> str:
        return _TITLES[self]

    @classmethod
    def parse(cls, value: LayoutKind | str) -> LayoutKind:
        if isinstance(value, LayoutKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            valid = ", ".join(k.value for k in cls)
            raise ValidationError(f"Unknown view '{value}' (expected one of: {valid})") from e


_TITLES = {
    LayoutKind.NETWORK: "Integration Map Diagram",
    LayoutKind.MATRIX: "Integration Matrix",
    LayoutKind.FLOW: "Data Flow Diagram",
    LayoutKind.TRANSITION: "Markov Transition Diagram",
}


class LayoutAdapter(ABC):
    """Base class for the four layout adapters."""

    kind: ClassVar[LayoutKind]
    # False when the adapter's output can only be captured as pixels
    vector: ClassVar[bool] = True

    @abstractmethod
    def compute(self, topology: Topology) -> Any:
        """Derive geometry from a filtered topology."""


def resolvable_connections(topology: Topology, layout: str) -> list[Connection]:
    """
    Connections whose endpoints both exist.

    A dangling connection is a data-integrity anomaly; it is logged and
    skipped so the rest of the topology stays renderable.
    """
    ids = topology.system_ids
    valid: list[Connection] = []
    for conn in topology.connections:
        if conn.source in ids and conn.target in ids:
            valid.append(conn)
        else:
            logger.warning(
                "dangling_connection",
                layout=layout,
                source=conn.source,
                target=conn.target,
            )
    return valid
