"""
Transition-probability layout.

Each row holds the share of a system's outgoing volume sent to every other
system. Rows without outgoing volume are all zeros.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from intmap.core.errors import NoRenderableContent
from intmap.layouts.base import LayoutAdapter, LayoutKind, resolvable_connections
from intmap.topology.models import Connection, System, Topology

LABEL_THRESHOLD = 0.05
DARK_CELL_THRESHOLD = 0.5


def transition_matrix(
    topology: Topology, connections: Sequence[Connection] | None = None
) -> np.ndarray:
    """
    Row-normalised volume matrix in snapshot order.

    ``M[i, j] = volume(i -> j) / sum_k volume(i -> k)``; the division is
    guarded so an all-zero row stays zero instead of becoming NaN.
    ``connections`` are already resolved against the snapshot when given.
    """
    if connections is None:
        connections = resolvable_connections(topology, LayoutKind.TRANSITION.value)
    index = {s.id: i for i, s in enumerate(topology.systems)}
    n = len(index)
    volumes = np.zeros((n, n))
    for conn in connections:
        volumes[index[conn.source], index[conn.target]] += conn.effective_volume

    totals = volumes.sum(axis=1, keepdims=True)
    return np.divide(volumes, totals, out=np.zeros_like(volumes), where=totals > 0)


@dataclass(frozen=True)
class TransitionCell:
    source_id: str
    target_id: str
    probability: float
    source_name: str
    target_name: str

    @property
    def label(self) -> str:
        """Whole percentage, empty below the label threshold."""
        if self.probability < LABEL_THRESHOLD:
            return ""
        return f"{self.probability * 100:.0f}%"

    @property
    def text_color(self) -> str:
        return "white" if self.probability > DARK_CELL_THRESHOLD else "black"

    @property
    def tooltip(self) -> str:
        return f"{self.source_name} → {self.target_name}: {self.probability * 100:.1f}%"


@dataclass(frozen=True, eq=False)
class TransitionGeometry:
    systems: tuple[System, ...]
    matrix: np.ndarray

    @property
    def size(self) -> int:
        return len(self.systems)

    def row(self, source_id: str) -> np.ndarray:
        ids = [s.id for s in self.systems]
        return self.matrix[ids.index(source_id)]

    def cells(self) -> list[TransitionCell]:
        return [
            TransitionCell(
                source_id=src.id,
                target_id=tgt.id,
                probability=float(self.matrix[i, j]),
                source_name=src.name,
                target_name=tgt.name,
            )
            for i, src in enumerate(self.systems)
            for j, tgt in enumerate(self.systems)
        ]

    def cell(self, source_id: str, target_id: str) -> TransitionCell:
        for cell in self.cells():
            if cell.source_id == source_id and cell.target_id == target_id:
                return cell
        raise KeyError(f"{source_id}-{target_id}")


class TransitionLayoutAdapter(LayoutAdapter):
    """Heatmap of transition probabilities; drawn as pixels only."""

    kind = LayoutKind.TRANSITION
    vector = False

    def compute(self, topology: Topology) -> TransitionGeometry:
        connections = resolvable_connections(topology, self.kind.value)
        if not connections:
            raise NoRenderableContent("No connections to display", {"layout": self.kind.value})
        matrix = transition_matrix(topology, connections)
        return TransitionGeometry(systems=topology.systems, matrix=matrix)
