"""
Layout adapters.

Four independent, pure transformations from a filtered topology to the
geometry of one view: force-directed network, adjacency matrix, layered
flow, and transition-probability heatmap.
"""

from __future__ import annotations

from intmap.layouts.base import LayoutAdapter, LayoutKind
from intmap.layouts.flow import FlowGeometry, FlowLayoutAdapter, FlowParams
from intmap.layouts.force import (
    ForceGeometry,
    ForceLayoutAdapter,
    ForceParams,
    ForceSimulation,
    ForceState,
    tick,
)
from intmap.layouts.matrix import CellKind, ConnectionIndex, MatrixGeometry, MatrixLayoutAdapter
from intmap.layouts.transition import (
    TransitionGeometry,
    TransitionLayoutAdapter,
    transition_matrix,
)


def default_adapters(
    force_params: ForceParams | None = None,
    flow_params: FlowParams | None = None,
) -> dict[LayoutKind, LayoutAdapter]:
    """One adapter per view kind."""
    return {
        LayoutKind.NETWORK: ForceLayoutAdapter(force_params),
        LayoutKind.MATRIX: MatrixLayoutAdapter(),
        LayoutKind.FLOW: FlowLayoutAdapter(flow_params),
        LayoutKind.TRANSITION: TransitionLayoutAdapter(),
    }


__all__ = [
    "LayoutAdapter",
    "LayoutKind",
    "default_adapters",
    # Force
    "ForceParams",
    "ForceState",
    "ForceSimulation",
    "ForceGeometry",
    "ForceLayoutAdapter",
    "tick",
    # Matrix
    "CellKind",
    "ConnectionIndex",
    "MatrixGeometry",
    "MatrixLayoutAdapter",
    # Flow
    "FlowParams",
    "FlowGeometry",
    "FlowLayoutAdapter",
    # Transition
    "TransitionGeometry",
    "TransitionLayoutAdapter",
    "transition_matrix",
]
