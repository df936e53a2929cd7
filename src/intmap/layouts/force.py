"""
Force-directed network layout.

The integrator is a pure state transition, ``tick(state, edges, params)``,
over numpy arrays. ``ForceSimulation`` is the scheduler around it: it owns
the iteration budget, the convergence check, cancellation and the drag
interaction (pin, move, release).

Forces per tick, in order:

- link springs towards a rest length,
- many-body repulsion between every pair of nodes,
- translation of the centre of mass to the canvas centre,
- collision separation,
- positional x/y pull towards the centre,

followed by velocity decay, integration of unpinned nodes and a boundary
clamp that keeps every node on the canvas.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

import numpy as np
import structlog

from intmap.core.errors import NoRenderableContent, ValidationError
from intmap.layouts.base import LayoutAdapter, LayoutKind, resolvable_connections
from intmap.topology.models import Connection, Direction, Quality, Topology

logger = structlog.get_logger()

Point = tuple[float, float]

# Golden-angle spiral used for the initial placement
_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass(frozen=True)
class ForceParams:
    """Physical constants of the simulation."""

    width: float = 800
    height: float = 600
    link_distance: float = 200
    charge: float = 1000
    center_strength: float = 0.07
    collide_radius: float = 90
    node_radius: float = 35
    boundary_radius: float = 40
    velocity_decay: float = 0.4
    alpha_decay: float = 0.02
    alpha_min: float = 0.001
    max_iterations: int = 300
    energy_threshold: float = 0.05
    edge_offset: float = 8
    curvature: float = 0.2
    arrow_size: float = 10
    drag_alpha_target: float = 0.3
    release_alpha: float = 0.3

    @property
    def center(self) -> Point:
        return (self.width / 2, self.height / 2)

    @property
    def margin(self) -> float:
        return self.boundary_radius * 1.5


@dataclass(frozen=True, eq=False)
class ForceState:
    """
    One frame of the simulation.

    ``positions`` and ``velocities`` are ``(n, 2)`` float arrays; ``pinned``
    is a boolean mask of nodes held in place by a drag.
    """

    positions: np.ndarray
    velocities: np.ndarray
    pinned: np.ndarray
    alpha: float = 1.0
    alpha_target: float = 0.0
    iteration: int = 0

    @property
    def size(self) -> int:
        return len(self.positions)


def initial_state(count: int, params: ForceParams) -> ForceState:
    """Deterministic phyllotaxis placement around the canvas centre."""
    index = np.arange(count, dtype=float)
    radius = _INITIAL_RADIUS * np.sqrt(0.5 + index)
    angle = index * _INITIAL_ANGLE
    cx, cy = params.center
    positions = np.column_stack([cx + radius * np.cos(angle), cy + radius * np.sin(angle)])
    return ForceState(
        positions=positions.reshape(count, 2),
        velocities=np.zeros((count, 2)),
        pinned=np.zeros(count, dtype=bool),
    )


def _pair_deltas(points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    ``delta[i, j] = points[i] - points[j]`` and squared distances.

    The diagonal distance is infinite. Coincident off-diagonal pairs get a
    unit separation along x whose sign depends on index order, so the pair
    is pushed apart the same way on every run.
    """
    delta = points[:, None, :] - points[None, :, :]
    dist2 = np.einsum("ijk,ijk->ij", delta, delta)
    np.fill_diagonal(dist2, np.inf)

    coincident = dist2 == 0
    if coincident.any():
        index = np.arange(len(points))
        sign = np.sign(index[:, None] - index[None, :]).astype(float)
        delta[coincident, 0] = sign[coincident]
        delta[coincident, 1] = 0.0
        dist2 = np.where(coincident, 1.0, dist2)
    return delta, dist2


def _link_force(
    positions: np.ndarray,
    velocities: np.ndarray,
    edges: np.ndarray,
    alpha: float,
    params: ForceParams,
) -> None:
    n = len(positions)
    src, tgt = edges[:, 0], edges[:, 1]
    degree = np.bincount(edges.ravel(), minlength=n).astype(float)
    strength = 1.0 / np.minimum(degree[src], degree[tgt])
    bias = degree[src] / (degree[src] + degree[tgt])

    delta = (positions[tgt] + velocities[tgt]) - (positions[src] + velocities[src])
    length = np.hypot(delta[:, 0], delta[:, 1])
    length = np.where(length == 0, 1e-6, length)
    factor = (length - params.link_distance) / length * alpha * strength
    shift = delta * factor[:, None]

    np.add.at(velocities, tgt, -shift * bias[:, None])
    np.add.at(velocities, src, shift * (1 - bias)[:, None])


def _charge_force(
    positions: np.ndarray, velocities: np.ndarray, alpha: float, params: ForceParams
) -> None:
    delta, dist2 = _pair_deltas(positions)
    # Closer than one pixel behaves like one pixel
    weight = params.charge * alpha / np.maximum(dist2, 1.0)
    velocities += (delta * weight[:, :, None]).sum(axis=1)


def _collide_force(positions: np.ndarray, velocities: np.ndarray, params: ForceParams) -> None:
    predicted = positions + velocities
    delta, dist2 = _pair_deltas(predicted)
    reach = 2 * params.collide_radius
    dist = np.sqrt(dist2)
    overlap = np.clip(reach - dist, 0.0, None) / dist
    velocities += 0.5 * (delta * overlap[:, :, None]).sum(axis=1)


def tick(state: ForceState, edges: np.ndarray, params: ForceParams) -> ForceState:
    """
    Advance the simulation by one step.

    Pure: the input state and arrays are left untouched and a new state is
    returned. Pinned nodes keep their position and zero velocity but still
    act on their neighbours.
    """
    alpha = state.alpha + (state.alpha_target - state.alpha) * params.alpha_decay
    positions = state.positions.copy()
    velocities = state.velocities.copy()
    free = ~state.pinned

    if state.size:
        if len(edges):
            _link_force(positions, velocities, edges, alpha, params)
        _charge_force(positions, velocities, alpha, params)

        center = np.asarray(params.center)
        positions[free] -= positions.mean(axis=0) - center

        _collide_force(positions, velocities, params)
        velocities += (center - positions) * params.center_strength * alpha

        velocities *= 1 - params.velocity_decay
        velocities[state.pinned] = 0.0
        positions[free] += velocities[free]
        positions[state.pinned] = state.positions[state.pinned]

        lo = params.margin
        positions[:, 0] = np.clip(positions[:, 0], lo, params.width - lo)
        positions[:, 1] = np.clip(positions[:, 1], lo, params.height - lo)

    return ForceState(
        positions=positions,
        velocities=velocities,
        pinned=state.pinned.copy(),
        alpha=alpha,
        alpha_target=state.alpha_target,
        iteration=state.iteration + 1,
    )


def kinetic_energy(state: ForceState) -> float:
    return float(0.5 * np.sum(state.velocities**2))


# Geometry


@dataclass(frozen=True)
class ForceNode:
    id: str
    name: str
    x: float
    y: float
    radius: float

    @property
    def label_lines(self) -> tuple[str, str]:
        """First word on line one, the next two words on line two."""
        parts = self.name.split(" ")
        return parts[0], " ".join(parts[1:3])


@dataclass(frozen=True)
class EdgePath:
    """
    Drawable path of one directed connection.

    ``control`` is the quadratic control point of a bidirectional leg and
    ``None`` for a straight one-way line. ``end`` touches the target circle
    and ``arrow`` is the arrowhead triangle whose tip is ``end``.
    """

    source: str
    target: str
    direction: Direction
    quality: Quality
    volume: float
    start: Point
    control: Point | None
    end: Point
    arrow: tuple[Point, Point, Point]
    tooltip: str


@dataclass(frozen=True)
class ForceGeometry:
    width: float
    height: float
    nodes: tuple[ForceNode, ...]
    edges: tuple[EdgePath, ...]

    def node(self, system_id: str) -> ForceNode | None:
        for node in self.nodes:
            if node.id == system_id:
                return node
        return None


def _unit(dx: float, dy: float) -> Point:
    length = math.hypot(dx, dy)
    if length == 0:
        return (1.0, 0.0)
    return (dx / length, dy / length)


def edge_path(
    conn: Connection,
    source_xy: Point,
    target_xy: Point,
    params: ForceParams,
    tooltip: str = "",
) -> EdgePath:
    """
    Path for one connection from the current node positions.

    Each leg of a bidirectional pair is shifted perpendicular to its own
    direction and bowed into a quadratic curve, so the two legs run on
    opposite sides of the centre line.
    """
    sx, sy = source_xy
    tx, ty = target_xy
    dx, dy = tx - sx, ty - sy
    ux, uy = _unit(dx, dy)

    control: Point | None = None
    if conn.direction is Direction.BIDIRECTIONAL:
        ox, oy = -params.edge_offset * uy, params.edge_offset * ux
        sx, sy, tx, ty = sx + ox, sy + oy, tx + ox, ty + oy
        control = ((sx + tx) / 2 - params.curvature * dy, (sy + ty) / 2 + params.curvature * dx)
        start_dir = _unit(control[0] - sx, control[1] - sy)
        end_dir = _unit(tx - control[0], ty - control[1])
    else:
        start_dir = end_dir = (ux, uy)

    r = params.node_radius
    start = (sx + start_dir[0] * r, sy + start_dir[1] * r)
    end = (tx - end_dir[0] * r, ty - end_dir[1] * r)

    size = params.arrow_size
    bx, by = end[0] - end_dir[0] * size, end[1] - end_dir[1] * size
    nx, ny = -end_dir[1] * size / 2, end_dir[0] * size / 2
    arrow = (end, (bx + nx, by + ny), (bx - nx, by - ny))

    return EdgePath(
        source=conn.source,
        target=conn.target,
        direction=conn.direction,
        quality=conn.quality,
        volume=conn.effective_volume,
        start=start,
        control=control,
        end=end,
        arrow=arrow,
        tooltip=tooltip,
    )


# Scheduler


class ForceSimulation:
    """
    Owns a force state and advances it.

    ``run_until_settled`` relaxes synchronously for headless rendering;
    ``run`` awaits one frame between ticks for interactive use and checks
    for ``stop()`` before every tick.
    """

    def __init__(self, topology: Topology, params: ForceParams | None = None):
        self.params = params or ForceParams()
        self._systems = topology.systems
        self._index = {s.id: i for i, s in enumerate(self._systems)}
        self._connections = tuple(resolvable_connections(topology, LayoutKind.NETWORK.value))
        self._tooltips = tuple(
            f"{topology.name_of(c.source)} → {topology.name_of(c.target)}\n"
            f"Quality: {c.quality.label}\nVolume: {c.effective_volume:g}"
            for c in self._connections
        )
        self._edges = np.array(
            [[self._index[c.source], self._index[c.target]] for c in self._connections],
            dtype=int,
        ).reshape(-1, 2)
        self.state = initial_state(len(self._systems), self.params)
        self._stop_requested = False

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self._systems)

    @property
    def connections(self) -> tuple[Connection, ...]:
        return self._connections

    @property
    def exhausted(self) -> bool:
        return self.state.iteration >= self.params.max_iterations

    @property
    def stopped(self) -> bool:
        return self._stop_requested

    @property
    def settled(self) -> bool:
        """Converged: cooled down or below the energy threshold, nothing pinned."""
        state = self.state
        if state.pinned.any():
            return False
        if self.exhausted or state.alpha < self.params.alpha_min:
            return True
        return state.iteration > 0 and kinetic_energy(state) < self.params.energy_threshold

    def _should_continue(self) -> bool:
        return not (self._stop_requested or self.settled or self.exhausted)

    def step(self) -> ForceState:
        self.state = tick(self.state, self._edges, self.params)
        return self.state

    def run_until_settled(self) -> int:
        """Tick until converged or out of budget; returns the ticks taken."""
        ticks = 0
        while self._should_continue():
            self.step()
            ticks += 1
        logger.debug(
            "force_settled",
            ticks=ticks,
            iteration=self.state.iteration,
            energy=round(kinetic_energy(self.state), 4),
        )
        return ticks

    async def run(
        self,
        frame_interval: float = 1 / 60,
        on_tick: Callable[[ForceSimulation], Awaitable[None] | None] | None = None,
    ) -> int:
        """Tick once per frame until converged, out of budget, or stopped."""
        ticks = 0
        while self._should_continue():
            self.step()
            ticks += 1
            if on_tick is not None:
                result = on_tick(self)
                if asyncio.iscoroutine(result):
                    await result
            await asyncio.sleep(frame_interval)
        return ticks

    def stop(self) -> None:
        self._stop_requested = True

    def restart(self, alpha: float = 1.0) -> None:
        """Reheat and grant a fresh iteration budget."""
        self._stop_requested = False
        self.state = replace(self.state, alpha=alpha, iteration=0)

    def _node_index(self, system_id: str) -> int:
        try:
            return self._index[system_id]
        except KeyError:
            raise ValidationError("Unknown system", {"system_id": system_id}) from None

    def _clamp(self, x: float, y: float) -> Point:
        lo = self.params.margin
        return (
            min(max(x, lo), self.params.width - lo),
            min(max(y, lo), self.params.height - lo),
        )

    def drag_start(self, system_id: str) -> None:
        """Pin a node where it is and reheat the simulation."""
        i = self._node_index(system_id)
        pinned = self.state.pinned.copy()
        pinned[i] = True
        self._stop_requested = False
        self.state = replace(
            self.state,
            pinned=pinned,
            alpha=max(self.state.alpha, self.params.drag_alpha_target),
            alpha_target=self.params.drag_alpha_target,
            iteration=0,
        )

    def drag_move(self, system_id: str, x: float, y: float) -> Point:
        """Move a pinned node; the new position is clamped to the canvas."""
        i = self._node_index(system_id)
        if not self.state.pinned[i]:
            raise ValidationError("Node is not being dragged", {"system_id": system_id})
        point = self._clamp(x, y)
        positions = self.state.positions.copy()
        positions[i] = point
        velocities = self.state.velocities.copy()
        velocities[i] = 0.0
        self.state = replace(self.state, positions=positions, velocities=velocities)
        return point

    def drag_end(self, system_id: str) -> None:
        """Release the node and let the layout settle again gently."""
        i = self._node_index(system_id)
        pinned = self.state.pinned.copy()
        pinned[i] = False
        self._stop_requested = False
        self.state = replace(
            self.state,
            pinned=pinned,
            alpha=self.params.release_alpha,
            alpha_target=0.0,
            iteration=0,
        )

    def positions(self) -> dict[str, Point]:
        return {
            system.id: (float(x), float(y))
            for system, (x, y) in zip(self._systems, self.state.positions)
        }

    def geometry(self) -> ForceGeometry:
        """Nodes and edge paths for the current positions."""
        positions = self.positions()
        nodes = tuple(
            ForceNode(
                id=s.id,
                name=s.name,
                x=positions[s.id][0],
                y=positions[s.id][1],
                radius=self.params.node_radius,
            )
            for s in self._systems
        )
        edges = tuple(
            edge_path(c, positions[c.source], positions[c.target], self.params, tooltip)
            for c, tooltip in zip(self._connections, self._tooltips)
        )
        return ForceGeometry(
            width=self.params.width, height=self.params.height, nodes=nodes, edges=edges
        )


class ForceLayoutAdapter(LayoutAdapter):
    """Network view: every system as a circle, every connection as a path."""

    kind = LayoutKind.NETWORK
    vector = True

    def __init__(self, params: ForceParams | None = None):
        self.params = params or ForceParams()

    def simulate(self, topology: Topology) -> ForceSimulation:
        """A fresh, unsettled simulation for interactive rendering."""
        simulation = ForceSimulation(topology, self.params)
        if not simulation.connections:
            raise NoRenderableContent(
                "No connections to display",
                {"layout": self.kind.value, "systems": len(topology.systems)},
            )
        return simulation

    def compute(self, topology: Topology) -> ForceGeometry:
        simulation = self.simulate(topology)
        simulation.run_until_settled()
        return simulation.geometry()
