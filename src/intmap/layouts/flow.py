"""
Layered flow (Sankey-style) layout.

Placement:

1. Cycles are broken on a stable rank: strongly connected components are
   condensed, the condensation is sorted topologically (ties broken by
   snapshot order) and members of a component follow snapshot order.
   Edges that go up in rank are forward; the rest are drawn as loops.
2. Layers come from the longest forward path; nodes without forward
   outgoing edges are justified to the last layer.
3. Inside a layer nodes are ordered by the barycentre of their forward
   predecessors.

Node heights and link widths share one volume scale, chosen so the fullest
layer fits the canvas.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

import networkx as nx
import structlog

from intmap.core.errors import NoRenderableContent
from intmap.layouts.base import LayoutAdapter, LayoutKind, resolvable_connections
from intmap.topology.models import Connection, Quality, Topology

logger = structlog.get_logger()

Point = tuple[float, float]


@dataclass(frozen=True)
class FlowParams:
    width: float = 800
    height: float = 600
    node_width: float = 18
    node_padding: float = 15
    margin: float = 10
    min_node_height: float = 1
    loop_extent: float = 60


@dataclass(frozen=True)
class FlowNode:
    id: str
    name: str
    layer: int
    x0: float
    y0: float
    x1: float
    y1: float
    in_value: float
    out_value: float

    @property
    def value(self) -> float:
        """Through-volume: everything that enters or leaves the node."""
        return self.in_value + self.out_value

    @property
    def label(self) -> str:
        return f"{self.name} ({self.value:g})"

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True)
class FlowLink:
    """
    A band between two nodes.

    ``curve`` holds the four points of a cubic Bézier running along the
    centre line of the band; ``width`` is the band thickness.
    """

    source: str
    target: str
    quality: Quality
    value: float
    width: float
    curve: tuple[Point, Point, Point, Point]
    backward: bool
    tooltip: str


@dataclass(frozen=True)
class FlowGeometry:
    width: float
    height: float
    nodes: tuple[FlowNode, ...]
    links: tuple[FlowLink, ...]
    scale: float

    @property
    def layer_count(self) -> int:
        return max((n.layer for n in self.nodes), default=-1) + 1

    def node(self, system_id: str) -> FlowNode:
        for node in self.nodes:
            if node.id == system_id:
                return node
        raise KeyError(system_id)


def stable_rank(graph: nx.DiGraph, order: dict[str, int]) -> dict[str, int]:
    """
    Rank nodes so every edge between components points up in rank.

    ``order`` is the snapshot position of each node, used for all ties.
    """
    condensed = nx.condensation(graph)
    members = nx.get_node_attributes(condensed, "members")

    def first_member(component: int) -> int:
        return min(order[m] for m in members[component])

    ranked: list[str] = []
    for component in nx.lexicographical_topological_sort(condensed, key=first_member):
        ranked.extend(sorted(members[component], key=order.__getitem__))
    return {node: i for i, node in enumerate(ranked)}


def assign_layers(graph: nx.DiGraph, rank: dict[str, int]) -> dict[str, int]:
    """Longest-path layering over forward edges, sinks justified right."""
    layer: dict[str, int] = {}
    for node in sorted(graph.nodes, key=rank.__getitem__):
        preds = [u for u in graph.predecessors(node) if rank[u] < rank[node]]
        layer[node] = max((layer[u] + 1 for u in preds), default=0)

    last = max(layer.values(), default=0)
    for node in graph.nodes:
        if not any(rank[v] > rank[node] for v in graph.successors(node)):
            layer[node] = last
    return layer


class FlowLayoutAdapter(LayoutAdapter):
    """Layered flow diagram of the systems that take part in a connection."""

    kind = LayoutKind.FLOW
    vector = True

    def __init__(self, params: FlowParams | None = None):
        self.params = params or FlowParams()

    def compute(self, topology: Topology) -> FlowGeometry:
        connections = resolvable_connections(topology, self.kind.value)
        if not connections:
            raise NoRenderableContent("No connections to display", {"layout": self.kind.value})

        p = self.params
        order = {s.id: i for i, s in enumerate(topology.systems)}
        graph = nx.DiGraph()
        for conn in connections:
            graph.add_edge(conn.source, conn.target)

        rank = stable_rank(graph, order)
        layers = assign_layers(graph, rank)
        layer_count = max(layers.values()) + 1

        in_value: dict[str, float] = defaultdict(float)
        out_value: dict[str, float] = defaultdict(float)
        for conn in connections:
            out_value[conn.source] += conn.effective_volume
            in_value[conn.target] += conn.effective_volume

        columns = self._order_columns(graph, rank, layers, layer_count)
        scale = self._scale(columns, in_value, out_value)

        step = (p.width - 2 * p.margin - p.node_width) / max(layer_count - 1, 1)
        inner_height = p.height - 2 * p.margin
        nodes: dict[str, FlowNode] = {}
        for index, column in enumerate(columns):
            heights = [
                max((in_value[n] + out_value[n]) * scale, p.min_node_height) for n in column
            ]
            total = sum(heights) + p.node_padding * (len(column) - 1)
            y = p.margin + max(inner_height - total, 0) / 2
            x0 = p.margin + index * step
            for node_id, h in zip(column, heights):
                nodes[node_id] = FlowNode(
                    id=node_id,
                    name=topology.name_of(node_id),
                    layer=index,
                    x0=x0,
                    y0=y,
                    x1=x0 + p.node_width,
                    y1=y + h,
                    in_value=in_value[node_id],
                    out_value=out_value[node_id],
                )
                y += h + p.node_padding

        links = self._links(topology, connections, nodes, rank, scale)
        ordered_nodes = tuple(nodes[n] for column in columns for n in column)
        logger.debug(
            "flow_layout_computed",
            nodes=len(ordered_nodes),
            links=len(links),
            layers=layer_count,
        )
        return FlowGeometry(
            width=p.width, height=p.height, nodes=ordered_nodes, links=links, scale=scale
        )

    def _order_columns(
        self,
        graph: nx.DiGraph,
        rank: dict[str, int],
        layers: dict[str, int],
        layer_count: int,
    ) -> list[list[str]]:
        columns: list[list[str]] = [[] for _ in range(layer_count)]
        for node in sorted(graph.nodes, key=rank.__getitem__):
            columns[layers[node]].append(node)

        position: dict[str, float] = {n: i for i, n in enumerate(columns[0])}
        for column in columns[1:]:

            def barycentre(node: str) -> tuple[float, int]:
                preds = [position[u] for u in graph.predecessors(node) if u in position]
                centre = sum(preds) / len(preds) if preds else float(len(position))
                return centre, rank[node]

            column.sort(key=barycentre)
            position.update({n: i for i, n in enumerate(column)})
        return columns

    def _scale(
        self,
        columns: list[list[str]],
        in_value: dict[str, float],
        out_value: dict[str, float],
    ) -> float:
        """Pixels per unit of volume, limited by the fullest layer."""
        p = self.params
        inner_height = p.height - 2 * p.margin
        candidates = []
        for column in columns:
            total = sum(in_value[n] + out_value[n] for n in column)
            if total > 0:
                room = inner_height - p.node_padding * (len(column) - 1)
                candidates.append(max(room, 0) / total)
        # Every volume may be zero; bands then collapse to hairlines
        return min(candidates, default=0.0)

    def _links(
        self,
        topology: Topology,
        connections: list[Connection],
        nodes: dict[str, FlowNode],
        rank: dict[str, int],
        scale: float,
    ) -> tuple[FlowLink, ...]:
        p = self.params
        # Stack bands on each side of a node, ordered by the far end's height
        outgoing = sorted(connections, key=lambda c: (nodes[c.target].y0, rank[c.target]))
        incoming = sorted(connections, key=lambda c: (nodes[c.source].y0, rank[c.source]))

        out_offset: dict[str, float] = defaultdict(float)
        source_y: dict[tuple[str, str], float] = {}
        for conn in outgoing:
            width = conn.effective_volume * scale
            source_y[(conn.source, conn.target)] = (
                nodes[conn.source].y0 + out_offset[conn.source] + width / 2
            )
            out_offset[conn.source] += width

        in_offset: dict[str, float] = defaultdict(float)
        target_y: dict[tuple[str, str], float] = {}
        for conn in incoming:
            width = conn.effective_volume * scale
            target_y[(conn.source, conn.target)] = (
                nodes[conn.target].y0 + in_offset[conn.target] + width / 2
            )
            in_offset[conn.target] += width

        links = []
        for conn in connections:
            src, tgt = nodes[conn.source], nodes[conn.target]
            y0 = source_y[(conn.source, conn.target)]
            y1 = target_y[(conn.source, conn.target)]
            x0, x1 = src.x1, tgt.x0
            backward = rank[conn.source] > rank[conn.target] or src.layer >= tgt.layer
            if backward:
                reach = p.loop_extent + abs(x0 - x1) / 2
                curve = ((x0, y0), (x0 + reach, y0), (x1 - reach, y1), (x1, y1))
            else:
                mid = (x0 + x1) / 2
                curve = ((x0, y0), (mid, y0), (mid, y1), (x1, y1))
            links.append(
                FlowLink(
                    source=conn.source,
                    target=conn.target,
                    quality=conn.quality,
                    value=conn.effective_volume,
                    width=conn.effective_volume * scale,
                    curve=curve,
                    backward=backward,
                    tooltip=(
                        f"{topology.name_of(conn.source)} → {topology.name_of(conn.target)}: "
                        f"{conn.effective_volume:g}"
                    ),
                )
            )
        return tuple(links)
