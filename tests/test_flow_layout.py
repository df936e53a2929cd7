"""Tests for the layered flow layout."""

from __future__ import annotations

import networkx as nx
import pytest

from intmap.core.errors import NoRenderableContent
from intmap.layouts.flow import FlowLayoutAdapter, FlowParams, assign_layers, stable_rank
from intmap.topology.demo import example_topology
from intmap.topology.models import Connection, System, Topology


def _sample_chain() -> Topology:
    """A -> B -> C with volumes 20 and 10."""
    return Topology(
        systems=(System("1", "A"), System("2", "B"), System("3", "C")),
        connections=(Connection("1", "2", volume=20), Connection("2", "3", volume=10)),
    )


class TestStableRank:
    def test_acyclic_follows_edges(self):
        graph = nx.DiGraph([("c", "a"), ("a", "b")])
        rank = stable_rank(graph, {"a": 0, "b": 1, "c": 2})
        assert rank["c"] < rank["a"] < rank["b"]

    def test_cycle_members_follow_snapshot_order(self):
        graph = nx.DiGraph([("b", "a"), ("a", "b")])
        rank = stable_rank(graph, {"a": 0, "b": 1})
        assert rank == {"a": 0, "b": 1}


class TestAssignLayers:
    def test_longest_path(self):
        graph = nx.DiGraph([("a", "b"), ("b", "c"), ("a", "c")])
        rank = {"a": 0, "b": 1, "c": 2}
        assert assign_layers(graph, rank) == {"a": 0, "b": 1, "c": 2}

    def test_sinks_justified_to_last_layer(self):
        graph = nx.DiGraph([("a", "b"), ("b", "c"), ("a", "d")])
        rank = {"a": 0, "b": 1, "c": 2, "d": 3}
        layers = assign_layers(graph, rank)
        assert layers["d"] == layers["c"] == 2


class TestFlowLayout:
    def test_chain(self):
        geometry = FlowLayoutAdapter().compute(_sample_chain())
        assert geometry.layer_count == 3
        a, b, c = (geometry.node(i) for i in ("1", "2", "3"))
        assert a.x0 < b.x0 < c.x0
        assert a.value == 20
        assert b.value == 30
        assert c.value == 10
        assert b.label == "B (30)"

    def test_node_height_proportional_to_through_volume(self):
        geometry = FlowLayoutAdapter().compute(_sample_chain())
        a, b = geometry.node("1"), geometry.node("2")
        assert b.height == pytest.approx(a.height * 1.5)
        assert a.height == pytest.approx(20 * geometry.scale)

    def test_link_width_matches_scale(self):
        geometry = FlowLayoutAdapter().compute(_sample_chain())
        link = geometry.links[0]
        assert link.width == pytest.approx(20 * geometry.scale)
        assert link.tooltip == "A → B: 20"
        assert not link.backward

    def test_nodes_fit_canvas(self):
        params = FlowParams()
        geometry = FlowLayoutAdapter(params).compute(example_topology())
        bottom = params.height - params.margin + 1e-6
        for node in geometry.nodes:
            assert params.margin - 1e-6 <= node.y0 <= node.y1 <= bottom
            assert 0 <= node.x0 < node.x1 <= params.width

    def test_cycles_become_backward_links(self):
        geometry = FlowLayoutAdapter().compute(example_topology())
        assert any(link.backward for link in geometry.links)
        assert len(geometry.links) == 10

    def test_only_connected_systems_are_drawn(self):
        topology = Topology(
            systems=(System("1", "A"), System("2", "B"), System("3", "Lonely")),
            connections=(Connection("1", "2"),),
        )
        geometry = FlowLayoutAdapter().compute(topology)
        assert {n.id for n in geometry.nodes} == {"1", "2"}

    def test_zero_volumes_do_not_crash(self):
        topology = Topology(
            systems=(System("1", "A"), System("2", "B")),
            connections=(Connection("1", "2", volume=0),),
        )
        geometry = FlowLayoutAdapter().compute(topology)
        assert geometry.scale == 0.0
        assert all(node.height >= FlowParams().min_node_height for node in geometry.nodes)

    def test_deterministic(self):
        first = FlowLayoutAdapter().compute(example_topology())
        second = FlowLayoutAdapter().compute(example_topology())
        assert first == second

    def test_no_connections(self):
        with pytest.raises(NoRenderableContent):
            FlowLayoutAdapter().compute(Topology(systems=(System("1", "A"),)))
