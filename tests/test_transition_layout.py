"""Tests for the transition-probability heatmap layout."""

from __future__ import annotations

import numpy as np
import pytest

from intmap.core.errors import NoRenderableContent
from intmap.layouts.base import LayoutKind, resolvable_connections
from intmap.layouts.transition import (
    TransitionCell,
    TransitionLayoutAdapter,
    transition_matrix,
)
from intmap.topology.demo import example_topology
from intmap.topology.models import Connection, System, Topology


def _sample_cell(probability: float) -> TransitionCell:
    return TransitionCell("1", "2", probability, "EHR", "Lab")


class TestTransitionMatrix:
    def test_bidirectional_pair(self, pair_topology):
        geometry = TransitionLayoutAdapter().compute(pair_topology)
        assert geometry.row("1").tolist() == [0.0, 1.0]
        assert geometry.row("2").tolist() == [1.0, 0.0]

    def test_fan_out(self, fan_topology):
        matrix = transition_matrix(fan_topology)
        assert matrix[0].tolist() == pytest.approx([0.0, 0.75, 0.25])
        assert matrix[1].tolist() == [0.0, 0.0, 0.0]
        assert matrix[2].tolist() == [0.0, 0.0, 0.0]

    def test_rows_sum_to_one_or_zero(self):
        matrix = transition_matrix(example_topology())
        for total in matrix.sum(axis=1):
            assert total == pytest.approx(1.0) or total == 0.0

    def test_zero_volume_row_stays_zero(self, make_topology):
        topology = make_topology(["A", "B"], [("A", "B", "one-way", "manual", 0)])
        matrix = transition_matrix(topology)
        assert not np.isnan(matrix).any()
        assert matrix.sum() == 0.0

    def test_no_connections(self):
        with pytest.raises(NoRenderableContent):
            TransitionLayoutAdapter().compute(Topology(systems=(System("1", "A"),)))

    def test_dangling_connections_resolved_once(self, monkeypatch):
        calls = []

        def counting(topology, layout):
            calls.append(layout)
            return resolvable_connections(topology, layout)

        monkeypatch.setattr("intmap.layouts.transition.resolvable_connections", counting)
        topology = Topology(
            systems=(System("1", "A"), System("2", "B")),
            connections=(Connection("1", "2"), Connection("1", "9")),
        )
        geometry = TransitionLayoutAdapter().compute(topology)
        assert calls == [LayoutKind.TRANSITION.value]
        assert geometry.row("1").tolist() == [0.0, 1.0]


class TestTransitionCell:
    def test_label_threshold_is_inclusive(self):
        assert _sample_cell(0.05).label == "5%"
        assert _sample_cell(0.049).label == ""

    def test_label_rounds_to_whole_percent(self):
        assert _sample_cell(0.754).label == "75%"

    def test_text_color(self):
        assert _sample_cell(0.51).text_color == "white"
        assert _sample_cell(0.5).text_color == "black"

    def test_tooltip(self):
        assert _sample_cell(0.25).tooltip == "EHR → Lab: 25.0%"

    def test_cells_cover_the_grid(self, fan_topology):
        geometry = TransitionLayoutAdapter().compute(fan_topology)
        assert len(geometry.cells()) == 9
        assert geometry.cell("1", "2").probability == pytest.approx(0.75)
