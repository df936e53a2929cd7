"""Tests for the adjacency matrix layout."""

from __future__ import annotations

import pytest

from intmap.core.errors import NoRenderableContent
from intmap.layouts.matrix import (
    BIDIRECTIONAL_GLYPH,
    NO_CONNECTION_TOOLTIP,
    ONE_WAY_GLYPH,
    CellKind,
    ConnectionIndex,
    MatrixLayoutAdapter,
)
from intmap.palette import NO_CONNECTION, QUALITY_COLORS, SELF_CELL
from intmap.topology.demo import example_topology
from intmap.topology.editing import remove_connection
from intmap.topology.filters import ConnectionFilter, filter_topology
from intmap.topology.loader import topology_from_dict
from intmap.topology.models import Connection, Direction, Quality, System, Topology


class RecordingIndex(ConnectionIndex):
    """Connection index that remembers every lookup."""

    lookups: list[tuple[str, str]] = []

    def get(self, source, target):
        RecordingIndex.lookups.append((source, target))
        return super().get(source, target)


class TestMatrixLayout:
    def test_bidirectional_pair(self, pair_topology):
        geometry = MatrixLayoutAdapter().compute(pair_topology)
        for source, target in (("1", "2"), ("2", "1")):
            cell = geometry.cell(source, target)
            assert cell.kind is CellKind.CONNECTION
            assert cell.glyph == BIDIRECTIONAL_GLYPH
            assert cell.fill == QUALITY_COLORS["automated"]

    def test_one_way_glyph(self, fan_topology):
        geometry = MatrixLayoutAdapter().compute(fan_topology)
        assert geometry.cell("1", "2").glyph == ONE_WAY_GLYPH
        assert geometry.cell("1", "3").quality is Quality.SEMI_AUTOMATED

    def test_empty_cells_are_neutral(self, fan_topology):
        cell = MatrixLayoutAdapter().compute(fan_topology).cell("2", "1")
        assert cell.kind is CellKind.EMPTY
        assert cell.fill == NO_CONNECTION
        assert cell.tooltip == NO_CONNECTION_TOOLTIP

    def test_diagonal_is_self_and_never_looked_up(self):
        RecordingIndex.lookups = []
        topology = example_topology()
        geometry = MatrixLayoutAdapter(index_cls=RecordingIndex).compute(topology)
        for system in topology.systems:
            cell = geometry.cell(system.id, system.id)
            assert cell.kind is CellKind.SELF
            assert cell.fill == SELF_CELL
        assert RecordingIndex.lookups
        assert all(source != target for source, target in RecordingIndex.lookups)

    def test_axes_follow_snapshot_order(self, fan_topology):
        geometry = MatrixLayoutAdapter().compute(fan_topology)
        assert geometry.size == 3
        assert len(geometry.cells) == 9
        cell = geometry.cell("1", "3")
        # Columns are sources, rows are targets
        assert (cell.column, cell.row) == (0, 2)

    def test_tooltip(self, fan_topology):
        cell = MatrixLayoutAdapter().compute(fan_topology).cell("1", "2")
        assert cell.tooltip == "From: A\nTo: B\nType: one-way\nQuality: automated"

    def test_leg_removed_falls_back_to_one_way_glyph(self, pair_topology):
        topology = remove_connection(pair_topology, "2", "1")
        geometry = MatrixLayoutAdapter().compute(topology)
        assert geometry.cell("1", "2").glyph == ONE_WAY_GLYPH
        assert geometry.cell("2", "1").kind is CellKind.EMPTY

    def test_filtered_to_nothing_still_renders_neutral_grid(self, make_topology):
        topology = make_topology(["A", "B"], [("A", "B", "bidirectional", "manual", None)])
        f = ConnectionFilter(semi_automated=False, manual=False, bidirectional=False)
        geometry = MatrixLayoutAdapter().compute(filter_topology(topology, f))
        kinds = {cell.kind for cell in geometry.cells}
        assert kinds == {CellKind.SELF, CellKind.EMPTY}

    def test_no_systems(self):
        with pytest.raises(NoRenderableContent):
            MatrixLayoutAdapter().compute(Topology())

    def test_unknown_cell(self, fan_topology):
        with pytest.raises(KeyError):
            MatrixLayoutAdapter().compute(fan_topology).cell("1", "9")

    def test_hyphenated_ids_do_not_collide(self):
        topology = topology_from_dict(
            {
                "systems": [
                    {"id": "a-b", "name": "AB"},
                    {"id": "c", "name": "C"},
                    {"id": "a", "name": "A"},
                    {"id": "b-c", "name": "BC"},
                ],
                "connections": [{"source": "a-b", "target": "c"}],
            }
        )
        geometry = MatrixLayoutAdapter().compute(topology)
        assert geometry.cell("a-b", "c").kind is CellKind.CONNECTION
        assert geometry.cell("a", "b-c").kind is CellKind.EMPTY
        connected = [cell for cell in geometry.cells if cell.kind is CellKind.CONNECTION]
        assert len(connected) == 1


class TestBidirectionalLegs:
    def _sample_mixed_pair(self) -> Topology:
        return Topology(
            systems=(System("1", "EHR"), System("2", "Lab")),
            connections=(
                Connection("1", "2", Direction.BIDIRECTIONAL, Quality.AUTOMATED, 20),
                Connection("2", "1", Direction.BIDIRECTIONAL, Quality.MANUAL, 5),
            ),
        )

    def test_each_cell_keeps_its_own_leg_quality(self):
        geometry = MatrixLayoutAdapter().compute(self._sample_mixed_pair())
        forward = geometry.cell("1", "2")
        backward = geometry.cell("2", "1")
        assert (forward.quality, forward.fill) == (Quality.AUTOMATED, QUALITY_COLORS["automated"])
        assert (backward.quality, backward.fill) == (Quality.MANUAL, QUALITY_COLORS["manual"])
        assert forward.tooltip.endswith("Quality: automated")
        assert backward.tooltip.endswith("Quality: manual")

    def test_glyph_is_shared_by_both_legs(self):
        geometry = MatrixLayoutAdapter().compute(self._sample_mixed_pair())
        assert geometry.cell("1", "2").glyph == BIDIRECTIONAL_GLYPH
        assert geometry.cell("2", "1").glyph == BIDIRECTIONAL_GLYPH
