"""
Adjacency matrix layout.

Both axes list the systems in snapshot order. Columns are sources and rows
are targets; every off-diagonal cell is looked up by its composite
``source-target`` key.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from intmap.core.errors import NoRenderableContent
from intmap.layouts.base import LayoutAdapter, LayoutKind
from intmap.palette import NO_CONNECTION, SELF_CELL, quality_color
from intmap.topology.models import (
    Connection,
    Direction,
    Quality,
    System,
    Topology,
)

ONE_WAY_GLYPH = "→"
BIDIRECTIONAL_GLYPH = "↔"
NO_CONNECTION_TOOLTIP = "No connection"


class CellKind(Enum):
    SELF = "self"
    CONNECTION = "connection"
    EMPTY = "empty"


class ConnectionIndex:
    """Composite-key lookup over the connections of one snapshot."""

    def __init__(self, connections: tuple[Connection, ...]):
        self._by_key = {(c.source, c.target): c for c in connections}

    def get(self, source: str, target: str) -> Connection | None:
        return self._by_key.get((source, target))

    def __len__(self) -> int:
        return len(self._by_key)


@dataclass(frozen=True)
class MatrixCell:
    source_id: str
    target_id: str
    row: int
    column: int
    kind: CellKind
    fill: str
    quality: Quality | None = None
    glyph: str = ""
    tooltip: str = ""


@dataclass(frozen=True)
class MatrixGeometry:
    systems: tuple[System, ...]
    cells: tuple[MatrixCell, ...]

    @property
    def size(self) -> int:
        return len(self.systems)

    def cell(self, source_id: str, target_id: str) -> MatrixCell:
        for cell in self.cells:
            if cell.source_id == source_id and cell.target_id == target_id:
                return cell
        raise KeyError(f"{source_id}-{target_id}")


class MatrixLayoutAdapter(LayoutAdapter):
    """Square grid over ``systems x systems`` coloured by quality."""

    kind = LayoutKind.MATRIX
    vector = True

    def __init__(self, index_cls: type[ConnectionIndex] = ConnectionIndex):
        self.index_cls = index_cls

    def compute(self, topology: Topology) -> MatrixGeometry:
        if not topology.systems:
            raise NoRenderableContent("No systems to display", {"layout": self.kind.value})

        index = self.index_cls(topology.connections)
        cells: list[MatrixCell] = []
        for column, source in enumerate(topology.systems):
            for row, target in enumerate(topology.systems):
                cells.append(self._cell(index, source, target, row, column))

        return MatrixGeometry(systems=topology.systems, cells=tuple(cells))

    def _cell(
        self,
        index: ConnectionIndex,
        source: System,
        target: System,
        row: int,
        column: int,
    ) -> MatrixCell:
        if source.id == target.id:
            return MatrixCell(
                source_id=source.id,
                target_id=target.id,
                row=row,
                column=column,
                kind=CellKind.SELF,
                fill=SELF_CELL,
            )

        conn = index.get(source.id, target.id)
        if conn is None:
            return MatrixCell(
                source_id=source.id,
                target_id=target.id,
                row=row,
                column=column,
                kind=CellKind.EMPTY,
                fill=NO_CONNECTION,
                tooltip=NO_CONNECTION_TOOLTIP,
            )

        # A cell only reflects its own directed leg, apart from the glyph
        reverse = index.get(target.id, source.id)
        both_ways = (
            conn.direction is Direction.BIDIRECTIONAL
            and reverse is not None
            and reverse.direction is Direction.BIDIRECTIONAL
        )
        return MatrixCell(
            source_id=source.id,
            target_id=target.id,
            row=row,
            column=column,
            kind=CellKind.CONNECTION,
            fill=quality_color(conn.quality),
            quality=conn.quality,
            glyph=BIDIRECTIONAL_GLYPH if both_ways else ONE_WAY_GLYPH,
            tooltip=(
                f"From: {source.name}\nTo: {target.name}\n"
                f"Type: {conn.direction.value}\nQuality: {conn.quality.value}"
            ),
        )
