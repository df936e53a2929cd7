"""View state, summary counters and rendered views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from PIL import Image

from intmap.layouts.base import LayoutKind
from intmap.rendering.surfaces import CaptureSurface
from intmap.topology.filters import ConnectionFilter


@dataclass(frozen=True)
class ViewState:
    """Everything that decides what the active view looks like."""

    adapter: LayoutKind = LayoutKind.MATRIX
    zoom: float = 1.0
    pan: tuple[float, float] = (0.0, 0.0)
    show_legend: bool = True
    filter: ConnectionFilter = field(default_factory=ConnectionFilter)


@dataclass(frozen=True)
class SummaryCounters:
    total_systems: int
    total_connections: int
    filtered_connections: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_systems": self.total_systems,
            "total_connections": self.total_connections,
            "filtered_connections": self.filtered_connections,
        }


@dataclass(frozen=True)
class RenderedView:
    """
    The active view, drawn.

    Exposes the capture interface of its surface, so the export pipeline can
    take a ``RenderedView`` directly. ``placeholder`` carries the notice
    shown when the layout had nothing to draw.
    """

    kind: LayoutKind
    surface: CaptureSurface
    state: ViewState
    summary: SummaryCounters
    title: str
    placeholder: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.placeholder is not None

    @property
    def width(self) -> float:
        return self.surface.width

    @property
    def height(self) -> float:
        return self.surface.height

    def to_pixels(self, scale: float = 1.0) -> Image.Image:
        return self.surface.to_pixels(scale)

    def to_vector_markup(self) -> str | None:
        return self.surface.to_vector_markup()
