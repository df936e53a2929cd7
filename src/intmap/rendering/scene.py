"""
Display list shared by the SVG writer and the rasterizer.

A ``Scene`` holds two layers of primitives. ``content`` is drawn through the
view transform (zoom and pan); ``overlay`` (legend, export header) is drawn
in canvas coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

Point = tuple[float, float]

# ("M", (x, y)), ("L", (x, y)), ("Q", (cx, cy, x, y)), ("C", (c1x, c1y, c2x, c2y, x, y))
Segment = tuple[str, tuple[float, ...]]


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str = "none"
    stroke: str | None = None
    stroke_width: float = 1.0
    rx: float = 0.0
    opacity: float = 1.0
    title: str | None = None


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float
    fill: str = "none"
    stroke: str | None = None
    stroke_width: float = 1.0
    title: str | None = None


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float = 1.0


@dataclass(frozen=True)
class Path:
    segments: tuple[Segment, ...]
    stroke: str | None = None
    stroke_width: float = 1.0
    fill: str = "none"
    opacity: float = 1.0
    title: str | None = None


@dataclass(frozen=True)
class Polygon:
    points: tuple[Point, ...]
    fill: str
    stroke: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 12
    fill: str = "#000000"
    anchor: str = "start"  # start | middle | end
    weight: str = "normal"  # normal | bold
    baseline: str = "auto"  # auto | middle
    rotate: float = 0.0  # degrees, clockwise, about (x, y)
    title: str | None = None


Primitive = Union[Rect, Circle, Line, Path, Polygon, Text]


@dataclass(frozen=True)
class Transform:
    """Uniform scale ``k`` followed by a translation."""

    k: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def zoom_about(
        cls, k: float, center: Point, pan: Point = (0.0, 0.0), offset: Point = (0.0, 0.0)
    ) -> Transform:
        """Zoom by ``k`` around ``center``, then pan, then shift by ``offset``."""
        cx, cy = center
        return cls(
            k=k,
            tx=(1 - k) * cx + pan[0] + offset[0],
            ty=(1 - k) * cy + pan[1] + offset[1],
        )

    def apply(self, x: float, y: float) -> Point:
        return (self.k * x + self.tx, self.k * y + self.ty)

    def invert(self, x: float, y: float) -> Point:
        return ((x - self.tx) / self.k, (y - self.ty) / self.k)

    @property
    def is_identity(self) -> bool:
        return self.k == 1.0 and self.tx == 0.0 and self.ty == 0.0


@dataclass(frozen=True)
class Scene:
    width: float
    height: float
    background: str = "#ffffff"
    content: tuple[Primitive, ...] = ()
    overlay: tuple[Primitive, ...] = ()
    transform: Transform = field(default_factory=Transform)
