"""
Capture surfaces.

The export pipeline only sees this interface: a fixed canvas size, pixels
at any scale, and optional vector markup.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from PIL import Image

from intmap.rendering.raster import rasterize
from intmap.rendering.scene import Scene
from intmap.rendering.svg import render_svg


@runtime_checkable
class CaptureSurface(Protocol):
    @property
    def width(self) -> float: ...

    @property
    def height(self) -> float: ...

    def to_pixels(self, scale: float = 1.0) -> Image.Image: ...

    def to_vector_markup(self) -> str | None: ...


class VectorSurface:
    """A scene; captured as SVG markup or rasterized on demand."""

    def __init__(self, scene: Scene):
        self.scene = scene

    @property
    def width(self) -> float:
        return self.scene.width

    @property
    def height(self) -> float:
        return self.scene.height

    def to_pixels(self, scale: float = 1.0) -> Image.Image:
        return rasterize(self.scene, scale)

    def to_vector_markup(self) -> str:
        return render_svg(self.scene)


class RasterSurface:
    """Pixels only; ``renderer(scale)`` draws the view at the given scale."""

    def __init__(self, renderer: Callable[[float], Image.Image], width: float, height: float):
        self._renderer = renderer
        self._width = width
        self._height = height

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    def to_pixels(self, scale: float = 1.0) -> Image.Image:
        return self._renderer(scale)

    def to_vector_markup(self) -> None:
        return None
