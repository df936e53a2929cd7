"""
Rendering: display-list scenes, SVG and raster output, capture surfaces.
"""

from intmap.rendering.painters import (
    HEADER_HEIGHT,
    RenderOptions,
    paint_flow,
    paint_matrix,
    paint_network,
    paint_placeholder,
    paint_transition,
)
from intmap.rendering.raster import rasterize
from intmap.rendering.scene import Scene, Transform
from intmap.rendering.surfaces import CaptureSurface, RasterSurface, VectorSurface
from intmap.rendering.svg import render_svg

__all__ = [
    "HEADER_HEIGHT",
    "RenderOptions",
    "Scene",
    "Transform",
    "CaptureSurface",
    "VectorSurface",
    "RasterSurface",
    "rasterize",
    "render_svg",
    "paint_network",
    "paint_matrix",
    "paint_flow",
    "paint_transition",
    "paint_placeholder",
]
