"""
Pillow rasterizer for scenes.

The output image is exactly ``round(width * scale) x round(height * scale)``
pixels. Curves are flattened into polylines; text uses the DejaVu Sans faces
bundled with matplotlib so arrows and other symbols have glyphs.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

import numpy as np
from matplotlib import font_manager
from PIL import Image, ImageColor, ImageDraw, ImageFont

from intmap.rendering.scene import (
    Circle,
    Line,
    Path,
    Point,
    Polygon,
    Primitive,
    Rect,
    Scene,
    Segment,
    Text,
)

CURVE_STEPS = 24

# Pillow anchors: horizontal (l/m/r) + vertical (s = baseline, m = middle)
_ANCHORS = {
    ("start", "auto"): "ls",
    ("middle", "auto"): "ms",
    ("end", "auto"): "rs",
    ("start", "middle"): "lm",
    ("middle", "middle"): "mm",
    ("end", "middle"): "rm",
}

Mapper = Callable[[float, float], Point]


@lru_cache(maxsize=2)
def font_path(bold: bool = False) -> str:
    """Path of the DejaVu Sans face shipped with matplotlib."""
    props = font_manager.FontProperties(family="DejaVu Sans", weight="bold" if bold else "normal")
    return font_manager.findfont(props)


@lru_cache(maxsize=64)
def get_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(font_path(bold), max(size, 1))


def _color(value: str | None, opacity: float = 1.0) -> tuple[int, int, int, int] | None:
    if value is None or value == "none":
        return None
    r, g, b = ImageColor.getrgb(value)[:3]
    return (r, g, b, round(255 * opacity))


def flatten_segments(segments: tuple[Segment, ...], steps: int = CURVE_STEPS) -> list[list[Point]]:
    """Polylines approximating a path; every ``M`` starts a new one."""
    polylines: list[list[Point]] = []
    current: list[Point] = []
    t = np.linspace(0.0, 1.0, steps)[1:, None]
    for command, values in segments:
        if command == "M":
            if len(current) > 1:
                polylines.append(current)
            current = [(values[0], values[1])]
            continue
        start = np.asarray(current[-1])
        if command == "L":
            current.append((values[0], values[1]))
        elif command == "Q":
            c, end = np.asarray(values[0:2]), np.asarray(values[2:4])
            points = (1 - t) ** 2 * start + 2 * (1 - t) * t * c + t**2 * end
            current.extend((float(x), float(y)) for x, y in points)
        elif command == "C":
            c1, c2, end = np.asarray(values[0:2]), np.asarray(values[2:4]), np.asarray(values[4:6])
            points = (
                (1 - t) ** 3 * start
                + 3 * (1 - t) ** 2 * t * c1
                + 3 * (1 - t) * t**2 * c2
                + t**3 * end
            )
            current.extend((float(x), float(y)) for x, y in points)
        else:
            raise ValueError(f"Unsupported path command: {command}")
    if len(current) > 1:
        polylines.append(current)
    return polylines


class _Painter:
    def __init__(self, image: Image.Image, mapper: Mapper, k: float):
        self.image = image
        self.draw = ImageDraw.Draw(image, "RGBA")
        self.map = mapper
        self.k = k

    def width(self, value: float) -> int:
        return max(1, round(value * self.k))

    def paint(self, primitive: Primitive) -> None:
        getattr(self, f"_paint_{type(primitive).__name__.lower()}")(primitive)

    def _paint_rect(self, p: Rect) -> None:
        x0, y0 = self.map(p.x, p.y)
        x1, y1 = self.map(p.x + max(p.width, 0.0), p.y + max(p.height, 0.0))
        fill = _color(p.fill, p.opacity)
        outline = _color(p.stroke, p.opacity)
        width = self.width(p.stroke_width) if outline else 0
        box = [x0, y0, max(x1, x0), max(y1, y0)]
        if p.rx:
            self.draw.rounded_rectangle(
                box, radius=round(p.rx * self.k), fill=fill, outline=outline, width=width
            )
        else:
            self.draw.rectangle(box, fill=fill, outline=outline, width=width)

    def _paint_circle(self, p: Circle) -> None:
        cx, cy = self.map(p.cx, p.cy)
        r = p.r * self.k
        outline = _color(p.stroke)
        self.draw.ellipse(
            [cx - r, cy - r, cx + r, cy + r],
            fill=_color(p.fill),
            outline=outline,
            width=self.width(p.stroke_width) if outline else 0,
        )

    def _paint_line(self, p: Line) -> None:
        self.draw.line(
            [self.map(p.x1, p.y1), self.map(p.x2, p.y2)],
            fill=_color(p.stroke),
            width=self.width(p.stroke_width),
        )

    def _paint_path(self, p: Path) -> None:
        for polyline in flatten_segments(p.segments):
            points = [self.map(x, y) for x, y in polyline]
            fill = _color(p.fill, p.opacity)
            if fill is not None:
                self.draw.polygon(points, fill=fill)
            stroke = _color(p.stroke, p.opacity)
            if stroke is not None:
                self.draw.line(points, fill=stroke, width=self.width(p.stroke_width), joint="curve")

    def _paint_polygon(self, p: Polygon) -> None:
        self.draw.polygon(
            [self.map(x, y) for x, y in p.points],
            fill=_color(p.fill),
            outline=_color(p.stroke),
        )

    def _paint_text(self, p: Text) -> None:
        if not p.text:
            return
        font = get_font(round(p.size * self.k), p.weight == "bold")
        anchor = _ANCHORS.get((p.anchor, p.baseline), "ls")
        x, y = self.map(p.x, p.y)
        fill = _color(p.fill)
        if not p.rotate:
            self.draw.text((x, y), p.text, font=font, fill=fill, anchor=anchor)
            return

        # Draw on a square tile centred on the anchor, rotate, paste back
        left, top, right, bottom = font.getbbox(p.text, anchor=anchor)
        half = int(max(abs(left), abs(right), abs(top), abs(bottom))) + 2
        tile = Image.new("RGBA", (2 * half, 2 * half), (0, 0, 0, 0))
        ImageDraw.Draw(tile).text((half, half), p.text, font=font, fill=fill, anchor=anchor)
        tile = tile.rotate(-p.rotate, resample=Image.Resampling.BICUBIC, center=(half, half))
        self.image.paste(tile, (round(x) - half, round(y) - half), tile)


def rasterize(scene: Scene, scale: float = 1.0) -> Image.Image:
    """Draw a scene into an RGB image ``scale`` times the scene size."""
    size = (round(scene.width * scale), round(scene.height * scale))
    image = Image.new("RGBA", size, _color(scene.background) or (255, 255, 255, 255))

    t = scene.transform

    def content_map(x: float, y: float) -> Point:
        return ((t.k * x + t.tx) * scale, (t.k * y + t.ty) * scale)

    def overlay_map(x: float, y: float) -> Point:
        return (x * scale, y * scale)

    content = _Painter(image, content_map, t.k * scale)
    for primitive in scene.content:
        content.paint(primitive)
    overlay = _Painter(image, overlay_map, scale)
    for primitive in scene.overlay:
        overlay.paint(primitive)

    return image.convert("RGB")
