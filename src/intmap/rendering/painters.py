"""
Painters: layout geometry -> capture surface.

Each painter draws one view kind. Content follows the zoom/pan transform;
the legend and the export header stay fixed. With export labels on, a
header band (title, subtitle, generation date) is added above the body, so
the surface grows by ``HEADER_HEIGHT`` pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from PIL import Image

from intmap.layouts.flow import FlowGeometry
from intmap.layouts.force import ForceGeometry
from intmap.layouts.matrix import (
    BIDIRECTIONAL_GLYPH,
    ONE_WAY_GLYPH,
    CellKind,
    MatrixGeometry,
)
from intmap.layouts.transition import TransitionGeometry
from intmap.palette import (
    BACKGROUND,
    BODY_TEXT,
    FLOW_NODE,
    FLOW_NODE_STROKE,
    GRID_STROKE,
    LEGEND_BORDER,
    MUTED_TEXT,
    NO_CONNECTION,
    NODE_FILL,
    NODE_STROKE,
    NODE_TEXT,
    QUALITY_COLORS,
    QUALITY_DESCRIPTIONS,
    SELF_CELL,
    SUBTITLE_TEXT,
    TITLE_TEXT,
    quality_color,
)
from intmap.rendering.heatmap import render_heatmap
from intmap.rendering.scene import (
    Circle,
    Line,
    Path,
    Polygon,
    Primitive,
    Rect,
    Scene,
    Text,
    Transform,
)
from intmap.rendering.surfaces import RasterSurface, VectorSurface
from intmap.topology.models import Quality

HEADER_HEIGHT = 110
QUALITY_ORDER = (Quality.AUTOMATED, Quality.SEMI_AUTOMATED, Quality.MANUAL)


@dataclass(frozen=True)
class RenderOptions:
    width: float = 800
    height: float = 600
    zoom: float = 1.0
    pan: tuple[float, float] = (0.0, 0.0)
    show_legend: bool = True
    export_labels: bool = False
    title: str = ""
    subtitle: str = ""
    generated_on: date | None = None

    @property
    def header_height(self) -> float:
        return HEADER_HEIGHT if self.export_labels else 0.0

    @property
    def total_height(self) -> float:
        return self.height + self.header_height

    @property
    def transform(self) -> Transform:
        return Transform.zoom_about(
            self.zoom,
            (self.width / 2, self.height / 2),
            self.pan,
            offset=(0.0, self.header_height),
        )


def format_generated(day: date | None) -> str:
    day = day or date.today()
    return f"Generated on: {day:%B} {day.day}, {day.year}"


def _header(options: RenderOptions) -> list[Primitive]:
    if not options.export_labels:
        return []
    cx = options.width / 2
    generated = format_generated(options.generated_on)
    return [
        Rect(0, 0, options.width, HEADER_HEIGHT, fill=BACKGROUND),
        Text(cx, 40, options.title, size=24, fill=TITLE_TEXT, anchor="middle", weight="bold"),
        Text(cx, 70, options.subtitle, size=16, fill=SUBTITLE_TEXT, anchor="middle"),
        Text(cx, 95, generated, size=12, fill=MUTED_TEXT, anchor="middle"),
    ]


def _surface(
    options: RenderOptions, content: list[Primitive], overlay: list[Primitive]
) -> VectorSurface:
    return VectorSurface(
        Scene(
            width=options.width,
            height=options.total_height,
            content=tuple(content),
            overlay=tuple(overlay),
            transform=options.transform,
        )
    )


# Network


def _network_legend(options: RenderOptions) -> list[Primitive]:
    x, y = 20, options.header_height + options.height - 180
    items: list[Primitive] = [
        Rect(x - 10, y - 10, 270, 170, fill=BACKGROUND, stroke=LEGEND_BORDER, rx=5),
    ]
    for i, quality in enumerate(QUALITY_ORDER):
        label, description = QUALITY_DESCRIPTIONS[quality.value]
        color = QUALITY_COLORS[quality.value]
        row = y + i * 40
        items.append(Line(x, row, x + 30, row, stroke=color, stroke_width=3))
        items.append(Text(x + 40, row + 4, label, size=12, fill=BODY_TEXT, weight="bold"))
        items.append(Text(x + 40, row + 22, description, size=10, fill=MUTED_TEXT))

    row = y + len(QUALITY_ORDER) * 40 + 10
    items.extend(
        [
            Circle(x + 15, row, 15, fill=NODE_FILL, stroke=NODE_STROKE, stroke_width=2),
            Text(x + 15, row, "System", size=8, fill=NODE_TEXT, anchor="middle", baseline="middle"),
            Text(
                x + 40,
                row + 5,
                "Clinical System/Application",
                size=12,
                fill=BODY_TEXT,
                weight="bold",
            ),
        ]
    )
    return items


def paint_network(geometry: ForceGeometry, options: RenderOptions) -> VectorSurface:
    content: list[Primitive] = []
    for edge in geometry.edges:
        color = quality_color(edge.quality)
        if edge.control is not None:
            segments = (("M", edge.start), ("Q", edge.control + edge.end))
        else:
            segments = (("M", edge.start), ("L", edge.end))
        content.append(Path(segments, stroke=color, stroke_width=3, title=edge.tooltip))
        content.append(Polygon(edge.arrow, fill=color))

    for node in geometry.nodes:
        first, second = node.label_lines
        content.append(
            Circle(
                node.x,
                node.y,
                node.radius,
                fill=NODE_FILL,
                stroke=NODE_STROKE,
                stroke_width=3,
                title=node.name,
            )
        )
        content.append(
            Text(node.x, node.y, first, size=12, fill=NODE_TEXT, anchor="middle", weight="bold")
        )
        if second:
            content.append(
                Text(node.x, node.y + 14, second, size=10, fill=NODE_TEXT, anchor="middle")
            )

    overlay = _header(options)
    if options.show_legend:
        overlay.extend(_network_legend(options))
    tip = "Tip: Drag systems to rearrange the diagram"
    overlay.append(Text(20, options.total_height - 20, tip, size=12, fill=MUTED_TEXT))
    return _surface(options, content, overlay)


# Matrix

MATRIX_MARGIN = {"top": 140, "right": 40, "bottom": 80, "left": 160}
BAND_PADDING = 0.1


def band(extent: float, count: int) -> tuple[float, float]:
    """Step and bandwidth of ``count`` bands with inner padding only."""
    step = extent / max(count - BAND_PADDING, 1 - BAND_PADDING)
    return step, step * (1 - BAND_PADDING)


def _matrix_legend(left: float, top: float, inner_w: float) -> list[Primitive]:
    items: list[Primitive] = [
        Rect(left - 5, top + 10, inner_w + 10, 60, fill=BACKGROUND, stroke=LEGEND_BORDER, rx=5),
        Text(left + 5, top + 25, "Legend:", size=12, fill="#1f2937", weight="bold"),
    ]
    entries = [(q.label, QUALITY_COLORS[q.value]) for q in QUALITY_ORDER]
    entries.append(("No Connection", NO_CONNECTION))
    for i, (label, color) in enumerate(entries):
        x = left + 60 + i * 130
        items.append(Rect(x, top + 25, 16, 16, fill=color, stroke=GRID_STROKE, rx=2))
        items.append(Text(x + 26, top + 38, label, size=12, fill=BODY_TEXT))

    directions = [(ONE_WAY_GLYPH, "One-way"), (BIDIRECTIONAL_GLYPH, "Bidirectional")]
    for i, (symbol, label) in enumerate(directions):
        x, y = left + 60 + i * 130, top + 55
        items.append(Circle(x + 8, y, 8, fill=SELF_CELL))
        items.append(
            Text(x + 8, y, symbol, size=14, fill=BODY_TEXT, anchor="middle", baseline="middle")
        )
        items.append(Text(x + 26, y + 5, label, size=12, fill=BODY_TEXT))
    return items


def paint_matrix(geometry: MatrixGeometry, options: RenderOptions) -> VectorSurface:
    margin = dict(MATRIX_MARGIN)
    if not options.show_legend:
        margin["bottom"] = 20
    left, top = margin["left"], margin["top"]
    inner_w = options.width - left - margin["right"]
    inner_h = options.height - top - margin["bottom"]
    step_x, band_w = band(inner_w, geometry.size)
    step_y, band_h = band(inner_h, geometry.size)

    content: list[Primitive] = []
    for i, system in enumerate(geometry.systems):
        row_y = top + i * step_y + band_h / 2
        column_x = left + i * step_x + band_w / 2
        content.append(
            Text(
                left - 15,
                row_y,
                system.name,
                size=12,
                fill=NODE_TEXT,
                anchor="end",
                weight="bold",
                baseline="middle",
            )
        )
        content.append(
            Text(
                column_x,
                top - 15,
                system.name,
                size=12,
                fill=NODE_TEXT,
                weight="bold",
                rotate=-45,
            )
        )

    for cell in geometry.cells:
        x = left + cell.column * step_x
        y = top + cell.row * step_y
        content.append(
            Rect(
                x,
                y,
                band_w,
                band_h,
                fill=cell.fill,
                stroke=GRID_STROKE,
                title=cell.tooltip or None,
            )
        )
        if cell.kind is CellKind.CONNECTION:
            content.append(
                Text(
                    x + band_w / 2,
                    y + band_h / 2,
                    cell.glyph,
                    size=18,
                    fill="white",
                    anchor="middle",
                    baseline="middle",
                )
            )

    overlay = _header(options)
    body_top = options.header_height + top
    if options.export_labels:
        overlay.append(
            Text(
                left - 10,
                body_top - 100,
                "Source Systems →",
                size=12,
                fill=BODY_TEXT,
                weight="bold",
            )
        )
        overlay.append(
            Text(
                left - 80,
                body_top + 60,
                "↑ Target Systems",
                size=12,
                fill=BODY_TEXT,
                weight="bold",
                rotate=-90,
            )
        )
    if options.show_legend:
        overlay.extend(_matrix_legend(left, body_top + inner_h, inner_w))
    return _surface(options, content, overlay)


# Flow


def _flow_legend(options: RenderOptions) -> list[Primitive]:
    x, y = 20, options.header_height + options.height - 60
    items: list[Primitive] = [
        Rect(x - 10, y - 14, 170, 64, fill=BACKGROUND, stroke=LEGEND_BORDER, rx=5, opacity=0.9),
    ]
    for i, quality in enumerate(QUALITY_ORDER):
        row = y + i * 20
        color = QUALITY_COLORS[quality.value]
        items.append(Line(x, row, x + 30, row, stroke=color, stroke_width=5))
        items.append(Text(x + 40, row + 4, quality.label, size=12, fill=BODY_TEXT))
    return items


def paint_flow(geometry: FlowGeometry, options: RenderOptions) -> VectorSurface:
    content: list[Primitive] = []
    for link in geometry.links:
        start, c1, c2, end = link.curve
        content.append(
            Path(
                (("M", start), ("C", c1 + c2 + end)),
                stroke=quality_color(link.quality),
                stroke_width=max(link.width, 1.0),
                opacity=0.5,
                title=link.tooltip,
            )
        )

    for node in geometry.nodes:
        content.append(
            Rect(
                node.x0,
                node.y0,
                node.x1 - node.x0,
                node.height,
                fill=FLOW_NODE,
                stroke=FLOW_NODE_STROKE,
                title=node.label,
            )
        )
        # Labels sit outside the node, on the side facing the centre
        mid_y = (node.y0 + node.y1) / 2
        if node.x0 < geometry.width / 2:
            x, anchor = node.x1 + 6, "start"
        else:
            x, anchor = node.x0 - 6, "end"
        content.append(
            Text(x, mid_y, node.label, size=10, fill=BODY_TEXT, anchor=anchor, baseline="middle")
        )

    overlay = _header(options)
    if options.show_legend:
        overlay.extend(_flow_legend(options))
    return _surface(options, content, overlay)


# Transition


def paint_transition(geometry: TransitionGeometry, options: RenderOptions) -> RasterSurface:
    header = None
    if options.export_labels:
        header = (options.title, options.subtitle, format_generated(options.generated_on))

    def renderer(scale: float) -> Image.Image:
        return render_heatmap(
            geometry,
            options.width,
            options.total_height,
            scale,
            zoom=options.zoom,
            pan=options.pan,
            show_legend=options.show_legend,
            header=header,
            header_height=options.header_height,
        )

    return RasterSurface(renderer, options.width, options.total_height)


# Placeholder


def paint_placeholder(message: str, options: RenderOptions) -> VectorSurface:
    """Centred notice shown when a view has nothing to draw."""
    cx = options.width / 2
    cy = options.header_height + options.height / 2
    hint = "Add systems and connections, or relax the filters."
    overlay = _header(options)
    overlay.append(
        Text(cx, cy - 10, message, size=16, fill=SUBTITLE_TEXT, anchor="middle", weight="bold")
    )
    overlay.append(Text(cx, cy + 16, hint, size=12, fill=MUTED_TEXT, anchor="middle"))
    return VectorSurface(
        Scene(width=options.width, height=options.total_height, overlay=tuple(overlay))
    )
