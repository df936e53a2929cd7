"""
Transition heatmap drawn with matplotlib.

Uses the object-oriented Agg API (``Figure`` + ``FigureCanvasAgg``) so no
pyplot state or GUI backend is involved.
"""

from __future__ import annotations

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from PIL import Image

from intmap.layouts.transition import TransitionGeometry
from intmap.palette import (
    BACKGROUND,
    BODY_TEXT,
    HEATMAP_SCHEME,
    MUTED_TEXT,
    SUBTITLE_TEXT,
    TITLE_TEXT,
)

DPI = 100


def render_heatmap(
    geometry: TransitionGeometry,
    width: float,
    height: float,
    scale: float = 1.0,
    *,
    zoom: float = 1.0,
    pan: tuple[float, float] = (0.0, 0.0),
    show_legend: bool = True,
    header: tuple[str, str, str] | None = None,
    header_height: float = 0.0,
) -> Image.Image:
    """
    Render the heatmap to a Pillow image of exactly ``width * scale`` by
    ``height * scale`` pixels.

    ``header`` is ``(title, subtitle, generated)`` drawn in the top
    ``header_height`` pixels; zoom and pan narrow the visible cell range.
    """
    target = (round(width * scale), round(height * scale))
    fig = Figure(figsize=(width / DPI, height / DPI), dpi=DPI * scale, facecolor=BACKGROUND)
    canvas = FigureCanvasAgg(fig)

    body_top = 1 - header_height / height
    right = 0.84 if show_legend else 0.95
    ax = fig.add_axes((0.30, 0.26, right - 0.30, body_top - 0.30))

    n = geometry.size
    image = ax.imshow(geometry.matrix, cmap=HEATMAP_SCHEME, vmin=0.0, vmax=1.0, aspect="auto")
    names = [s.name for s in geometry.systems]
    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels(names, rotation=45, ha="right", fontsize=8, color=BODY_TEXT)
    ax.set_yticklabels(names, fontsize=8, color=BODY_TEXT)
    ax.set_xlabel("Target System", fontsize=9, color=BODY_TEXT)
    ax.set_ylabel("Source System", fontsize=9, color=BODY_TEXT)

    for cell in geometry.cells():
        if cell.label:
            i = names.index(cell.source_name)
            j = names.index(cell.target_name)
            ax.text(j, i, cell.label, ha="center", va="center", fontsize=8, color=cell.text_color)

    # Zoom and pan: pixels of pan map onto cell units of the axes
    axes_px = max(ax.get_position().width * width, 1.0)
    cells_per_px = n / axes_px
    half = n / (2 * zoom)
    cx = (n - 1) / 2 - pan[0] * cells_per_px / zoom
    cy = (n - 1) / 2 - pan[1] * cells_per_px / zoom
    ax.set_xlim(cx - half, cx + half)
    ax.set_ylim(cy + half, cy - half)

    if show_legend:
        colorbar = fig.colorbar(image, ax=ax, fraction=0.046, pad=0.04)
        colorbar.set_label("Transition probability", fontsize=8, color=BODY_TEXT)
        colorbar.ax.tick_params(labelsize=7)

    if header is not None:
        title, subtitle, generated = header
        lines = (
            (40, title, 18, "bold", TITLE_TEXT),
            (70, subtitle, 12, "normal", SUBTITLE_TEXT),
            (95, generated, 9, "normal", MUTED_TEXT),
        )
        for y, text, size, weight, color in lines:
            fig.text(
                0.5,
                1 - y / height,
                text,
                ha="center",
                va="baseline",
                fontsize=size,
                fontweight=weight,
                color=color,
            )

    canvas.draw()
    rendered = Image.frombuffer(
        "RGBA", canvas.get_width_height(), canvas.buffer_rgba(), "raw", "RGBA", 0, 1
    ).convert("RGB")
    if rendered.size != target:
        rendered = rendered.resize(target, Image.Resampling.LANCZOS)
    return rendered
