"""Colours shared by every view and by the text serializers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from intmap.topology.models import Quality

# Keyed by Quality.value so this module never imports the model package.
QUALITY_COLORS = {
    "automated": "#10b981",  # green
    "semi-automated": "#f59e0b",  # amber
    "manual": "#ef4444",  # red
}

QUALITY_DESCRIPTIONS = {
    "automated": ("Automatic Data Flow", "No manual intervention needed"),
    "semi-automated": ("Partial Manual Process", "Some staff input required"),
    "manual": ("Fully Manual Process", "Staff must re-enter information"),
}

NO_CONNECTION = "#f3f4f6"
SELF_CELL = "#e5e7eb"
GRID_STROKE = "#d1d5db"
LEGEND_BORDER = "#e5e7eb"
NEUTRAL_EDGE = "#9ca3af"

NODE_FILL = "#f0f9ff"
NODE_STROKE = "#3b82f6"
NODE_TEXT = "#1e3a8a"
FLOW_NODE = "#3b82f6"
FLOW_NODE_STROKE = "#1e40af"

TITLE_TEXT = "#111827"
SUBTITLE_TEXT = "#4b5563"
BODY_TEXT = "#374151"
MUTED_TEXT = "#6b7280"
BACKGROUND = "#ffffff"

HEATMAP_SCHEME = "BuPu"


def quality_color(quality: Quality | None) -> str:
    if quality is None:
        return NO_CONNECTION
    return QUALITY_COLORS[quality.value]
