"""View controller: active adapter, zoom/pan, legend, filter."""

from intmap.view.controller import ViewController
from intmap.view.models import RenderedView, SummaryCounters, ViewState

__all__ = [
    "ViewController",
    "ViewState",
    "SummaryCounters",
    "RenderedView",
]
