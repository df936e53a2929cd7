"""
View controller.

Holds the active adapter, zoom, pan, legend visibility and connection
filter. Geometry is computed lazily, only for the adapter on screen, and
cached until the topology or the filter changes. Every state change
re-renders the active view and notifies subscribers.

In live mode the network view is driven frame by frame by
``run_force_loop``; otherwise the force layout is settled synchronously.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Any, Callable

import structlog

from intmap.config.settings import Settings, get_settings
from intmap.core.errors import IntMapError, NoRenderableContent, ValidationError
from intmap.layouts import LayoutAdapter, LayoutKind, default_adapters
from intmap.layouts.flow import FlowParams
from intmap.layouts.force import ForceLayoutAdapter, ForceParams, ForceSimulation
from intmap.rendering.painters import (
    RenderOptions,
    paint_flow,
    paint_matrix,
    paint_network,
    paint_placeholder,
    paint_transition,
)
from intmap.topology.filters import ConnectionFilter, filter_topology
from intmap.topology.models import Topology
from intmap.view.models import RenderedView, SummaryCounters, ViewState

logger = structlog.get_logger()

Subscriber = Callable[[RenderedView], None]

_PAINTERS: dict[LayoutKind, Callable[[Any, RenderOptions], Any]] = {
    LayoutKind.NETWORK: paint_network,
    LayoutKind.MATRIX: paint_matrix,
    LayoutKind.FLOW: paint_flow,
    LayoutKind.TRANSITION: paint_transition,
}


def adapters_from_settings(settings: Settings) -> dict[LayoutKind, LayoutAdapter]:
    force = ForceParams(
        width=settings.canvas_width,
        height=settings.canvas_height,
        max_iterations=settings.force_max_iterations,
        energy_threshold=settings.force_energy_threshold,
    )
    flow = FlowParams(width=settings.canvas_width, height=settings.canvas_height)
    return default_adapters(force, flow)


class ViewController:
    """Turns the current topology and view state into a rendered view."""

    def __init__(
        self,
        topology: Topology,
        settings: Settings | None = None,
        *,
        adapters: dict[LayoutKind, LayoutAdapter] | None = None,
        live: bool = False,
        clock: Callable[[], date] = date.today,
    ):
        self.settings = settings or get_settings()
        self._topology = topology
        self._state = ViewState(show_legend=self.settings.show_legend)
        self._adapters = adapters or adapters_from_settings(self.settings)
        self._live = live
        self._clock = clock

        self._filtered: Topology | None = None
        self._cache: dict[LayoutKind, Any] = {}
        self._simulation: ForceSimulation | None = None
        self._subscribers: list[Subscriber] = []
        self._closed = False

        self.compute_counts: Counter[LayoutKind] = Counter()
        self.current: RenderedView | None = None

    # State

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def filtered(self) -> Topology:
        if self._filtered is None:
            self._filtered = filter_topology(self._topology, self._state.filter)
        return self._filtered

    @property
    def closed(self) -> bool:
        return self._closed

    def summary(self) -> SummaryCounters:
        return SummaryCounters(
            total_systems=len(self._topology.systems),
            total_connections=len(self._topology.connections),
            filtered_connections=len(self.filtered.connections),
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for re-renders; returns the unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _invalidate(self) -> None:
        if self._simulation is not None:
            self._simulation.stop()
        self._simulation = None
        self._filtered = None
        self._cache.clear()

    def _update(self, **changes: Any) -> None:
        self._require_open()
        self._state = replace(self._state, **changes)
        self._changed()

    def _changed(self) -> None:
        self.current = self.render()
        for callback in list(self._subscribers):
            callback(self.current)

    def set_topology(self, topology: Topology) -> None:
        """Swap in a new snapshot; all cached geometry is discarded."""
        self._require_open()
        self._topology = topology
        self._invalidate()
        self._changed()

    def set_filter(self, connection_filter: ConnectionFilter) -> None:
        self._require_open()
        if connection_filter == self._state.filter:
            return
        self._state = replace(self._state, filter=connection_filter)
        self._invalidate()
        logger.debug("filter_changed", filtered_connections=len(self.filtered.connections))
        self._changed()

    def select_adapter(self, kind: LayoutKind | str) -> None:
        """Switch views; zoom, pan and filter carry over."""
        kind = LayoutKind.parse(kind)
        if kind not in self._adapters:
            raise ValidationError("No adapter registered for view", {"view": kind.value})
        self._update(adapter=kind)

    def set_zoom(self, zoom: float) -> float:
        clamped = min(max(zoom, self.settings.zoom_min), self.settings.zoom_max)
        self._update(zoom=clamped)
        return clamped

    def zoom_by(self, factor: float) -> float:
        return self.set_zoom(self._state.zoom * factor)

    def set_pan(self, x: float, y: float) -> None:
        self._update(pan=(float(x), float(y)))

    def pan_by(self, dx: float, dy: float) -> None:
        px, py = self._state.pan
        self.set_pan(px + dx, py + dy)

    def reset_view(self) -> None:
        self._update(zoom=1.0, pan=(0.0, 0.0))

    def set_legend_visible(self, visible: bool) -> None:
        self._update(show_legend=bool(visible))

    # Geometry

    def _require_open(self) -> None:
        if self._closed:
            raise IntMapError("View controller has been torn down")

    def _network_simulation(self) -> ForceSimulation:
        if self._simulation is None:
            adapter = self._adapters[LayoutKind.NETWORK]
            if not isinstance(adapter, ForceLayoutAdapter):
                raise ValidationError("Network view is not driven by a force simulation")
            self.compute_counts[LayoutKind.NETWORK] += 1
            simulation = adapter.simulate(self.filtered)
            if not self._live:
                simulation.run_until_settled()
            self._simulation = simulation
        return self._simulation

    def geometry(self, kind: LayoutKind | None = None) -> Any:
        """Geometry of a view, computed on first use and cached."""
        kind = kind or self._state.adapter
        if kind is LayoutKind.NETWORK and isinstance(self._adapters[kind], ForceLayoutAdapter):
            return self._geometry_from_simulation()

        if kind not in self._cache:
            self.compute_counts[kind] += 1
            try:
                self._cache[kind] = self._adapters[kind].compute(self.filtered)
            except NoRenderableContent as e:
                self._cache[kind] = e
        cached = self._cache[kind]
        if isinstance(cached, NoRenderableContent):
            raise cached
        return cached

    def _geometry_from_simulation(self) -> Any:
        cached = self._cache.get(LayoutKind.NETWORK)
        if isinstance(cached, NoRenderableContent):
            raise cached
        try:
            simulation = self._network_simulation()
        except NoRenderableContent as e:
            self._cache[LayoutKind.NETWORK] = e
            raise
        return simulation.geometry()

    # Rendering

    def render_options(self, *, export_labels: bool = False) -> RenderOptions:
        summary = self.summary()
        subtitle = f"{summary.total_systems} Systems and {summary.filtered_connections} Connections"
        return RenderOptions(
            width=self.settings.canvas_width,
            height=self.settings.canvas_height,
            zoom=self._state.zoom,
            pan=self._state.pan,
            show_legend=self._state.show_legend,
            export_labels=export_labels,
            title=self._state.adapter.title,
            subtitle=subtitle,
            generated_on=self._clock(),
        )

    def render(self, *, export_labels: bool = False) -> RenderedView:
        """Draw the active view; an empty layout becomes a placeholder."""
        self._require_open()
        kind = self._state.adapter
        options = self.render_options(export_labels=export_labels)
        placeholder = None
        try:
            surface = _PAINTERS[kind](self.geometry(kind), options)
        except NoRenderableContent as e:
            placeholder = e.message
            surface = paint_placeholder(e.message, options)

        return RenderedView(
            kind=kind,
            surface=surface,
            state=self._state,
            summary=self.summary(),
            title=options.title,
            placeholder=placeholder,
        )

    # Drag

    def _screen_to_layout(self, x: float, y: float) -> tuple[float, float]:
        return self.render_options().transform.invert(x, y)

    def _drag_simulation(self) -> ForceSimulation:
        self._require_open()
        if self._state.adapter is not LayoutKind.NETWORK:
            raise ValidationError("Nodes can only be dragged in the network view")
        return self._network_simulation()

    def drag_start(self, system_id: str) -> None:
        self._drag_simulation().drag_start(system_id)
        self._changed()

    def drag_move(self, system_id: str, x: float, y: float) -> tuple[float, float]:
        """Move a dragged node to screen point ``(x, y)``."""
        point = self._drag_simulation().drag_move(system_id, *self._screen_to_layout(x, y))
        self._changed()
        return point

    def drag_end(self, system_id: str) -> None:
        simulation = self._drag_simulation()
        simulation.drag_end(system_id)
        if not self._live:
            simulation.run_until_settled()
        self._changed()

    async def run_force_loop(self) -> int:
        """Animate the network view until it settles or is stopped."""
        self._require_open()
        simulation = self._network_simulation()
        ticks = await simulation.run(
            self.settings.frame_interval,
            on_tick=lambda _: None if self._closed else self._changed(),
        )
        logger.debug("force_loop_finished", ticks=ticks, stopped=simulation.stopped)
        return ticks

    def teardown(self) -> None:
        """Stop the force loop and drop all cached work; rendering is refused after."""
        if self._closed:
            return
        self._invalidate()
        self._subscribers.clear()
        self.current = None
        self._closed = True
