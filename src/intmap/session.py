"""
Mapping session.

Owns the current topology snapshot for one editing session. Edits go
through the pure operations in ``intmap.topology.editing``; each new
snapshot is handed to the view controller, which re-renders the active
view. Exports always render with the export labels (title, subtitle and
generation date) switched on.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Callable

from intmap.config.settings import Settings, get_settings
from intmap.core.errors import ExportCancelled, IntMapError
from intmap.export.document import DocumentMetadata, connection_table_markup
from intmap.export.pipeline import ExportPipeline, ExportResult
from intmap.layouts.base import LayoutKind
from intmap.logging import bind_session
from intmap.topology import editing
from intmap.topology.demo import example_topology
from intmap.topology.filters import ConnectionFilter
from intmap.topology.models import Connection, Direction, Quality, System, Topology
from intmap.view.controller import ViewController
from intmap.view.models import RenderedView, SummaryCounters


class MappingSession:
    """One user's integration map: topology, view state and exports."""

    def __init__(
        self,
        topology: Topology | None = None,
        settings: Settings | None = None,
        *,
        live: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.settings = settings or get_settings()
        self.log = bind_session(self.session_id)
        self._clock = clock or datetime.now
        self._topology = topology or Topology()
        self.view = ViewController(
            self._topology,
            self.settings,
            live=live,
            clock=self._today,
        )
        self.pipeline = ExportPipeline(
            supersample_factor=self.settings.supersample_factor,
            capture_timeout=self.settings.capture_timeout,
            clock=self._clock,
        )
        self.log.debug(
            "session_started",
            systems=len(self._topology.systems),
            connections=len(self._topology.connections),
        )

    def _today(self) -> date:
        return self._clock().date()

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def title(self) -> str:
        return str(self._topology.metadata.get("title") or "Integration Map")

    def _commit(self, topology: Topology, event: str, **context: object) -> None:
        self._topology = topology
        self.view.set_topology(topology)
        self.log.info(
            event,
            systems=len(topology.systems),
            connections=len(topology.connections),
            **context,
        )

    # Topology edits

    def load_example(self) -> Topology:
        """Replace the topology with the demo hospital map."""
        self._commit(example_topology(), "example_loaded")
        return self._topology

    def set_topology(self, topology: Topology) -> None:
        self._commit(topology, "topology_replaced")

    def add_system(self, name: str) -> System:
        topology, system = editing.add_system(self._topology, name)
        self._commit(topology, "system_added", system_id=system.id)
        return system

    def rename_system(self, system_id: str, name: str) -> None:
        self._commit(
            editing.rename_system(self._topology, system_id, name),
            "system_renamed",
            system_id=system_id,
        )

    def remove_system(self, system_id: str) -> None:
        self._commit(
            editing.remove_system(self._topology, system_id),
            "system_removed",
            system_id=system_id,
        )

    def add_connection(
        self,
        source: str,
        target: str,
        direction: Direction | str = Direction.ONE_WAY,
        quality: Quality | str = Quality.AUTOMATED,
        volume: float | None = None,
    ) -> tuple[Connection, ...]:
        topology, created = editing.add_connection(
            self._topology, source, target, direction, quality, volume
        )
        self._commit(topology, "connection_added", source=source, target=target)
        return created

    def remove_connection(self, source: str, target: str) -> None:
        self._commit(
            editing.remove_connection(self._topology, source, target),
            "connection_removed",
            source=source,
            target=target,
        )

    # View

    def set_filter(
        self,
        *,
        automated: bool = True,
        semi_automated: bool = True,
        manual: bool = True,
        one_way: bool = True,
        bidirectional: bool = True,
    ) -> None:
        self.view.set_filter(
            ConnectionFilter(
                automated=automated,
                semi_automated=semi_automated,
                manual=manual,
                one_way=one_way,
                bidirectional=bidirectional,
            )
        )

    def select_adapter(self, kind: LayoutKind | str) -> None:
        self.view.select_adapter(kind)

    def zoom(self, factor: float) -> float:
        """Set the zoom factor; returns the clamped value."""
        return self.view.set_zoom(factor)

    def pan(self, x: float, y: float) -> None:
        self.view.set_pan(x, y)

    def set_legend_visible(self, visible: bool) -> None:
        self.view.set_legend_visible(visible)

    def render(self) -> RenderedView:
        return self.view.render()

    def summary(self) -> SummaryCounters:
        return self.view.summary()

    # Export

    def _export_view(self) -> RenderedView | ExportResult:
        if self.view.closed:
            return ExportResult.failure(ExportCancelled("Session is closed"))
        try:
            return self.view.render(export_labels=True)
        except IntMapError as e:
            return ExportResult.failure(e)

    def export_raster(self) -> ExportResult:
        view = self._export_view()
        if isinstance(view, ExportResult):
            return view
        return self.pipeline.export_raster(view)

    def export_vector(self) -> ExportResult:
        view = self._export_view()
        if isinstance(view, ExportResult):
            return view
        return self.pipeline.export_vector(view)

    def export_document(
        self,
        metadata: DocumentMetadata | None = None,
        *,
        include_connections: bool = False,
    ) -> ExportResult:
        """PDF of the active view; optionally appends the filtered connection table."""
        metadata = metadata or DocumentMetadata(title=self.title)
        if include_connections:
            table = connection_table_markup(self.view.filtered)
            notes = f"{metadata.notes}\n\n{table}" if metadata.notes else table
            metadata = DocumentMetadata(title=metadata.title, author=metadata.author, notes=notes)

        view = self._export_view()
        if isinstance(view, ExportResult):
            return view
        return self.pipeline.export_document(view, metadata)

    def close(self) -> None:
        """Stop the force loop, cancel exports and refuse further work."""
        self.view.teardown()
        self.pipeline.close()
        self.log.info("session_closed")
