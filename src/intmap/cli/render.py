"""
CLI command for rendering and exporting a view.

Commands:
    intmap render <topology.yaml> --view matrix --format png
    intmap render --demo --view network --format svg --only automated
    intmap render --demo --view flow --format pdf --include-connections
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from intmap.cli.topology import add_source_arguments, load_source
from intmap.cli.ux import info, success, warning
from intmap.config.settings import Settings, get_settings
from intmap.core.errors import ExitCode, ValidationError
from intmap.export.document import DocumentMetadata
from intmap.export.pipeline import ExportResult, write_artifact
from intmap.layouts.base import LayoutKind
from intmap.session import MappingSession
from intmap.topology.filters import ConnectionFilter

FORMATS = ("png", "svg", "pdf")
QUALITY_CHOICES = ("automated", "semi-automated", "manual")
DIRECTION_CHOICES = ("one-way", "bidirectional")


def _split(value: Optional[str]) -> list[str] | None:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def filter_from_args(only: Optional[str], direction: Optional[str]) -> ConnectionFilter:
    """``--only`` and ``--direction`` comma lists as a connection filter."""
    return ConnectionFilter.from_choices(_split(only), _split(direction))


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--only",
        help=f"Comma-separated qualities to keep ({', '.join(QUALITY_CHOICES)})",
    )
    parser.add_argument(
        "--direction",
        help=f"Comma-separated directions to keep ({', '.join(DIRECTION_CHOICES)})",
    )


def render_command(
    topology_file: str | None = None,
    view: str = "matrix",
    output_format: str = "png",
    only: Optional[str] = None,
    direction: Optional[str] = None,
    zoom: float = 1.0,
    show_legend: bool = True,
    output_dir: Optional[str] = None,
    title: Optional[str] = None,
    notes_file: Optional[str] = None,
    include_connections: bool = False,
    demo: bool = False,
    settings: Settings | None = None,
) -> int:
    """
    Render one view of a topology and write it as PNG, SVG or PDF.

    Returns:
        Exit code (0 on success)
    """
    if output_format not in FORMATS:
        raise ValidationError("Unknown export format", {"format": output_format})

    settings = settings or get_settings()
    topology = load_source(topology_file, demo)
    connection_filter = filter_from_args(only, direction)

    session = MappingSession(topology, settings)
    try:
        session.select_adapter(view)
        session.view.set_filter(connection_filter)
        if zoom != 1.0:
            applied = session.zoom(zoom)
            if applied != zoom:
                warning(f"Zoom clamped to {applied:g}")
        if not show_legend:
            session.set_legend_visible(False)

        result = _export(session, output_format, title, notes_file, include_connections)
        if not result.ok:
            assert result.error is not None
            raise result.error

        assert result.artifact is not None
        path = write_artifact(result.artifact, output_dir or settings.output_dir)
        summary = session.summary()
    finally:
        session.close()

    info(
        f"{summary.total_systems} systems, {summary.filtered_connections} of "
        f"{summary.total_connections} connections shown"
    )
    success(f"Wrote {LayoutKind.parse(view).title} to {path}")
    return ExitCode.SUCCESS


def _export(
    session: MappingSession,
    output_format: str,
    title: Optional[str],
    notes_file: Optional[str],
    include_connections: bool,
) -> ExportResult:
    if output_format == "png":
        return session.export_raster()
    if output_format == "svg":
        return session.export_vector()

    notes = Path(notes_file).read_text(encoding="utf-8") if notes_file else ""
    metadata = DocumentMetadata(title=title or session.title, notes=notes)
    return session.export_document(metadata, include_connections=include_connections)


def register_render_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "render",
        help="Render a view and export it as PNG, SVG or PDF",
    )
    add_source_arguments(parser)
    parser.add_argument(
        "--view",
        "-v",
        choices=[kind.value for kind in LayoutKind],
        default=LayoutKind.MATRIX.value,
        help="View to render (default: matrix)",
    )
    parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=FORMATS,
        default="png",
        help="Export format (default: png)",
    )
    add_filter_arguments(parser)
    parser.add_argument("--zoom", type=float, default=1.0, help="Zoom factor (0.5 - 3.0)")
    parser.add_argument(
        "--no-legend",
        dest="show_legend",
        action="store_false",
        help="Hide the legend",
    )
    parser.add_argument("--output-dir", "-o", help="Directory for the exported file")
    parser.add_argument("--title", help="Document title (pdf only)")
    parser.add_argument(
        "--notes",
        dest="notes_file",
        help="File with extra notes appended to the document (pdf only)",
    )
    parser.add_argument(
        "--include-connections",
        action="store_true",
        help="Append the filtered connection table to the document (pdf only)",
    )


def handle_render_command(args: argparse.Namespace, settings: Settings | None = None) -> int:
    return render_command(
        topology_file=args.topology_file,
        view=args.view,
        output_format=args.output_format,
        only=args.only,
        direction=args.direction,
        zoom=args.zoom,
        show_legend=args.show_legend,
        output_dir=args.output_dir,
        title=args.title,
        notes_file=args.notes_file,
        include_connections=args.include_connections,
        demo=args.demo,
        settings=settings,
    )
