"""Tests for the export pipeline."""

from __future__ import annotations

import asyncio
import io
import time
from datetime import datetime

import pytest
from PIL import Image

from intmap.core.errors import (
    CaptureTimeout,
    ExportCancelled,
    ExportError,
    NoRenderableContent,
    NoVectorContent,
)
from intmap.export import (
    PDF,
    PNG,
    SVG,
    XML_DECLARATION,
    Artifact,
    DocumentMetadata,
    ExportPipeline,
    ExportResult,
    artifact_filename,
    summary_rows,
    write_artifact,
)
from intmap.layouts import LayoutKind
from intmap.topology.demo import example_topology
from intmap.topology.models import System, Topology
from intmap.view.controller import ViewController

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
MOMENT = datetime(2026, 3, 14, 9, 30)


class SlowSurface:
    """Capture surface whose pixels take longer than the capture timeout."""

    width = 100
    height = 50

    def __init__(self, delay: float):
        self.delay = delay

    def to_pixels(self, scale: float = 1.0) -> Image.Image:
        time.sleep(self.delay)
        return Image.new("RGB", (round(self.width * scale), round(self.height * scale)))

    def to_vector_markup(self) -> None:
        return None


class BrokenSurface(SlowSurface):
    def to_pixels(self, scale: float = 1.0) -> Image.Image:
        raise OSError("display lost")


@pytest.fixture
def pipeline(fixed_clock):
    return ExportPipeline(supersample_factor=2, capture_timeout=30.0, clock=fixed_clock)


def _sample_view(settings, fixed_clock, kind=LayoutKind.MATRIX, topology=None):
    controller = ViewController(topology or example_topology(), settings, clock=fixed_clock)
    controller.select_adapter(kind)
    return controller.render(export_labels=True)


# ===========================================================================
# Raster
# ===========================================================================


class TestRasterExport:
    def test_png_is_supersampled(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock)
        result = pipeline.export_raster(view)
        assert result.ok
        artifact = result.artifact
        assert artifact.media_type == PNG
        assert artifact.data.startswith(PNG_SIGNATURE)
        assert (artifact.width, artifact.height) == (1600, 2 * (600 + 110))
        with Image.open(io.BytesIO(artifact.data)) as image:
            assert image.size == (1600, 1420)

    def test_transition_view_rasterizes(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock, LayoutKind.TRANSITION)
        result = pipeline.export_raster(view)
        assert result.ok
        assert result.artifact.filename == "integration-transition-2026-03-14.png"

    def test_capture_timeout(self, fixed_clock, tmp_path):
        pipeline = ExportPipeline(capture_timeout=0.05, clock=fixed_clock)
        started = time.monotonic()
        result = pipeline.export_raster(SlowSurface(delay=1.5))
        elapsed = time.monotonic() - started
        pipeline.close()
        assert elapsed < 1.0
        assert not result.ok
        assert isinstance(result.error, CaptureTimeout)
        assert result.retryable
        assert result.artifact is None
        assert list(tmp_path.iterdir()) == []

    def test_unexpected_capture_failure(self, pipeline):
        result = pipeline.export_raster(BrokenSurface(delay=0))
        assert type(result.error) is ExportError
        assert result.message == "Capture failed"
        assert not result.retryable

    def test_placeholder_is_not_exported(self, pipeline, settings, fixed_clock):
        topology = Topology(systems=(System("1", "EHR"),))
        view = _sample_view(settings, fixed_clock, LayoutKind.FLOW, topology)
        result = pipeline.export_raster(view)
        assert isinstance(result.error, NoRenderableContent)
        assert result.message == "No connections to display"


# ===========================================================================
# Vector
# ===========================================================================


class TestVectorExport:
    def test_network_svg(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock, LayoutKind.NETWORK)
        result = pipeline.export_vector(view)
        assert result.ok
        text = result.artifact.data.decode("utf-8")
        assert text.startswith(XML_DECLARATION + "\n<svg")
        assert result.artifact.media_type == SVG
        assert result.artifact.filename == "integration-network-2026-03-14.svg"
        assert "Integration Map Diagram" in text

    def test_transition_has_no_vector_form(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock, LayoutKind.TRANSITION)
        result = pipeline.export_vector(view)
        assert isinstance(result.error, NoVectorContent)
        assert not result.retryable


# ===========================================================================
# Document
# ===========================================================================


class TestDocumentExport:
    def test_pdf(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock)
        result = pipeline.export_document(view, DocumentMetadata(title="Clinic", notes="Hello"))
        assert result.ok
        artifact = result.artifact
        assert artifact.media_type == PDF
        assert artifact.data.startswith(b"%PDF")
        assert artifact.pages >= 1
        assert artifact.filename == "integration-matrix-2026-03-14.pdf"

    def test_summary_rows(self, settings, fixed_clock):
        rows = dict(summary_rows(_sample_view(settings, fixed_clock)))
        assert rows == {
            "Systems": "6",
            "Connections": "10",
            "Filtered connections": "10",
            "View": "Integration Matrix",
        }


# ===========================================================================
# Lifecycle and artifacts
# ===========================================================================


class TestLifecycle:
    def test_closed_pipeline_cancels(self, pipeline, settings, fixed_clock):
        view = _sample_view(settings, fixed_clock)
        pipeline.close()
        assert pipeline.closed
        for export in (pipeline.export_raster, pipeline.export_vector, pipeline.export_document):
            result = export(view)
            assert isinstance(result.error, ExportCancelled)

    @pytest.mark.asyncio
    async def test_close_during_capture(self, fixed_clock):
        pipeline = ExportPipeline(capture_timeout=5.0, clock=fixed_clock)

        async def close_soon():
            await asyncio.sleep(0.05)
            pipeline.close()

        closer = asyncio.create_task(close_soon())
        result = await pipeline.aexport_raster(SlowSurface(delay=0.3))
        await closer
        assert isinstance(result.error, ExportCancelled)


class TestArtifacts:
    def test_filename(self):
        class View:
            kind = LayoutKind.FLOW

        assert artifact_filename(View(), "png", MOMENT) == "integration-flow-2026-03-14.png"
        assert artifact_filename(object(), "svg", MOMENT) == "integration-view-2026-03-14.svg"

    def test_write_is_atomic(self, tmp_path):
        artifact = Artifact("map.svg", SVG, b"<svg/>", 10, 10)
        target = tmp_path / "out" / "nested"
        path = write_artifact(artifact, target)
        assert path == target / "map.svg"
        assert path.read_bytes() == b"<svg/>"
        assert [p.name for p in target.iterdir()] == ["map.svg"]

    def test_write_replaces_existing(self, tmp_path):
        (tmp_path / "map.svg").write_bytes(b"old")
        Artifact("map.svg", SVG, b"new", 10, 10).write(tmp_path)
        assert (tmp_path / "map.svg").read_bytes() == b"new"

    def test_result_helpers(self):
        failure = ExportResult.failure(CaptureTimeout("slow"))
        assert not failure.ok
        assert failure.retryable
        assert failure.message == "slow"
        success = ExportResult.success(Artifact("a.png", PNG, b"x", 1, 1))
        assert success.ok
        assert success.message is None
