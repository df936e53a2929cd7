"""
Export pipeline.

Turns a rendered view into a PNG, SVG or PDF artifact. The pipeline only
relies on the capture interface of the view (``width``, ``height``,
``to_pixels`` and ``to_vector_markup``).

Captures run on the pipeline's own worker threads, bounded by
``capture_timeout``. A capture that overruns is abandoned, never joined, so
the caller gets ``CaptureTimeout`` on time. Failures
come back as ``ExportResult.failure`` values; nothing is written when an
export fails.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import io
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

import structlog
from PIL import Image

from intmap.core.errors import (
    CaptureTimeout,
    ExportCancelled,
    ExportError,
    IntMapError,
    NoRenderableContent,
    NoVectorContent,
)
from intmap.export.document import DocumentMetadata, compose_document
from intmap.rendering.surfaces import CaptureSurface

logger = structlog.get_logger()

T = TypeVar("T")

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="no"?>'

PNG = "image/png"
SVG = "image/svg+xml"
PDF = "application/pdf"


@dataclass(frozen=True)
class Artifact:
    """An exported file, held in memory until written."""

    filename: str
    media_type: str
    data: bytes
    width: int
    height: int
    pages: int = 1

    def write(self, directory: str | Path) -> Path:
        """Write into ``directory`` via a temporary file, so readers never see a partial file."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        temp_path = path.with_name(path.name + ".tmp")
        temp_path.write_bytes(self.data)
        temp_path.replace(path)
        return path


def write_artifact(artifact: Artifact, directory: str | Path) -> Path:
    path = artifact.write(directory)
    logger.info("artifact_written", path=str(path), size=len(artifact.data))
    return path


@dataclass(frozen=True)
class ExportResult:
    artifact: Artifact | None = None
    error: IntMapError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.artifact is not None

    @property
    def retryable(self) -> bool:
        return bool(getattr(self.error, "retryable", False))

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    @classmethod
    def success(cls, artifact: Artifact) -> ExportResult:
        return cls(artifact=artifact)

    @classmethod
    def failure(cls, error: IntMapError) -> ExportResult:
        return cls(error=error)


def artifact_filename(view: Any, extension: str, moment: datetime) -> str:
    """``integration-<view>-<YYYY-MM-DD>.<ext>``"""
    kind = getattr(view, "kind", None)
    name = getattr(kind, "value", None) or "view"
    return f"integration-{name}-{moment:%Y-%m-%d}.{extension}"


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def summary_rows(view: Any) -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = []
    summary = getattr(view, "summary", None)
    if summary is not None:
        rows += [
            ("Systems", str(summary.total_systems)),
            ("Connections", str(summary.total_connections)),
            ("Filtered connections", str(summary.filtered_connections)),
        ]
    title = getattr(view, "title", None)
    if title:
        rows.append(("View", title))
    return rows


class ExportPipeline:
    """Captures views and serializes them into artifacts."""

    def __init__(
        self,
        supersample_factor: int = 2,
        capture_timeout: float = 10.0,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.supersample_factor = supersample_factor
        self.capture_timeout = capture_timeout
        self._clock = clock
        self._executor = concurrent.futures.ThreadPoolExecutor(thread_name_prefix="intmap-capture")
        self._pending: set[asyncio.Future[Any]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Cancel in-flight captures and refuse new exports."""
        self._closed = True
        for future in list(self._pending):
            future.cancel()
        if self._pending:
            logger.info("exports_cancelled", count=len(self._pending))
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _capture(self, func: Callable[[], T]) -> T:
        if self._closed:
            raise ExportCancelled("Export pipeline is closed")
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, func)
        self._pending.add(future)
        try:
            return await asyncio.wait_for(future, timeout=self.capture_timeout)
        except asyncio.TimeoutError:
            raise CaptureTimeout(
                "Capture did not finish in time", {"timeout": self.capture_timeout}
            ) from None
        except asyncio.CancelledError:
            if self._closed:
                raise ExportCancelled("View was torn down during export") from None
            raise
        finally:
            self._pending.discard(future)

    def _check_view(self, view: CaptureSurface) -> None:
        if self._closed:
            raise ExportCancelled("Export pipeline is closed")
        placeholder = getattr(view, "placeholder", None)
        if placeholder:
            raise NoRenderableContent(placeholder)

    async def _run(self, fmt: str, view: CaptureSurface, build: Callable[[], Any]) -> ExportResult:
        try:
            self._check_view(view)
            artifact = await build()
        except IntMapError as e:
            logger.warning(
                "export_failed",
                format=fmt,
                error_type=type(e).__name__,
                message=e.message,
                retryable=getattr(e, "retryable", False),
            )
            return ExportResult.failure(e)
        except (OSError, ValueError) as e:
            logger.exception("export_failed", format=fmt, error_type=type(e).__name__)
            return ExportResult.failure(ExportError("Capture failed", {"reason": str(e)}))

        logger.info(
            "export_completed",
            format=fmt,
            filename=artifact.filename,
            size=len(artifact.data),
            pages=artifact.pages,
        )
        return ExportResult.success(artifact)

    # Coroutines

    async def aexport_raster(self, view: CaptureSurface) -> ExportResult:
        """PNG at ``supersample_factor`` times the view size."""
        factor = self.supersample_factor

        async def build() -> Artifact:
            def capture() -> tuple[bytes, tuple[int, int]]:
                image = view.to_pixels(factor)
                return encode_png(image), image.size

            data, (width, height) = await self._capture(capture)
            return Artifact(
                filename=artifact_filename(view, "png", self._clock()),
                media_type=PNG,
                data=data,
                width=width,
                height=height,
            )

        return await self._run("png", view, build)

    async def aexport_vector(self, view: CaptureSurface) -> ExportResult:
        """Standalone SVG document from the view's own markup."""

        async def build() -> Artifact:
            markup = view.to_vector_markup()
            if markup is None:
                raise NoVectorContent(
                    "This view has no vector representation",
                    {"view": getattr(getattr(view, "kind", None), "value", "view")},
                )
            document = f"{XML_DECLARATION}\n{markup}"
            return Artifact(
                filename=artifact_filename(view, "svg", self._clock()),
                media_type=SVG,
                data=document.encode("utf-8"),
                width=round(view.width),
                height=round(view.height),
            )

        return await self._run("svg", view, build)

    async def aexport_document(
        self, view: CaptureSurface, metadata: DocumentMetadata | None = None
    ) -> ExportResult:
        """Multi-page A4 PDF around the rasterized view."""
        metadata = metadata or DocumentMetadata()
        factor = self.supersample_factor

        async def build() -> Artifact:
            moment = self._clock()

            def capture() -> tuple[bytes, int]:
                return compose_document(
                    view.to_pixels(factor),
                    title=metadata.title,
                    generated_at=moment,
                    summary_rows=summary_rows(view),
                    notes=metadata.notes,
                    author=metadata.author,
                )

            data, pages = await self._capture(capture)
            return Artifact(
                filename=artifact_filename(view, "pdf", moment),
                media_type=PDF,
                data=data,
                width=round(view.width),
                height=round(view.height),
                pages=pages,
            )

        return await self._run("pdf", view, build)

    # Synchronous entry points

    def export_raster(self, view: CaptureSurface) -> ExportResult:
        return asyncio.run(self.aexport_raster(view))

    def export_vector(self, view: CaptureSurface) -> ExportResult:
        return asyncio.run(self.aexport_vector(view))

    def export_document(
        self, view: CaptureSurface, metadata: DocumentMetadata | None = None
    ) -> ExportResult:
        return asyncio.run(self.aexport_document(view, metadata))
