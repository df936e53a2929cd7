"""
Paginated PDF documents.

Notes are written in a small line-oriented block grammar::

    # Heading
    ## Subheading
    **Bold line**
    | cell | cell |          (table row; markdown separator rows are skipped)
    - bullet                 (or "• bullet")
    ---                      (page break)
    anything else            (paragraph; blank lines add vertical space)

``PaginatedDocumentWriter`` lays blocks out top to bottom on A4 pages and
starts a new page whenever the next block does not fit.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import BinaryIO, Iterable

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from intmap.rendering.raster import font_path
from intmap.topology.models import Topology

REGULAR_FONT = "IntMapSans"
BOLD_FONT = "IntMapSans-Bold"

_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")


@dataclass(frozen=True)
class DocumentMetadata:
    """Caller-supplied parts of an exported document."""

    title: str = "Integration Map"
    author: str | None = None
    notes: str = ""


class BlockKind(Enum):
    HEADING = "heading"
    SUBHEADING = "subheading"
    BOLD = "bold"
    TABLE_ROW = "table_row"
    BULLET = "bullet"
    PAGE_BREAK = "page_break"
    PARAGRAPH = "paragraph"
    SPACER = "spacer"


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    text: str = ""
    cells: tuple[str, ...] = ()


def parse_blocks(markup: str) -> list[Block]:
    """Split block markup into blocks, one per line."""
    blocks: list[Block] = []
    for raw in markup.splitlines():
        line = raw.strip()
        if not line:
            blocks.append(Block(BlockKind.SPACER))
        elif line == "---":
            blocks.append(Block(BlockKind.PAGE_BREAK))
        elif line.startswith("## "):
            blocks.append(Block(BlockKind.SUBHEADING, line[3:].strip()))
        elif line.startswith("# "):
            blocks.append(Block(BlockKind.HEADING, line[2:].strip()))
        elif len(line) > 4 and line.startswith("**") and line.endswith("**"):
            blocks.append(Block(BlockKind.BOLD, line[2:-2].strip()))
        elif len(line) > 1 and line.startswith("|") and line.endswith("|"):
            cells = tuple(cell.strip() for cell in line[1:-1].split("|"))
            if all(_SEPARATOR_CELL.match(cell) for cell in cells):
                continue
            blocks.append(Block(BlockKind.TABLE_ROW, cells=cells))
        elif line.startswith(("- ", "• ")):
            blocks.append(Block(BlockKind.BULLET, line[2:].strip()))
        else:
            blocks.append(Block(BlockKind.PARAGRAPH, line))
    return blocks


@lru_cache(maxsize=1)
def register_fonts() -> tuple[str, str]:
    """Embed DejaVu Sans so symbols such as arrows survive in the PDF."""
    pdfmetrics.registerFont(TTFont(REGULAR_FONT, font_path(bold=False)))
    pdfmetrics.registerFont(TTFont(BOLD_FONT, font_path(bold=True)))
    return REGULAR_FONT, BOLD_FONT


# (font size, leading, bold, space before)
_TEXT_STYLES = {
    BlockKind.HEADING: (18, 22, True, 10),
    BlockKind.SUBHEADING: (14, 18, True, 8),
    BlockKind.BOLD: (11, 15, True, 2),
    BlockKind.PARAGRAPH: (11, 15, False, 2),
    BlockKind.BULLET: (11, 15, False, 2),
}


class PaginatedDocumentWriter:
    """Flowing layout of blocks and images over A4 pages."""

    def __init__(
        self,
        output: BinaryIO,
        *,
        title: str | None = None,
        author: str | None = None,
        margin: float = 20 * mm,
    ):
        self.regular, self.bold = register_fonts()
        self.canvas = canvas.Canvas(output, pagesize=A4)
        if title:
            self.canvas.setTitle(title)
        if author:
            self.canvas.setAuthor(author)
        self.page_width, self.page_height = A4
        self.margin = margin
        self.frame_width = self.page_width - 2 * margin
        self.frame_height = self.page_height - 2 * margin
        self.pages = 1
        self.y = self.top
        self._table_header_pending = True

    @property
    def top(self) -> float:
        return self.page_height - self.margin

    @property
    def remaining(self) -> float:
        return self.y - self.margin

    @property
    def page_is_empty(self) -> bool:
        return self.y >= self.top

    def new_page(self) -> None:
        self.canvas.showPage()
        self.pages += 1
        self.y = self.top

    def ensure(self, height: float) -> None:
        """Break the page unless ``height`` fits in what is left of it."""
        if height > self.remaining and not self.page_is_empty:
            self.new_page()

    def spacer(self, height: float = 8) -> None:
        if self.page_is_empty:
            return
        self.y -= min(height, self.remaining)

    def write(self, blocks: Iterable[Block]) -> None:
        for block in blocks:
            self.write_block(block)

    def write_block(self, block: Block) -> None:
        if block.kind is BlockKind.TABLE_ROW:
            self.table_row(block.cells, bold=self._table_header_pending)
            self._table_header_pending = False
            return
        self._table_header_pending = True

        if block.kind is BlockKind.PAGE_BREAK:
            if not self.page_is_empty:
                self.new_page()
        elif block.kind is BlockKind.SPACER:
            self.spacer()
        else:
            self.text(block.kind, block.text)

    def text(self, kind: BlockKind, text: str) -> None:
        size, leading, bold, before = _TEXT_STYLES[kind]
        font = self.bold if bold else self.regular
        indent = 6 * mm if kind is BlockKind.BULLET else 0
        lines = simpleSplit(text, font, size, self.frame_width - indent) or [""]

        # Keep the block together when it fits on a page at all
        self.ensure(min(before + leading * len(lines), self.frame_height))
        if not self.page_is_empty:
            self.y -= before

        for i, line in enumerate(lines):
            self.ensure(leading)
            self.y -= leading
            self.canvas.setFont(font, size)
            if kind is BlockKind.BULLET and i == 0:
                self.canvas.drawString(self.margin + 2 * mm, self.y, "•")
            self.canvas.drawString(self.margin + indent, self.y, line)

    def table_row(self, cells: tuple[str, ...], *, bold: bool = False) -> None:
        size, leading = 10, 13
        font = self.bold if bold else self.regular
        column_width = self.frame_width / max(len(cells), 1)
        wrapped = [simpleSplit(cell, font, size, column_width - 4) or [""] for cell in cells]
        height = leading * max(len(lines) for lines in wrapped) + 4

        self.ensure(height)
        self.canvas.setFont(font, size)
        for column, lines in enumerate(wrapped):
            x = self.margin + column * column_width + 2
            for i, line in enumerate(lines):
                self.canvas.drawString(x, self.y - leading * (i + 1), line)
        self.y -= height
        self.canvas.setLineWidth(0.5 if bold else 0.25)
        self.canvas.line(self.margin, self.y + 1, self.margin + self.frame_width, self.y + 1)

    def image(self, image: Image.Image) -> None:
        """Draw an image scaled to the frame width (and at most one frame high)."""
        width = self.frame_width
        height = width * image.height / image.width
        if height > self.frame_height:
            width *= self.frame_height / height
            height = self.frame_height
        self.ensure(height)
        self.y -= height
        x = self.margin + (self.frame_width - width) / 2
        self.canvas.drawImage(ImageReader(image), x, self.y, width=width, height=height)

    def save(self) -> None:
        self.canvas.save()


def format_timestamp(moment: datetime) -> str:
    return f"Generated on {moment:%B} {moment.day}, {moment.year} at {moment:%H:%M}"


def compose_document(
    image: Image.Image,
    *,
    title: str,
    generated_at: datetime,
    summary_rows: list[tuple[str, str]],
    notes: str = "",
    author: str | None = None,
) -> tuple[bytes, int]:
    """
    Lay out the export document.

    Returns:
        The PDF bytes and the number of pages.
    """
    buffer = io.BytesIO()
    writer = PaginatedDocumentWriter(buffer, title=title, author=author)
    writer.write_block(Block(BlockKind.HEADING, title))
    writer.write_block(Block(BlockKind.PARAGRAPH, format_timestamp(generated_at)))
    writer.spacer()
    writer.image(image)
    writer.spacer()

    writer.write_block(Block(BlockKind.SUBHEADING, "Summary"))
    writer.write_block(Block(BlockKind.TABLE_ROW, cells=("Metric", "Value")))
    for label, value in summary_rows:
        writer.write_block(Block(BlockKind.TABLE_ROW, cells=(label, value)))

    if notes.strip():
        writer.write_block(Block(BlockKind.SPACER))
        writer.write(parse_blocks(notes))

    writer.save()
    return buffer.getvalue(), writer.pages


def connection_table_markup(topology: Topology) -> str:
    """The connections of a topology as block markup, one table row each."""
    lines = [
        "## Connections",
        "| Source | Target | Direction | Quality | Volume |",
        "| --- | --- | --- | --- | --- |",
    ]
    for conn in topology.connections:
        lines.append(
            f"| {topology.name_of(conn.source)} | {topology.name_of(conn.target)} | "
            f"{conn.direction.value} | {conn.quality.value} | {conn.effective_volume:g} |"
        )
    return "\n".join(lines)
