"""Tests for the paginated PDF document writer."""

from __future__ import annotations

import io
from datetime import datetime

from PIL import Image

from intmap.export.document import (
    Block,
    BlockKind,
    PaginatedDocumentWriter,
    compose_document,
    connection_table_markup,
    format_timestamp,
    parse_blocks,
)


def _sample_image(width: int = 400, height: int = 300) -> Image.Image:
    return Image.new("RGB", (width, height), "#10b981")


def _sample_writer() -> PaginatedDocumentWriter:
    return PaginatedDocumentWriter(io.BytesIO(), title="Test")


class TestParseBlocks:
    def test_kinds(self):
        markup = "\n".join(
            [
                "# Title",
                "## Section",
                "**Important**",
                "- first",
                "• second",
                "",
                "---",
                "Plain text",
            ]
        )
        assert [b.kind for b in parse_blocks(markup)] == [
            BlockKind.HEADING,
            BlockKind.SUBHEADING,
            BlockKind.BOLD,
            BlockKind.BULLET,
            BlockKind.BULLET,
            BlockKind.SPACER,
            BlockKind.PAGE_BREAK,
            BlockKind.PARAGRAPH,
        ]

    def test_text_is_stripped_of_markers(self):
        blocks = parse_blocks("# Title\n**Bold**\n- item")
        assert [b.text for b in blocks] == ["Title", "Bold", "item"]

    def test_table_rows_skip_separator(self):
        blocks = parse_blocks("| A | B |\n| --- | :---: |\n| 1 | 2 |")
        assert blocks == [
            Block(BlockKind.TABLE_ROW, cells=("A", "B")),
            Block(BlockKind.TABLE_ROW, cells=("1", "2")),
        ]

    def test_lone_markers_are_paragraphs(self):
        assert parse_blocks("****")[0].kind is BlockKind.PARAGRAPH
        assert parse_blocks("#hashtag")[0].kind is BlockKind.PARAGRAPH


class TestPaginatedDocumentWriter:
    def test_long_notes_flow_onto_new_pages(self):
        writer = _sample_writer()
        writer.write(parse_blocks("\n".join(f"Paragraph {i}" for i in range(120))))
        assert writer.pages > 1

    def test_page_break_on_empty_page_is_ignored(self):
        writer = _sample_writer()
        writer.write_block(Block(BlockKind.PAGE_BREAK))
        assert writer.pages == 1
        writer.write_block(Block(BlockKind.PARAGRAPH, "text"))
        writer.write_block(Block(BlockKind.PAGE_BREAK))
        assert writer.pages == 2

    def test_spacer_at_top_of_page_is_ignored(self):
        writer = _sample_writer()
        writer.spacer()
        assert writer.page_is_empty

    def test_tall_image_is_capped_to_one_frame(self):
        writer = _sample_writer()
        writer.image(_sample_image(100, 2000))
        assert writer.pages == 1
        assert writer.y >= writer.margin - 1e-6

    def test_image_that_does_not_fit_starts_new_page(self):
        writer = _sample_writer()
        writer.image(_sample_image(400, 400))
        writer.image(_sample_image(400, 400))
        assert writer.pages == 2

    def test_table_rows_move_down(self):
        writer = _sample_writer()
        start = writer.y
        writer.table_row(("Metric", "Value"), bold=True)
        assert writer.y < start


class TestComposeDocument:
    def test_pdf_bytes(self):
        data, pages = compose_document(
            _sample_image(),
            title="Integration Map",
            generated_at=datetime(2026, 3, 14, 9, 30),
            summary_rows=[("Systems", "6")],
            notes="## Notes\nEHR → PAS is nightly.",
            author="Integration team",
        )
        assert data.startswith(b"%PDF")
        assert pages == 1

    def test_page_break_in_notes(self):
        _, pages = compose_document(
            _sample_image(),
            title="Integration Map",
            generated_at=datetime(2026, 3, 14, 9, 30),
            summary_rows=[],
            notes="Before\n---\nAfter",
        )
        assert pages == 2

    def test_format_timestamp(self):
        moment = datetime(2026, 3, 14, 9, 30)
        assert format_timestamp(moment) == "Generated on March 14, 2026 at 09:30"


class TestConnectionTable:
    def test_markup(self, fan_topology):
        markup = connection_table_markup(fan_topology)
        lines = markup.splitlines()
        assert lines[0] == "## Connections"
        assert lines[1] == "| Source | Target | Direction | Quality | Volume |"
        assert "| A | B | one-way | automated | 30 |" in lines
        assert "| A | C | one-way | semi-automated | 10 |" in lines

    def test_parses_as_table(self, fan_topology):
        blocks = parse_blocks(connection_table_markup(fan_topology))
        rows = [b for b in blocks if b.kind is BlockKind.TABLE_ROW]
        assert len(rows) == 3
