"""Export pipeline: PNG, SVG and paginated PDF artifacts."""

from intmap.export.document import (
    Block,
    BlockKind,
    DocumentMetadata,
    PaginatedDocumentWriter,
    compose_document,
    connection_table_markup,
    parse_blocks,
)
from intmap.export.pipeline import (
    PDF,
    PNG,
    SVG,
    XML_DECLARATION,
    Artifact,
    ExportPipeline,
    ExportResult,
    artifact_filename,
    summary_rows,
    write_artifact,
)

__all__ = [
    "PDF",
    "PNG",
    "SVG",
    "XML_DECLARATION",
    "Artifact",
    "Block",
    "BlockKind",
    "DocumentMetadata",
    "ExportPipeline",
    "ExportResult",
    "PaginatedDocumentWriter",
    "artifact_filename",
    "compose_document",
    "connection_table_markup",
    "parse_blocks",
    "summary_rows",
    "write_artifact",
]
