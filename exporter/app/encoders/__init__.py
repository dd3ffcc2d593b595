from typing import Dict, Optional

from exporter.app.encoders.base import Encoder
from exporter.app.encoders.delimited import DelimitedTextEncoder
from exporter.app.encoders.paginated import PaginatedDocumentEncoder, PdfLayout
from exporter.app.encoders.spreadsheet import SpreadsheetEncoder
from exporter.app.schemas.document import ExportFormat


def build_encoders(
    *,
    csv_line_terminator: str = "\n",
    pdf_layout: Optional[PdfLayout] = None,
) -> Dict[ExportFormat, Encoder]:
    """One encoder per ExportFormat member."""
    encoders = [
        SpreadsheetEncoder(),
        DelimitedTextEncoder(line_terminator=csv_line_terminator),
        PaginatedDocumentEncoder(layout=pdf_layout),
    ]
    return {encoder.format: encoder for encoder in encoders}


__all__ = [
    "Encoder",
    "DelimitedTextEncoder",
    "PaginatedDocumentEncoder",
    "PdfLayout",
    "SpreadsheetEncoder",
    "build_encoders",
]
