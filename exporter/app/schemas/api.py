"""
HTTP request and response models.

The request model accepts ``format`` as a free-form string so that an
unknown tag can be reported as "Invalid format" rather than as a generic
schema error. Conversion to the closed ExportFormat enum happens in
``ExportRequest.to_document()``.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from exporter.app.errors import InvalidFormatError
from exporter.app.schemas.document import (
    ColumnMetadata,
    ExportFormat,
    ExportOptions,
    TabularDocument,
)


class ExportRequest(BaseModel):
    title: str = Field(..., min_length=1, description="Document title")
    format: str = Field(..., description="One of 'excel', 'csv', 'pdf'")
    headers: List[str]
    rows: List[List[str]]
    options: Optional[ExportOptions] = None
    column_metadata: Optional[List[ColumnMetadata]] = None

    def to_document(self) -> TabularDocument:
        export_format = ExportFormat.parse(self.format)
        if export_format is None:
            raise InvalidFormatError(self.format)

        return TabularDocument(
            title=self.title,
            format=export_format,
            headers=tuple(self.headers),
            rows=tuple(tuple(row) for row in self.rows),
            options=self.options or ExportOptions(),
            column_metadata=tuple(self.column_metadata or ()),
        )


class TokenResponse(BaseModel):
    token: str
    expires_in: int
    token_type: Literal["Bearer"] = "Bearer"


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
