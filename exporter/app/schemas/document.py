"""
Tabular document model.

A TabularDocument is the in-memory representation of exactly one export
request. It is built fresh per request, validated, encoded, and discarded.
Instances are frozen; headers and rows are stored as tuples so that nothing
downstream of validation can mutate them.

Shape errors that are not document invariants (a malformed colour, a
multi-character delimiter) are rejected here by Pydantic. The ordered
document invariants (non-empty headers, row limits, column counts, cell
lengths) are the Validator's job and are deliberately NOT enforced by this
model, so that the Validator alone decides which single error a caller sees.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations (closed)
# ---------------------------------------------------------------------------


class ExportFormat(str, Enum):
    """
    Supported output formats.

    This enumeration is closed: the orchestrator refuses to start unless an
    encoder is registered for every member.
    """

    EXCEL = "excel"
    CSV = "csv"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @classmethod
    def parse(cls, value: str) -> Optional["ExportFormat"]:
        """Case-insensitive lookup; returns None for unknown tags."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_EXTENSIONS = {
    ExportFormat.EXCEL: "xlsx",
    ExportFormat.CSV: "csv",
    ExportFormat.PDF: "pdf",
}

_MIME_TYPES = {
    ExportFormat.EXCEL: (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    ),
    ExportFormat.CSV: "text/csv",
    ExportFormat.PDF: "application/pdf",
}


class ColumnType(str, Enum):
    """Presentation type of a column. Cell values always remain strings."""

    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"

    @property
    def is_right_aligned(self) -> bool:
        """Spreadsheet alignment: every typed column, dates included."""
        return self is not ColumnType.TEXT

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_COLUMN_TYPES


_NUMERIC_COLUMN_TYPES = frozenset(
    {ColumnType.NUMBER, ColumnType.CURRENCY, ColumnType.PERCENTAGE}
)


# ---------------------------------------------------------------------------
# Options and column hints
# ---------------------------------------------------------------------------

_HEX_COLOUR = re.compile(r"^#?[0-9A-Fa-f]{6}$")


class ExportOptions(BaseModel):
    """
    Optional styling and serialization hints.

    Every field is optional. Unset flags are treated as false, except
    include_header_row, which defaults to true.
    """

    freeze_headers: Optional[bool] = None
    auto_fit_columns: Optional[bool] = None
    header_bold: Optional[bool] = None
    header_background: Optional[str] = Field(
        None,
        description="Header fill colour as hex, e.g. '#D9E1F2'",
    )
    include_header_row: Optional[bool] = None
    delimiter: Optional[str] = Field(
        None,
        description="Single-character field delimiter for CSV output",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("header_background")
    @classmethod
    def validate_header_background(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not _HEX_COLOUR.match(v):
            raise ValueError(
                f"header_background must be a hex colour like '#D9E1F2', got '{v}'"
            )
        return v.lstrip("#").upper()

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) != 1:
            raise ValueError("delimiter must be exactly one character")
        if v in {'"', "\r", "\n"}:
            raise ValueError("delimiter must not be a quote or line break")
        return v

    @property
    def writes_header_row(self) -> bool:
        return self.include_header_row is not False


class ColumnMetadata(BaseModel):
    column_type: ColumnType = ColumnType.TEXT
    width_hint: Optional[float] = Field(None, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


_DEFAULT_COLUMN = ColumnMetadata()


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class TabularDocument(BaseModel):
    title: str = Field(..., min_length=1)
    format: ExportFormat
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]
    options: ExportOptions = Field(default_factory=ExportOptions)
    column_metadata: Tuple[ColumnMetadata, ...] = ()

    model_config = ConfigDict(frozen=True)

    def column(self, index: int) -> ColumnMetadata:
        """Column hint for ``index``; text with no width when not supplied."""
        if index < len(self.column_metadata):
            return self.column_metadata[index]
        return _DEFAULT_COLUMN
