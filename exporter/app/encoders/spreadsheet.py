"""
Spreadsheet (xlsx) encoder.

Produces a single-worksheet workbook with openpyxl.

Layout:
- header row first (unless include_header_row is false)
- data rows follow in input order

Presentation rules:
- header_bold / header_background style header cells only
- auto_fit_columns derives each width from the longest string in the
  column; otherwise DEFAULT_COLUMN_WIDTH is used everywhere
- an explicit width_hint overrides the computed width for its column
- freeze_headers freezes the pane below the header row
- non-text column types right-align data cells and attach a number format

Cell values are ALWAYS written as strings. A value such as "=SUM(A1:A3)"
or "#N/A" is stored as literal text, never as a formula or error. Number
formats are a presentation overlay only.

Serialization is normalized (fixed document property timestamps and zip
entry timestamps) so that the same document always yields the same bytes.
"""

from __future__ import annotations

import io
import re
import zipfile
from datetime import datetime
from typing import Iterable, List

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.writer.excel import ExcelWriter

from exporter.app.errors import EncodeError
from exporter.app.schemas.document import (
    ColumnType,
    ExportFormat,
    TabularDocument,
)

DEFAULT_COLUMN_WIDTH = 20.0
AUTO_FIT_CHAR_WIDTH = 1.2
AUTO_FIT_PADDING = 2.0
MIN_COLUMN_WIDTH = 8.0
MAX_COLUMN_WIDTH = 255.0

NUMBER_FORMATS = {
    ColumnType.NUMBER: "#,##0.00",
    ColumnType.CURRENCY: '"$"#,##0.00',
    ColumnType.PERCENTAGE: "0.00%",
    ColumnType.DATE: "yyyy-mm-dd",
}

MAX_SHEET_TITLE_LENGTH = 31
_INVALID_SHEET_TITLE_CHARS = re.compile(r"[\\*?:/\[\]]")

_FIXED_TIMESTAMP = datetime(2000, 1, 1)
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

_BOLD = Font(bold=True)
_RIGHT = Alignment(horizontal="right")
_LEFT = Alignment(horizontal="left")


def sheet_title(title: str) -> str:
    """Derive a worksheet name Excel accepts from a document title."""
    cleaned = _INVALID_SHEET_TITLE_CHARS.sub("", title).strip().strip("'")
    cleaned = cleaned[:MAX_SHEET_TITLE_LENGTH].strip()
    return cleaned or "Sheet1"


def storable_text(value: str) -> str:
    """Drop control characters the xlsx format cannot store."""
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def auto_fit_width(values: Iterable[str]) -> float:
    longest = max((len(v) for v in values), default=0)
    width = longest * AUTO_FIT_CHAR_WIDTH + AUTO_FIT_PADDING
    return min(max(width, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)


class SpreadsheetEncoder:
    format = ExportFormat.EXCEL

    def encode(self, document: TabularDocument) -> bytes:
        try:
            workbook = self._build_workbook(document)
            return _serialize(workbook)
        except EncodeError:
            raise
        except Exception as exc:
            raise EncodeError(self.format.value, str(exc)) from exc

    # ------------------------------------------------------------------
    # Workbook construction
    # ------------------------------------------------------------------

    def _build_workbook(self, document: TabularDocument) -> Workbook:
        options = document.options
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_title(document.title)

        header_fill = None
        if options.header_background:
            header_fill = PatternFill(
                start_color=options.header_background,
                end_color=options.header_background,
                fill_type="solid",
            )

        row_number = 1

        if options.writes_header_row:
            for col_idx, header in enumerate(document.headers, start=1):
                cell = worksheet.cell(row=1, column=col_idx)
                cell.value = storable_text(header)
                cell.data_type = "s"
                if options.header_bold:
                    cell.font = _BOLD
                if header_fill is not None:
                    cell.fill = header_fill
            row_number = 2

        column_types: List[ColumnType] = [
            document.column(i).column_type for i in range(len(document.headers))
        ]

        for row in document.rows:
            for col_idx, value in enumerate(row, start=1):
                cell = worksheet.cell(row=row_number, column=col_idx)
                cell.value = storable_text(value)
                cell.data_type = "s"

                column_type = column_types[col_idx - 1]
                if column_type.is_right_aligned:
                    cell.alignment = _RIGHT
                    cell.number_format = NUMBER_FORMATS[column_type]
                else:
                    cell.alignment = _LEFT
            row_number += 1

        self._apply_column_widths(worksheet, document)

        if options.freeze_headers and options.writes_header_row:
            worksheet.freeze_panes = "A2"

        return workbook

    def _apply_column_widths(self, worksheet, document: TabularDocument) -> None:
        include_header = document.options.writes_header_row

        for col_idx in range(len(document.headers)):
            hint = document.column(col_idx).width_hint

            if hint is not None:
                width = min(hint, MAX_COLUMN_WIDTH)
            elif document.options.auto_fit_columns:
                values = [row[col_idx] for row in document.rows]
                if include_header:
                    values.append(document.headers[col_idx])
                width = auto_fit_width(values)
            else:
                width = DEFAULT_COLUMN_WIDTH

            letter = get_column_letter(col_idx + 1)
            worksheet.column_dimensions[letter].width = width


# ---------------------------------------------------------------------------
# Deterministic serialization
# ---------------------------------------------------------------------------


def _serialize(workbook: Workbook) -> bytes:
    # Workbook.save() stamps "modified" with the wall clock, so the writer
    # is driven directly with fixed document properties.
    workbook.properties.created = _FIXED_TIMESTAMP
    workbook.properties.modified = _FIXED_TIMESTAMP

    raw = io.BytesIO()
    archive = zipfile.ZipFile(raw, "w", zipfile.ZIP_DEFLATED, allowZip64=True)
    ExcelWriter(workbook, archive).save()

    return _normalize_archive(raw.getvalue())


def _normalize_archive(data: bytes) -> bytes:
    """Rewrite every zip entry with a fixed timestamp, preserving order."""
    out = io.BytesIO()

    with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as target:
        for info in source.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=_ZIP_EPOCH)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = info.external_attr
            target.writestr(entry, source.read(info.filename))

    return out.getvalue()
