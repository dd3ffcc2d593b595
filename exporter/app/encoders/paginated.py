"""
Paginated-document (PDF) encoder.

Draws a simple tabular report onto A4 pages with pikepdf.

Page flow:
    title line
    header line (bold, underlined by a thin rule)
    one line per data row, top to bottom

A vertical cursor advances by a fixed line height per row. When the cursor
crosses the bottom margin a new page is started and the cursor resets to
the top margin. The header line is NOT repeated on later pages unless the
layout enables repeat_headers. Every page carries a "Page N" footer.

Fonts
-----
With ``PdfLayout.font_path`` set, the TrueType font is embedded and any
character in its cmap renders (Thai, CJK, ...). Without it the base-14
Helvetica fonts are used, which cover cp1252 only. Either way, characters
the font cannot draw are counted and logged as ``pdf_glyphs_missing``.

Row cap
-------
``PdfLayout.max_rendered_rows`` bounds how many data rows are drawn. It
defaults to None, meaning every row is paginated. When a cap is configured
and exceeded, the remaining rows are not drawn and an explicit note line
states how many rows were omitted. Truncation is never silent.

Determinism
-----------
No timestamps are written and the document ID is derived from content, so
the same document always yields the same bytes.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pikepdf
from pikepdf import Array, Dictionary, Name, Operator, Stream, String
from pydantic import BaseModel, ConfigDict, Field

from exporter.app.encoders.fonts import FontRun, load_faces
from exporter.app.encoders.text_formatting import (
    max_chars_for_width,
    sanitize,
    truncate,
)
from exporter.app.errors import EncodeError
from exporter.app.schemas.document import ExportFormat, TabularDocument

logger = logging.getLogger("exporter.encoders.pdf")

PT_PER_MM = 72.0 / 25.4

_REGULAR = Name("/F1")
_BOLD = Name("/F2")

_NUMERIC_HEADER_KEYWORDS = (
    "amount", "total", "sum", "count", "qty", "quantity",
    "price", "cost", "rate", "value", "number", "num", "#",
    "balance", "credit", "debit", "fee", "tax", "discount",
    "percent", "%", "score", "points", "weight", "height",
    "width", "length", "size", "age", "year", "month", "day",
)


def mm(value: float) -> float:
    return value * PT_PER_MM


def is_numeric_header(header: str) -> bool:
    lowered = header.lower()
    return any(keyword in lowered for keyword in _NUMERIC_HEADER_KEYWORDS)


def is_right_aligned_column(document: TabularDocument, index: int) -> bool:
    """
    Numeric columns are right-aligned in the PDF; dates and text are not.

    Explicit column metadata wins over the header keyword heuristic.
    """
    if index < len(document.column_metadata):
        return document.column_metadata[index].column_type.is_numeric
    return is_numeric_header(document.headers[index])


# ---------------------------------------------------------------------------
# Layout configuration
# ---------------------------------------------------------------------------


class PdfLayout(BaseModel):
    """
    Page geometry and typography. Lengths are in millimetres, font sizes
    in points.
    """

    page_width: float = 210.0
    page_height: float = 297.0

    margin_top: float = 20.0
    margin_bottom: float = 20.0
    margin_left: float = 20.0
    margin_right: float = 20.0

    title_size: float = 16.0
    header_size: float = 10.0
    body_size: float = 10.0
    page_number_size: float = 8.0
    line_height: float = 7.0

    title_bottom: float = 15.0
    header_line_offset: float = 4.0
    header_to_content: float = 10.0
    cell_padding: float = 2.0
    page_number_area: float = 20.0
    content_top_offset: float = 10.0

    font_path: Optional[Path] = Field(
        None,
        description="TrueType font embedded for body text (Unicode coverage)",
    )
    bold_font_path: Optional[Path] = Field(
        None,
        description="TrueType font for title and headers; defaults to font_path",
    )

    repeat_headers: bool = False
    max_rendered_rows: Optional[int] = Field(
        None,
        ge=1,
        description=(
            "Upper bound on rendered data rows. None paginates every row. "
            "Rows beyond the bound are replaced by an explicit note line."
        ),
    )

    model_config = ConfigDict(frozen=True)

    @property
    def page_size(self) -> Tuple[float, float]:
        return mm(self.page_width), mm(self.page_height)

    @property
    def content_width(self) -> float:
        return mm(self.page_width - self.margin_left - self.margin_right)

    def column_width(self, columns: int) -> float:
        return self.content_width / max(columns, 1)

    @property
    def content_start_y(self) -> float:
        return mm(self.page_height - self.margin_top - self.content_top_offset)

    @property
    def effective_bottom(self) -> float:
        return mm(self.margin_bottom + self.page_number_area)


# ---------------------------------------------------------------------------
# Page content builder
# ---------------------------------------------------------------------------


def _num(value: float) -> float:
    return round(value, 2)


class _PageContent:
    """Accumulates content stream instructions for one page."""

    def __init__(self, runs: Mapping[Name, FontRun]) -> None:
        self._runs = runs
        self.instructions: List[Tuple[list, Operator]] = []

    def text(self, font: Name, size: float, x: float, y: float, text: str) -> None:
        self.instructions.extend(
            [
                ([], Operator("BT")),
                ([font, _num(size)], Operator("Tf")),
                ([_num(x), _num(y)], Operator("Td")),
                ([String(self._runs[font].encode(text))], Operator("Tj")),
                ([], Operator("ET")),
            ]
        )

    def rule(self, x1: float, x2: float, y: float) -> None:
        self.instructions.extend(
            [
                ([], Operator("q")),
                ([0.8, 0.8, 0.8], Operator("RG")),
                ([0.5], Operator("w")),
                ([_num(x1), _num(y)], Operator("m")),
                ([_num(x2), _num(y)], Operator("l")),
                ([], Operator("S")),
                ([], Operator("Q")),
            ]
        )

    def serialize(self) -> bytes:
        return pikepdf.unparse_content_stream(self.instructions)


# ---------------------------------------------------------------------------
# Encoder
# ---------------------------------------------------------------------------


class PaginatedDocumentEncoder:
    format = ExportFormat.PDF

    def __init__(self, layout: Optional[PdfLayout] = None) -> None:
        self.layout = layout or PdfLayout()
        self._regular, self._bold = load_faces(
            self.layout.font_path, self.layout.bold_font_path
        )

    def encode(self, document: TabularDocument) -> bytes:
        regular_run = self._regular.start()
        bold_run = regular_run if self._bold is self._regular else self._bold.start()
        runs: Dict[Name, FontRun] = {_REGULAR: regular_run, _BOLD: bold_run}
        try:
            pages = self._render_pages(document, runs)
            payload = self._assemble(document.title, pages, runs)
        except EncodeError:
            raise
        except Exception as exc:
            raise EncodeError(self.format.value, str(exc)) from exc

        missing = regular_run.missing
        if bold_run is not regular_run:
            missing += bold_run.missing
        if missing:
            logger.warning(
                "pdf_glyphs_missing",
                extra={
                    "count": missing,
                    "regular_font": self._regular.name,
                    "bold_font": self._bold.name,
                },
            )
        return payload

    # ------------------------------------------------------------------
    # Layout pass
    # ------------------------------------------------------------------

    def _render_pages(
        self, document: TabularDocument, runs: Mapping[Name, FontRun]
    ) -> List[_PageContent]:
        layout = self.layout
        column_width = layout.column_width(len(document.headers))
        max_chars = max_chars_for_width(column_width, layout.body_size)
        right_aligned = [
            is_right_aligned_column(document, i)
            for i in range(len(document.headers))
        ]
        draw_headers = document.options.writes_header_row

        rows: Sequence[Sequence[str]] = document.rows
        omitted = 0
        cap = layout.max_rendered_rows
        if cap is not None and len(rows) > cap:
            omitted = len(rows) - cap
            rows = rows[:cap]

        pages = [_PageContent(runs)]
        y = layout.content_start_y
        y = self._draw_title(pages[-1], document.title, y)
        if draw_headers:
            y = self._draw_headers(pages[-1], document.headers, column_width, y)

        for row in rows:
            if y < layout.effective_bottom:
                pages.append(_PageContent(runs))
                y = layout.content_start_y
                if draw_headers and layout.repeat_headers:
                    y = self._draw_headers(
                        pages[-1], document.headers, column_width, y
                    )

            self._draw_row(pages[-1], row, column_width, max_chars, right_aligned, y)
            y -= mm(layout.line_height)

        if omitted:
            if y < layout.effective_bottom:
                pages.append(_PageContent(runs))
                y = layout.content_start_y
            pages[-1].text(
                _REGULAR,
                layout.body_size,
                mm(layout.margin_left),
                y,
                f"... {omitted} more rows not rendered "
                f"(limit {cap} rows per document)",
            )

        for number, page in enumerate(pages, start=1):
            self._draw_page_number(page, number)

        return pages

    def _draw_title(self, page: _PageContent, title: str, y: float) -> float:
        layout = self.layout
        page.text(_BOLD, layout.title_size, mm(layout.margin_left), y, sanitize(title))
        return y - mm(layout.title_bottom)

    def _draw_headers(
        self,
        page: _PageContent,
        headers: Sequence[str],
        column_width: float,
        y: float,
    ) -> float:
        layout = self.layout
        left = mm(layout.margin_left)

        # Headers are left-aligned and never truncated
        for col_idx, header in enumerate(headers):
            page.text(
                _BOLD,
                layout.header_size,
                left + column_width * col_idx,
                y,
                sanitize(header),
            )

        page.rule(
            left,
            mm(layout.page_width - layout.margin_right),
            y - mm(layout.header_line_offset),
        )
        return y - mm(layout.header_to_content)

    def _draw_row(
        self,
        page: _PageContent,
        row: Sequence[str],
        column_width: float,
        max_chars: int,
        right_aligned: Sequence[bool],
        y: float,
    ) -> None:
        layout = self.layout
        left_margin = mm(layout.margin_left)
        content_right = mm(layout.page_width - layout.margin_right)

        for col_idx, cell in enumerate(row):
            text = sanitize(truncate(cell, max_chars))
            left = left_margin + column_width * col_idx
            x = left

            if right_aligned[col_idx]:
                right = min(left + column_width, content_right)
                x = max(
                    right
                    - self._regular.text_width(text, layout.body_size)
                    - mm(layout.cell_padding),
                    left,
                )

            page.text(_REGULAR, layout.body_size, x, y, text)

    def _draw_page_number(self, page: _PageContent, number: int) -> None:
        layout = self.layout
        page.text(
            _REGULAR,
            layout.page_number_size,
            mm(layout.page_width / 2.0 - 10.0),
            mm(layout.margin_bottom),
            f"Page {number}",
        )

    # ------------------------------------------------------------------
    # PDF assembly
    # ------------------------------------------------------------------

    def _assemble(
        self,
        title: str,
        pages: List[_PageContent],
        runs: Mapping[Name, FontRun],
    ) -> bytes:
        buffer = io.BytesIO()

        with pikepdf.new() as pdf:
            regular = runs[_REGULAR].to_pdf(pdf)
            bold = regular if runs[_BOLD] is runs[_REGULAR] else runs[_BOLD].to_pdf(pdf)
            resources = pdf.make_indirect(
                Dictionary(
                    Font=Dictionary(F1=regular, F2=bold),
                    ProcSet=Array([Name.PDF, Name.Text]),
                )
            )

            for content in pages:
                page = pdf.add_blank_page(page_size=self.layout.page_size)
                page.Resources = resources
                page.Contents = pdf.make_indirect(
                    Stream(pdf, content.serialize())
                )

            pdf.docinfo["/Title"] = String(title)
            pdf.save(buffer, deterministic_id=True)

        return buffer.getvalue()
