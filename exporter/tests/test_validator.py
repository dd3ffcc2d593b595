"""
Tests for document validation.

Coverage matrix:

  empty headers                         -> EmptyHeadersError
  empty rows                            -> EmptyRowsError
  MAX_ROWS + 1 rows                     -> TooManyRowsError
  MAX_ROWS + 1 rows, any format         -> rejected before encoding
  ragged row (1-based index)            -> ColumnCountMismatchError
  oversized data cell / header          -> CellTooLongError
  several violations at once            -> first in the fixed order wins
  boundary values                       -> accepted
"""

import pytest

from exporter.app.errors import (
    CellTooLongError,
    ColumnCountMismatchError,
    DocumentValidationError,
    EmptyHeadersError,
    EmptyRowsError,
    TooManyRowsError,
)
from exporter.app.schemas.document import ExportFormat
from exporter.app.services.orchestrator import ExportOrchestrator
from exporter.app.validation.validator import MAX_CELL_LENGTH, MAX_ROWS, validate
from exporter.tests.fixtures.documents import make_document, numbered_rows


def test_accepts_well_formed_document():
    validate(make_document())


# ---------------------------------------------------------------------------
# Individual invariants
# ---------------------------------------------------------------------------

def test_rejects_empty_headers():
    with pytest.raises(EmptyHeadersError) as exc_info:
        validate(make_document(headers=[], rows=[["x"]]))

    assert str(exc_info.value) == "Headers cannot be empty"
    assert exc_info.value.details() == {"kind": "empty_headers"}


def test_rejects_empty_rows():
    with pytest.raises(EmptyRowsError) as exc_info:
        validate(make_document(rows=[]))

    assert str(exc_info.value) == "Data rows cannot be empty"


def test_rejects_too_many_rows():
    rows = numbered_rows(MAX_ROWS + 1)

    with pytest.raises(TooManyRowsError) as exc_info:
        validate(make_document(rows=rows))

    assert str(exc_info.value) == f"Too many rows: {MAX_ROWS + 1} (max {MAX_ROWS})"
    assert exc_info.value.details()["count"] == MAX_ROWS + 1


def test_accepts_exactly_max_rows():
    validate(make_document(rows=numbered_rows(MAX_ROWS)))


def test_column_mismatch_reports_one_based_row():
    rows = [["Ann", "30"], ["Ben", "41"], ["Cy"]]

    with pytest.raises(ColumnCountMismatchError) as exc_info:
        validate(make_document(rows=rows))

    err = exc_info.value
    assert (err.row, err.expected, err.actual) == (3, 2, 1)
    assert str(err) == "Row 3: column count mismatch (expected 2, got 1)"


def test_rejects_row_with_extra_cells():
    with pytest.raises(ColumnCountMismatchError) as exc_info:
        validate(make_document(rows=[["a", "b", "c"]]))

    assert exc_info.value.actual == 3


def test_rejects_oversized_data_cell():
    with pytest.raises(CellTooLongError) as exc_info:
        validate(make_document(rows=[["x" * (MAX_CELL_LENGTH + 1), "1"]]))

    assert str(exc_info.value) == (
        f"Cell content too long: {MAX_CELL_LENGTH + 1} chars (max {MAX_CELL_LENGTH})"
    )


def test_rejects_oversized_header():
    headers = ["Name", "h" * (MAX_CELL_LENGTH + 1)]

    with pytest.raises(CellTooLongError):
        validate(make_document(headers=headers))


def test_cell_at_limit_is_accepted():
    validate(make_document(rows=[["x" * MAX_CELL_LENGTH, "1"]]))


def test_cell_length_counts_characters_not_bytes():
    # 1000 three-byte characters is still 1000 characters
    validate(make_document(rows=[["€" * MAX_CELL_LENGTH, "1"]]))


# ---------------------------------------------------------------------------
# Ordering: only the first violation is reported
# ---------------------------------------------------------------------------

def test_empty_headers_win_over_empty_rows():
    with pytest.raises(EmptyHeadersError):
        validate(make_document(headers=[], rows=[]))


def test_row_count_checked_before_row_contents():
    rows = [["only-one"]] * (MAX_ROWS + 1)

    with pytest.raises(TooManyRowsError):
        validate(make_document(rows=rows))


class RecordingEncoder:
    def __init__(self, format: ExportFormat):
        self.format = format
        self.calls = 0

    def encode(self, document):
        self.calls += 1
        return b""


@pytest.mark.parametrize("export_format", list(ExportFormat))
def test_oversized_document_never_reaches_an_encoder(export_format):
    encoders = {f: RecordingEncoder(f) for f in ExportFormat}
    orchestrator = ExportOrchestrator(encoders)
    document = make_document(
        rows=numbered_rows(MAX_ROWS + 1), format=export_format
    )

    with pytest.raises(TooManyRowsError) as exc_info:
        orchestrator.execute(document)

    assert exc_info.value.count == MAX_ROWS + 1
    assert exc_info.value.limit == MAX_ROWS
    assert all(encoder.calls == 0 for encoder in encoders.values())


def test_earlier_row_violation_wins():
    rows = [
        ["Ann", "x" * (MAX_CELL_LENGTH + 1)],
        ["Ben"],
    ]

    with pytest.raises(CellTooLongError):
        validate(make_document(rows=rows))


def test_mismatch_in_row_wins_over_its_own_long_cell():
    rows = [["x" * (MAX_CELL_LENGTH + 1)]]

    with pytest.raises(ColumnCountMismatchError):
        validate(make_document(rows=rows))


def test_data_violation_wins_over_header_violation():
    headers = ["h" * (MAX_CELL_LENGTH + 1), "Age"]

    with pytest.raises(ColumnCountMismatchError):
        validate(make_document(headers=headers, rows=[["Ann"]]))


def test_all_violations_share_the_validation_base():
    with pytest.raises(DocumentValidationError) as exc_info:
        validate(make_document(rows=[]))

    assert exc_info.value.status_code == 400
    assert exc_info.value.error == "Validation failed"
