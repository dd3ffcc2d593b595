"""
Structural validation of tabular documents.

Checks run in a fixed order and stop at the first violation:

    1. headers non-empty
    2. rows non-empty
    3. row count <= MAX_ROWS
    4. row by row, in input order:
         a. row length == header length
         b. every cell <= MAX_CELL_LENGTH characters
    5. every header <= MAX_CELL_LENGTH characters

The order determines which single error a caller sees when several
invariants are violated and MUST remain stable.

The validator is a pure function with no state and may be called from any
number of threads concurrently.
"""

from __future__ import annotations

from exporter.app.errors import (
    CellTooLongError,
    ColumnCountMismatchError,
    EmptyHeadersError,
    EmptyRowsError,
    TooManyRowsError,
)
from exporter.app.schemas.document import TabularDocument

MAX_ROWS = 10_000
MAX_CELL_LENGTH = 1_000


def validate(document: TabularDocument) -> None:
    """
    Validate ``document`` or raise the first violated invariant.

    Raises:
        DocumentValidationError subclass describing the violation.
    """
    if not document.headers:
        raise EmptyHeadersError()

    if not document.rows:
        raise EmptyRowsError()

    if len(document.rows) > MAX_ROWS:
        raise TooManyRowsError(len(document.rows), MAX_ROWS)

    expected = len(document.headers)

    for index, row in enumerate(document.rows, start=1):
        if len(row) != expected:
            raise ColumnCountMismatchError(
                row=index,
                expected=expected,
                actual=len(row),
            )
        _check_cells(row)

    _check_cells(document.headers)


def _check_cells(cells) -> None:
    for cell in cells:
        if len(cell) > MAX_CELL_LENGTH:
            raise CellTooLongError(len(cell), MAX_CELL_LENGTH)
