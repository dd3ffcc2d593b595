"""
Error taxonomy for the export service.

Two independent families exist:

    ExportError     raised by the document pipeline (request conversion,
                    validation, encoding). Surfaced as 400 or 500.
    TokenError      raised by the credential component. Surfaced as 401
                    and never retried.

Every error carries a stable ``error`` label used as the ``error`` field of
the HTTP error body, a human-readable message, and (where the caller can
self-correct) structured details.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Export pipeline errors
# ---------------------------------------------------------------------------


class ExportError(Exception):
    """Base class for every failure of the export pipeline."""

    error: str = "Export failed"
    status_code: int = 400

    def details(self) -> Optional[Dict[str, Any]]:
        return None


class InvalidFormatError(ExportError):
    """Raised when a free-form format string names no known export format."""

    error = "Invalid format"

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid format: {value}")

    def details(self) -> Dict[str, Any]:
        return {"format": self.value}


class DocumentValidationError(ExportError):
    """
    Caller-supplied data violates a document invariant.

    Always recoverable by correcting the input. Only the first violated
    invariant is ever reported.
    """

    error = "Validation failed"
    kind: str = "validation"

    def details(self) -> Dict[str, Any]:
        return {"kind": self.kind}


class EmptyHeadersError(DocumentValidationError):
    kind = "empty_headers"

    def __init__(self) -> None:
        super().__init__("Headers cannot be empty")


class EmptyRowsError(DocumentValidationError):
    kind = "empty_rows"

    def __init__(self) -> None:
        super().__init__("Data rows cannot be empty")


class TooManyRowsError(DocumentValidationError):
    kind = "too_many_rows"

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(f"Too many rows: {count} (max {limit})")

    def details(self) -> Dict[str, Any]:
        return {"kind": self.kind, "count": self.count, "max": self.limit}


class ColumnCountMismatchError(DocumentValidationError):
    kind = "column_count_mismatch"

    def __init__(self, row: int, expected: int, actual: int) -> None:
        self.row = row
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Row {row}: column count mismatch "
            f"(expected {expected}, got {actual})"
        )

    def details(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "row": self.row,
            "expected": self.expected,
            "actual": self.actual,
        }


class CellTooLongError(DocumentValidationError):
    kind = "cell_too_long"

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(
            f"Cell content too long: {length} chars (max {limit})"
        )

    def details(self) -> Dict[str, Any]:
        return {"kind": self.kind, "length": self.length, "max": self.limit}


class EncodeError(ExportError):
    """
    Internal failure inside a format encoder.

    Indicates a defect, not a transient condition. Never retried.
    """

    error = "Export failed"
    status_code = 500

    def __init__(self, format_name: str, message: str) -> None:
        self.format_name = format_name
        super().__init__(f"{format_name} encoding failed: {message}")


# ---------------------------------------------------------------------------
# Credential errors
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for missing, invalid, or expired credentials."""

    error = "Unauthorized"
    status_code = 401


class MissingTokenError(TokenError):
    def __init__(self) -> None:
        super().__init__("Missing authorization token")


class InvalidTokenError(TokenError):
    def __init__(self, reason: str = "Invalid token") -> None:
        super().__init__(reason)


class ExpiredTokenError(TokenError):
    def __init__(self) -> None:
        super().__init__("Token expired")
