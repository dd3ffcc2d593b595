from __future__ import annotations

from typing import Protocol

from exporter.app.schemas.document import ExportFormat, TabularDocument


class Encoder(Protocol):
    """
    Interface shared by every format encoder.

    Implementations must be:
    - pure (same document -> same bytes)
    - free of mutable state shared across calls
    - safe to call concurrently on independent documents

    Encoders only ever receive documents that have passed validation.
    Internal failures are raised as EncodeError.
    """

    format: ExportFormat

    def encode(self, document: TabularDocument) -> bytes:
        ...
