"""
Export orchestration.

Sequences the document pipeline:

    validate  ->  select encoder by document.format  ->  encode

Guarantees:
- No encoder ever sees a document that failed validation.
- Validation errors propagate unchanged (first violation only).
- Encoder failures surface as EncodeError; foreign exceptions raised inside
  an encoder are wrapped and chained, never swallowed.
- No retries. Encoding is a bounded, deterministic, in-memory transform;
  a failure is a defect, not a transient condition.

The encoder registry must cover every ExportFormat member. This is checked
once at construction so that adding a format without an encoder fails at
startup rather than at request time.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from exporter.app.encoders import Encoder, build_encoders
from exporter.app.errors import DocumentValidationError, EncodeError
from exporter.app.schemas.document import ExportFormat, TabularDocument
from exporter.app.validation.validator import validate

logger = logging.getLogger("exporter.orchestrator")

Validator = Callable[[TabularDocument], None]


class ExportOrchestrator:
    def __init__(
        self,
        encoders: Optional[Mapping[ExportFormat, Encoder]] = None,
        validator: Validator = validate,
    ) -> None:
        registry = dict(encoders) if encoders is not None else build_encoders()

        missing = [f.value for f in ExportFormat if f not in registry]
        if missing:
            raise ValueError(
                f"No encoder registered for format(s): {', '.join(missing)}"
            )

        for export_format, encoder in registry.items():
            if encoder.format is not export_format:
                raise ValueError(
                    f"Encoder {type(encoder).__name__} registered for "
                    f"'{export_format.value}' but declares '{encoder.format.value}'"
                )

        self._encoders = registry
        self._validate = validator

    def execute(self, document: TabularDocument) -> bytes:
        """
        Validate and encode ``document``.

        Raises:
            DocumentValidationError: the document violates an invariant.
            EncodeError: the selected encoder failed.
        """
        try:
            self._validate(document)
        except DocumentValidationError as exc:
            logger.info(
                "export_rejected",
                extra={
                    "format": document.format.value,
                    "kind": exc.kind,
                },
            )
            raise

        encoder = self._encoders[document.format]

        try:
            payload = encoder.encode(document)
        except EncodeError:
            logger.error(
                "export_encoding_failed",
                extra={"format": document.format.value},
            )
            raise
        except Exception as exc:
            logger.error(
                "export_encoding_failed",
                extra={
                    "format": document.format.value,
                    "error_type": type(exc).__name__,
                },
            )
            raise EncodeError(document.format.value, str(exc)) from exc

        logger.info(
            "export_completed",
            extra={
                "format": document.format.value,
                "rows": len(document.rows),
                "columns": len(document.headers),
                "bytes": len(payload),
            },
        )
        return payload
