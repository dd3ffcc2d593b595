"""
Translation of the error taxonomy into HTTP error bodies.

Every failure is answered with ``{error, message, details?}``:

    ExportError (validation / format)   400
    RequestValidationError              400
    TokenError                          401  (+ WWW-Authenticate: Bearer)
    EncodeError                         500  (logged with traceback)
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from exporter.app.errors import ExportError, TokenError
from exporter.app.schemas.api import ErrorResponse

logger = logging.getLogger("exporter.api")


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> ORJSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return ORJSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


async def handle_export_error(request: Request, exc: ExportError) -> ORJSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "export_pipeline_failure",
            exc_info=exc,
            extra={
                "path": request.url.path,
                "error_type": type(exc).__name__,
            },
        )
        return error_response(
            exc.status_code,
            exc.error,
            "Export failed. See service logs for details.",
        )

    return error_response(exc.status_code, exc.error, str(exc), exc.details())


async def handle_token_error(request: Request, exc: TokenError) -> ORJSONResponse:
    logger.warning(
        "request_unauthorized",
        extra={
            "path": request.url.path,
            "reason": type(exc).__name__,
        },
    )
    return error_response(
        status.HTTP_401_UNAUTHORIZED,
        exc.error,
        str(exc),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        "Request body does not match the export schema.",
        {"errors": errors},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExportError, handle_export_error)
    app.add_exception_handler(TokenError, handle_token_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
