import logging
import re
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from exporter.app.auth.credentials import Claims, CredentialService
from exporter.app.errors import MissingTokenError
from exporter.app.schemas.api import ErrorResponse, ExportRequest, TokenResponse
from exporter.app.services.orchestrator import ExportOrchestrator

logger = logging.getLogger("exporter.api")

router = APIRouter()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9 ._()-]")

# =============================================================================
# Dependency providers
# =============================================================================


def get_credential_service(request: Request) -> CredentialService:
    service = getattr(request.app.state, "credentials", None)
    if service is None:
        raise RuntimeError("credential service not initialized")
    return service


def get_orchestrator(request: Request) -> ExportOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("export orchestrator not initialized")
    return orchestrator


def require_bearer_token(
    credentials: Annotated[CredentialService, Depends(get_credential_service)],
    authorization: Annotated[
        Optional[str],
        Header(description="Bearer token from /api/auth/token"),
    ] = None,
) -> Claims:
    """Verify the Authorization header; raises TokenError on failure."""
    if not authorization:
        raise MissingTokenError()

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise MissingTokenError()

    return credentials.verify(token)


def content_disposition(title: str, extension: str) -> str:
    """
    Attachment header naming the file ``<title>.<extension>``.

    The plain ``filename`` is reduced to header-safe ASCII; ``filename*``
    carries the exact UTF-8 title (RFC 5987).
    """
    safe_title = _UNSAFE_FILENAME_CHARS.sub("_", title).strip() or "export"
    exact = quote(f"{title}.{extension}", safe="")
    return (
        f'attachment; filename="{safe_title}.{extension}"; '
        f"filename*=UTF-8''{exact}"
    )


# =============================================================================
# GET /api/auth/token
# =============================================================================


@router.get(
    "/api/auth/token",
    response_model=TokenResponse,
    tags=["Auth"],
    summary="Issue a short-lived bearer token",
)
def issue_token(
    credentials: Annotated[CredentialService, Depends(get_credential_service)],
) -> TokenResponse:
    issued = credentials.issue()
    return TokenResponse(token=issued.token, expires_in=issued.expires_in)


# =============================================================================
# POST /api/export
# =============================================================================


@router.post(
    "/api/export",
    tags=["Export"],
    summary="Export tabular data as xlsx, csv, or pdf",
    response_class=Response,
    responses={
        200: {
            "content": {
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {},
                "text/csv": {},
                "application/pdf": {},
            },
            "description": "Encoded document",
        },
        400: {"model": ErrorResponse, "description": "Invalid request or data"},
        401: {"model": ErrorResponse, "description": "Missing, invalid, or expired token"},
        500: {"model": ErrorResponse, "description": "Encoding failure"},
    },
)
def export_document(
    payload: ExportRequest,
    orchestrator: Annotated[ExportOrchestrator, Depends(get_orchestrator)],
    claims: Annotated[Claims, Depends(require_bearer_token)],
) -> Response:
    """
    Validate and encode a tabular document.

    Runs synchronously in the worker thread pool. Validation always runs
    before encoding; the first violated invariant is returned as a 400.
    """
    document = payload.to_document()

    logger.info(
        "export_requested",
        extra={
            "format": document.format.value,
            "rows": len(document.rows),
            "subject": claims.subject,
        },
    )

    content = orchestrator.execute(document)

    return Response(
        content=content,
        media_type=document.format.mime_type,
        headers={
            "Content-Disposition": content_disposition(
                document.title, document.format.extension
            ),
        },
    )
