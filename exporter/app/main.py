import sys
import logging

from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from exporter.app.api.errors import register_error_handlers
from exporter.app.api.routes import router as export_router
from exporter.app.auth.credentials import CredentialService
from exporter.app.core.config import Settings, get_settings
from exporter.app.encoders import build_encoders
from exporter.app.services.orchestrator import ExportOrchestrator

logger = logging.getLogger("exporter.main")


def get_app_version() -> str:
    """
    Resolve application version.

    Falls back to the declared version when running from source.
    """
    try:
        return version("tabular-export-service")
    except PackageNotFoundError:
        return "0.1.0"


def configure_logging(level: str = "INFO") -> None:
    """Route all service logs to stderr."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory for the tabular export service.

    ``settings`` may be supplied directly (tests, embedding); otherwise
    they are read from the environment when the lifespan starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Guarantees:
        - Fail-fast startup if configuration is invalid
        - One credential service and one orchestrator per process
        """
        # ------------------------------------------------------------------
        # Load and validate configuration (FAIL FAST)
        # ------------------------------------------------------------------
        try:
            resolved = settings if settings is not None else get_settings()
        except Exception:
            logger.exception("invalid_exporter_configuration")
            raise

        configure_logging(resolved.log_level)

        logger.info(
            "export_service_startup_begin",
            extra={
                "service": "exporter",
                "version": get_app_version(),
            },
        )

        app.state.settings = resolved
        app.state.credentials = CredentialService(resolved.credential_config())

        # ------------------------------------------------------------------
        # Encoders (font files are read here, FAIL FAST)
        # ------------------------------------------------------------------
        try:
            encoders = build_encoders(
                csv_line_terminator=resolved.csv_line_terminator,
                pdf_layout=resolved.pdf_layout(),
            )
        except Exception:
            logger.exception(
                "invalid_pdf_font",
                extra={"font_path": str(resolved.pdf_font_path)},
            )
            raise

        app.state.orchestrator = ExportOrchestrator(encoders)

        try:
            yield
        finally:
            logger.info("export_service_shutdown_begin")

    app = FastAPI(
        title="Tabular Export Service",
        description=(
            "Converts tabular data into xlsx, csv, and pdf documents "
            "behind a short-lived bearer token."
        ),
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Browser clients call the service directly
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    register_error_handlers(app)
    app.include_router(export_router)

    @app.get(
        "/health",
        tags=["Monitoring"],
        summary="Liveness check",
    )
    async def health_check():
        """
        Verifies that the runtime is alive.

        Does not encode documents or touch credentials.
        """
        return ORJSONResponse(
            content={
                "status": "ok",
                "service": "exporter",
                "version": app.version,
                "runtime": f"python {sys.version.split()[0]}",
            }
        )

    return app


app = create_app()
