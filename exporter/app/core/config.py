"""
Centralized configuration for the export service.

Pydantic v2 settings management: strict validation, no secret leakage,
fast failure on invalid configuration. Settings are read once at startup
and are immutable for the lifetime of the process.
"""

from functools import lru_cache
from typing import Annotated, Literal, Optional

from pydantic import Field, FilePath, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from exporter.app.auth.credentials import CredentialConfig
from exporter.app.encoders.paginated import PdfLayout


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

MIN_SECRET_LENGTH = 16

SigningSecret = Annotated[
    SecretStr,
    Field(description="Symmetric token signing secret, redacted from logs"),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment (EXPORTER_*).

    Fails fast at startup if the signing secret is missing or too short.
    """

    # ---------------------------------------------------------------------
    # Credential signing
    # ---------------------------------------------------------------------

    jwt_secret: SigningSecret

    token_ttl_seconds: Annotated[
        int,
        Field(
            default=3600,
            ge=1,
            le=86400,
            description="Lifetime of issued bearer tokens in seconds",
        ),
    ]

    token_issuer: Annotated[
        str,
        Field(default="export-service", min_length=1),
    ]

    token_subject: Annotated[
        str,
        Field(default="web-client", min_length=1),
    ]

    # ---------------------------------------------------------------------
    # Encoder behaviour
    # ---------------------------------------------------------------------

    csv_line_terminator: Annotated[
        Literal["\n", "\r\n"],
        Field(
            default="\n",
            description="Record separator for CSV output",
        ),
    ]

    pdf_max_rendered_rows: Annotated[
        Optional[int],
        Field(
            default=None,
            ge=1,
            description=(
                "Optional cap on rows drawn into PDF output. Unset renders "
                "every row across as many pages as needed."
            ),
        ),
    ]

    pdf_repeat_headers: Annotated[
        bool,
        Field(
            default=False,
            description="Repeat the header line at the top of every PDF page",
        ),
    ]

    pdf_font_path: Annotated[
        Optional[FilePath],
        Field(
            default=None,
            description=(
                "TrueType font embedded into PDF output. Unset falls back to "
                "base-14 Helvetica, which only covers cp1252."
            ),
        ),
    ]

    pdf_bold_font_path: Annotated[
        Optional[FilePath],
        Field(default=None, description="Bold TrueType font for PDF titles"),
    ]

    # ---------------------------------------------------------------------
    # Operations
    # ---------------------------------------------------------------------

    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR"],
        Field(default="INFO"),
    ]

    model_config = SettingsConfigDict(
        env_prefix="EXPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if len(v.get_secret_value()) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"jwt_secret must be at least {MIN_SECRET_LENGTH} characters"
            )
        return v

    # ---------------------------------------------------------------------
    # Derived component configuration
    # ---------------------------------------------------------------------

    def credential_config(self) -> CredentialConfig:
        return CredentialConfig(
            secret=self.jwt_secret,
            issuer=self.token_issuer,
            subject=self.token_subject,
            ttl_seconds=self.token_ttl_seconds,
        )

    def pdf_layout(self) -> PdfLayout:
        return PdfLayout(
            font_path=self.pdf_font_path,
            bold_font_path=self.pdf_bold_font_path,
            repeat_headers=self.pdf_repeat_headers,
            max_rendered_rows=self.pdf_max_rendered_rows,
        )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Process-wide settings provider.

    Settings are constructed once and shared read-only.
    """
    return Settings()  # singleton within process
