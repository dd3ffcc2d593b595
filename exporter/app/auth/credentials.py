"""
Stateless bearer credential issuance and verification.

Tokens are signed claim sets (issuer, subject, issued-at, expires-at)
produced with itsdangerous' URL-safe serializer (HMAC-SHA256 over a
compact JSON payload) keyed by the process-wide symmetric secret.

TRUST MODEL (accepted tradeoff, not an oversight):
- There is no revocation list and no token store.
- A token is valid iff its signature verifies and now < expires_at.
- A leaked token therefore remains usable until it expires naturally.
  Keep the configured lifetime short.

Verification outcomes:
- bad signature, malformed payload, foreign issuer/subject -> InvalidTokenError
- valid signature but expired                               -> ExpiredTokenError
An expired token is never reported as invalid.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from itsdangerous import BadData, URLSafeSerializer
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError

from exporter.app.errors import ExpiredTokenError, InvalidTokenError

logger = logging.getLogger("exporter.credentials")

TOKEN_SALT = "exporter.credential.v1"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialConfig(BaseModel):
    """
    Immutable signing configuration.

    Built once at startup and passed by reference into CredentialService.
    """

    secret: SecretStr
    issuer: str = Field("export-service", min_length=1)
    subject: str = Field("web-client", min_length=1)
    ttl_seconds: int = Field(3600, ge=1)

    model_config = ConfigDict(frozen=True)


class Claims(BaseModel):
    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> dict:
        return {
            "iss": self.issuer,
            "sub": self.subject,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }

    @classmethod
    def from_payload(cls, payload: object) -> "Claims":
        if not isinstance(payload, dict):
            raise InvalidTokenError("Malformed token payload")
        try:
            return cls(
                issuer=payload["iss"],
                subject=payload["sub"],
                issued_at=datetime.fromtimestamp(int(payload["iat"]), timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), timezone.utc),
            )
        except (
            KeyError,
            TypeError,
            ValueError,
            OverflowError,
            PydanticValidationError,
        ) as exc:
            raise InvalidTokenError("Malformed token payload") from exc


class IssuedToken(BaseModel):
    token: str
    expires_in: int
    claims: Claims

    model_config = ConfigDict(frozen=True)


class CredentialService:
    def __init__(self, config: CredentialConfig, clock: Clock = utc_now) -> None:
        self._config = config
        self._clock = clock
        self._serializer = URLSafeSerializer(
            config.secret.get_secret_value(),
            salt=TOKEN_SALT,
            signer_kwargs={"digest_method": hashlib.sha256},
        )

    @property
    def ttl_seconds(self) -> int:
        return self._config.ttl_seconds

    def issue(self) -> IssuedToken:
        # Whole seconds, so the claims survive the integer round trip
        now = self._clock().replace(microsecond=0)
        claims = Claims(
            issuer=self._config.issuer,
            subject=self._config.subject,
            issued_at=now,
            expires_at=now + timedelta(seconds=self._config.ttl_seconds),
        )
        token = self._serializer.dumps(claims.to_payload())

        logger.info(
            "credential_issued",
            extra={
                "subject": claims.subject,
                "expires_at": claims.expires_at.isoformat(),
            },
        )
        return IssuedToken(
            token=token,
            expires_in=self._config.ttl_seconds,
            claims=claims,
        )

    def verify(self, token: str) -> Claims:
        try:
            payload = self._serializer.loads(token)
        except BadData as exc:
            raise InvalidTokenError() from exc

        claims = Claims.from_payload(payload)

        if (
            claims.issuer != self._config.issuer
            or claims.subject != self._config.subject
        ):
            raise InvalidTokenError("Token issuer or subject not recognised")

        if not self._clock() < claims.expires_at:
            raise ExpiredTokenError()

        return claims
