"""Shared-secret JWT verifier and issuer."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import ValidationError

from historia.adapters.auth.base import InvalidSignatureError, TokenExpiredError, TokenVerifier
from historia.schemas.auth import Principal, Role


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JwtTokenVerifier(TokenVerifier):
    """Verifies signed-claims tokens locally; no call to the auth service is made.

    Tokens must carry ``sub`` (or the legacy ``id`` claim), ``role`` and ``exp``.
    The clock is injectable so expiry can be checked against a fixed instant.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        leeway_seconds: int = 0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("JWT secret must be configured")
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway_seconds
        self._clock = clock

    def verify_token(self, token: str) -> Principal:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"], "verify_exp": False},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError() from exc

        expires_at = self._expiry(claims.get("exp"))
        if expires_at + timedelta(seconds=self._leeway) <= self._clock():
            raise TokenExpiredError()

        user_id = str(claims.get("sub") or claims.get("id") or "").strip()
        if not user_id:
            raise InvalidSignatureError("Bearer token missing user identity")

        try:
            return Principal(
                user_id=user_id,
                role=Role(str(claims.get("role") or Role.USER.value)),
                email=claims.get("email"),
                expires_at=expires_at,
            )
        except (ValueError, ValidationError) as exc:
            raise InvalidSignatureError("Bearer token carries an unknown role") from exc

    @staticmethod
    def _expiry(raw: object) -> datetime:
        try:
            return datetime.fromtimestamp(float(raw), tz=UTC)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidSignatureError("Bearer token has an invalid expiry") from exc


class JwtTokenIssuer:
    """Mints tokens in the format ``JwtTokenVerifier`` accepts."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 24 * 60 * 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue(self, *, user_id: int | str, email: str, role: Role) -> str:
        issued_at = self._clock()
        claims = {
            "sub": str(user_id),
            "email": email,
            "role": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)


__all__ = ["JwtTokenIssuer", "JwtTokenVerifier"]
