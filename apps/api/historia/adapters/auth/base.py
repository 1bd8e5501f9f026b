"""Authentication provider interfaces."""

from abc import ABC, abstractmethod

from historia.schemas.auth import Principal


class AuthVerificationError(Exception):
    """Raised when a bearer credential cannot be verified or normalized."""

    code = "UNAUTHORIZED"
    default_message = "Invalid bearer token"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class MissingTokenError(AuthVerificationError):
    """No ``Authorization`` header, or one that does not carry a bearer token."""

    code = "TOKEN_MISSING"
    default_message = "Missing bearer token"


class InvalidSignatureError(AuthVerificationError):
    """Token failed cryptographic verification or carries unusable claims."""

    code = "TOKEN_INVALID"
    default_message = "Invalid bearer token"


class TokenExpiredError(AuthVerificationError):
    code = "TOKEN_EXPIRED"
    default_message = "Bearer token has expired"


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header value."""
    if authorization is None or not authorization.strip():
        raise MissingTokenError()

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise MissingTokenError("Malformed authorization header")
    return token.strip()


class TokenVerifier(ABC):
    """Provider-neutral token verification interface."""

    @abstractmethod
    def verify_token(self, token: str) -> Principal:
        """Verify token and return normalized principal."""


__all__ = [
    "AuthVerificationError",
    "InvalidSignatureError",
    "MissingTokenError",
    "TokenExpiredError",
    "TokenVerifier",
    "extract_bearer_token",
]
