"""Auth verifier adapters."""

from .base import (
    AuthVerificationError,
    InvalidSignatureError,
    MissingTokenError,
    TokenExpiredError,
    TokenVerifier,
    extract_bearer_token,
)
from .jwt_auth import JwtTokenIssuer, JwtTokenVerifier
from .mock_auth import MockTokenVerifier

__all__ = [
    "AuthVerificationError",
    "InvalidSignatureError",
    "JwtTokenIssuer",
    "JwtTokenVerifier",
    "MissingTokenError",
    "MockTokenVerifier",
    "TokenExpiredError",
    "TokenVerifier",
    "extract_bearer_token",
]
