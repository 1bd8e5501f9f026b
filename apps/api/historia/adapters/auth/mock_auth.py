"""Mock auth verifier for local development and tests."""

from historia.adapters.auth.base import InvalidSignatureError, TokenExpiredError, TokenVerifier
from historia.schemas.auth import Principal, Role


class MockTokenVerifier(TokenVerifier):
    """Accepts deterministic test tokens only.

    Expected token format:
    - ``test:<user_id>``
    - ``test:<user_id>:<role>``
    - ``expired:<user_id>`` always fails as expired
    """

    def verify_token(self, token: str) -> Principal:
        parts = token.split(":")
        if len(parts) == 2 and parts[0] == "expired":
            raise TokenExpiredError()
        if len(parts) not in (2, 3) or parts[0] != "test":
            raise InvalidSignatureError()

        user_id = parts[1].strip()
        role = parts[2].strip() if len(parts) == 3 else Role.USER.value

        if not user_id:
            raise InvalidSignatureError("Bearer token missing user identity")
        try:
            return Principal(user_id=user_id, role=Role(role))
        except ValueError as exc:
            raise InvalidSignatureError("Bearer token carries an unknown role") from exc


__all__ = ["MockTokenVerifier"]
