"""User registration and login."""

import logging

from historia.adapters.auth.jwt_auth import JwtTokenIssuer
from historia.adapters.auth.passwords import hash_password, verify_password
from historia.core.logging_safety import mask_email, safe_log_identifier
from historia.errors import ApiError, not_found
from historia.repositories.memory import InMemoryStore, UserRecord
from historia.schemas.auth import RegisterRequest, Role, TokenResponse, UserProfile

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: InMemoryStore, issuer: JwtTokenIssuer) -> None:
        self._store = store
        self._issuer = issuer

    def register(self, payload: RegisterRequest) -> TokenResponse:
        """Create an account; every new account starts as a plain user, whatever the payload asks for."""
        if self._store.get_user_by_email(payload.email) is not None:
            logger.info("auth.register_rejected email=%s reason=email_in_use", mask_email(payload.email))
            raise ApiError(status_code=409, code="RESOURCE_EXISTS", message="Email is already in use")
        if self._store.get_user_by_username(payload.username) is not None:
            raise ApiError(status_code=409, code="RESOURCE_EXISTS", message="Username is already in use")

        record = self._store.create_user(
            username=payload.username,
            email=payload.email,
            password_hash=hash_password(payload.password),
            role=Role.USER,
        )
        logger.info(
            "auth.registered user_id=%s role=%s",
            safe_log_identifier(record.id, prefix="pid"),
            record.role.value,
        )
        return self._token_response(record, message="User created successfully")

    def login(self, *, email: str, password: str) -> TokenResponse:
        record = self._store.get_user_by_email(email)
        if record is None or not verify_password(password, record.password_hash):
            logger.info("auth.login_rejected email=%s", mask_email(email))
            raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid credentials")

        return self._token_response(record, message="Login successful")

    def get_profile(self, user_id: str) -> UserProfile:
        record = self._store.get_user(int(user_id)) if user_id.isdigit() else None
        if record is None:
            raise not_found()
        return self._to_profile(record)

    def _token_response(self, record: UserRecord, *, message: str) -> TokenResponse:
        token = self._issuer.issue(user_id=record.id, email=record.email, role=record.role)
        return TokenResponse(message=message, token=token, user=self._to_profile(record))

    @staticmethod
    def _to_profile(record: UserRecord) -> UserProfile:
        return UserProfile(id=record.id, username=record.username, email=record.email, role=record.role)
