"""Dependency wiring for routes."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Annotated, Any
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from historia.adapters.auth import (
    AuthVerificationError,
    JwtTokenIssuer,
    JwtTokenVerifier,
    MockTokenVerifier,
    TokenVerifier,
    extract_bearer_token,
)
from historia.adapters.remote import EntityResolver, HttpMediaReader
from historia.core.config import Settings, get_settings
from historia.core.logging_safety import safe_log_identifier
from historia.domain.integrity import foreign_references_for
from historia.domain.policy import Action, ResourceKind, evaluate
from historia.errors import ApiError, raise_for_guard_decision
from historia.repositories.memory import InMemoryStore
from historia.schemas.auth import Principal
from historia.services.comments import CommentService
from historia.services.consistency_guard import ConsistencyGuard
from historia.services.event_media import MEDIA_SERVICE, EventMediaService
from historia.services.events import EventService
from historia.services.media import MediaService
from historia.services.periods import PeriodService
from historia.services.users import UserService

# APIKeyHeader rather than HTTPBearer: the raw header is needed to tell a missing token from a malformed one.
authorization_header = APIKeyHeader(name="Authorization", auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id") or request.headers.get("X-Request-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "jwt":
        return JwtTokenVerifier(settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return MockTokenVerifier()


def get_token_issuer(settings: Annotated[Settings, Depends(get_settings)]) -> JwtTokenIssuer:
    return JwtTokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.token_ttl_seconds,
    )


def _verify(authorization: str | None, verifier: TokenVerifier) -> Principal:
    return verifier.verify_token(extract_bearer_token(authorization))


async def get_authenticated_principal(
    request: Request,
    authorization: Annotated[str | None, Security(authorization_header)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> Principal:
    """Validate the bearer token and return the caller's principal."""
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    try:
        principal = _verify(authorization, verifier)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            exc.code.lower(),
        )
        raise ApiError(status_code=401, code=exc.code, message=str(exc)) from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.role.value,
    )
    return principal


async def get_optional_principal(
    request: Request,
    authorization: Annotated[str | None, Security(authorization_header)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> Principal | None:
    """Principal for public routes that show more to privileged callers; bad tokens read as anonymous."""
    if authorization is None:
        return None
    try:
        return _verify(authorization, verifier)
    except AuthVerificationError as exc:
        logger.info(
            "auth.anonymous_fallback correlation_id=%s path=%s reason=%s",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.url.path,
            exc.code.lower(),
        )
        return None


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_entity_resolver(request: Request) -> EntityResolver:
    return request.app.state.resolver


def get_consistency_guard(
    resolver: Annotated[EntityResolver, Depends(get_entity_resolver)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ConsistencyGuard:
    return ConsistencyGuard(
        resolver,
        service_endpoints=settings.service_endpoints,
        timeout_seconds=settings.resolver_timeout_seconds,
        deadline_seconds=settings.aggregate_guard_deadline(),
    )


async def guard_write(
    guard: ConsistencyGuard,
    principal: Principal | None,
    resource_kind: ResourceKind,
    action: Action,
    payload: Mapping[str, Any] | None = None,
) -> None:
    """Run the consistency guard for a write and raise its failure as an ``ApiError``."""
    references = foreign_references_for(resource_kind, payload or {})
    decision = await guard.guard_mutation(principal, resource_kind, action, references)
    raise_for_guard_decision(decision)


def get_user_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    issuer: Annotated[JwtTokenIssuer, Depends(get_token_issuer)],
) -> UserService:
    return UserService(store, issuer)


def get_period_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> PeriodService:
    return PeriodService(store)


def get_event_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> EventService:
    return EventService(store)


def get_comment_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> CommentService:
    return CommentService(store)


def get_media_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> MediaService:
    return MediaService(store)


def require_permission(principal: Principal, resource_kind: ResourceKind, action: Action) -> None:
    """Policy check for privileged reads, which reference nothing foreign."""
    if not evaluate(principal, resource_kind, action).allowed:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Forbidden: insufficient role")


def get_media_reader(request: Request) -> HttpMediaReader:
    return request.app.state.media_reader


def get_event_media_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    reader: Annotated[HttpMediaReader, Depends(get_media_reader)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EventMediaService:
    return EventMediaService(
        store,
        reader,
        service_endpoint=settings.service_endpoints[MEDIA_SERVICE],
        timeout_seconds=settings.resolver_timeout_seconds,
        deadline_seconds=settings.aggregate_guard_deadline(),
    )
