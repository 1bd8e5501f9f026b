"""FastAPI application entrypoint.

Run with ``uvicorn historia.main:create_app --factory``; settings are read when
the app is built, so a missing ``HISTORIA_JWT_SECRET`` stops start-up.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
import time

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from historia.adapters.remote import HttpEntityResolver, HttpMediaReader, VerificationCache
from historia.core.config import Settings, get_settings
from historia.core.logging_setup import configure_logging
from historia.domain.integrity import referenced_services
from historia.errors import ApiError
from historia.repositories.memory import InMemoryStore
from historia.routes import (
    auth_router,
    comments_router,
    events_router,
    health_router,
    media_router,
    periods_router,
)
from historia.schemas.error import ErrorResponse
from historia.services.event_media import MEDIA_SERVICE

logger = logging.getLogger(__name__)


def _check_service_endpoints(settings: Settings) -> None:
    required = referenced_services() | {MEDIA_SERVICE}
    missing = sorted(required - set(settings.service_endpoints))
    if missing:
        raise RuntimeError(f"No endpoint configured for referenced services: {', '.join(missing)}")


def _build_resolver(settings: Settings, client: httpx.AsyncClient) -> HttpEntityResolver:
    cache = None
    if settings.resolver_cache_ttl_seconds > 0:
        cache = VerificationCache(settings.resolver_cache_ttl_seconds)
    return HttpEntityResolver(
        client,
        max_retries=settings.resolver_max_retries,
        backoff_seconds=settings.resolver_backoff_seconds,
        cache=cache,
    )


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return messages


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await app.state.http_client.aclose()


def create_app() -> FastAPI:
    settings = get_settings()
    _check_service_endpoints(settings)
    configure_logging(settings.log_level)

    app = FastAPI(title="Historia API", version="1.0.0", lifespan=_lifespan)
    app.state.store = InMemoryStore()
    client = httpx.AsyncClient(timeout=settings.resolver_timeout_seconds)
    app.state.http_client = client
    app.state.resolver = _build_resolver(settings, client)
    app.state.media_reader = HttpMediaReader(
        client,
        max_retries=settings.resolver_max_retries,
        backoff_seconds=settings.resolver_backoff_seconds,
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.perf_counter()
        logger.info("request.start method=%s path=%s", request.method, request.url.path)
        response = None
        try:
            response = await call_next(request)
        finally:
            logger.info(
                "request.end method=%s path=%s status=%s elapsed_ms=%s",
                request.method,
                request.url.path,
                getattr(response, "status_code", "unknown"),
                int((time.perf_counter() - start) * 1000),
            )
        return response

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_, exc: RequestValidationError) -> JSONResponse:
        payload = ErrorResponse(
            code="VALIDATION_ERROR",
            message="Invalid request payload",
            details={"errors": _validation_messages(exc)},
        )
        return JSONResponse(status_code=400, content=payload.model_dump(mode="json"))

    api_prefix = "/api"
    app.include_router(health_router, prefix=api_prefix)
    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(periods_router, prefix=api_prefix)
    app.include_router(events_router, prefix=api_prefix)
    app.include_router(comments_router, prefix=api_prefix)
    app.include_router(media_router, prefix=api_prefix)

    logger.info(
        "app.configured auth_provider=%s services=%s guard_deadline_seconds=%.2f",
        settings.auth_provider,
        ",".join(sorted(settings.service_endpoints)),
        settings.aggregate_guard_deadline(),
    )
    return app
