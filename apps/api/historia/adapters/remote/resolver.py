"""Existence checks against the read API of the service that owns an entity."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

import httpx

from historia.adapters.remote.cache import VerificationCache
from historia.adapters.remote.transport import TransientFailure, check_retry_budget, get_with_retry
from historia.domain.integrity import (
    ENTITY_COLLECTIONS,
    EntityKind,
    ForeignReference,
    VerificationResult,
)

logger = logging.getLogger(__name__)


class EntityResolver(ABC):
    """Answers "does this foreign entity exist?" without ever raising for expected outcomes."""

    @abstractmethod
    async def resolve(
        self,
        service_endpoint: str,
        entity_kind: EntityKind | str,
        entity_id: int,
        timeout: float,
        *,
        service: str | None = None,
    ) -> VerificationResult:
        """Return the verdict for one entity; ``service`` names the owner in the result."""

    def forget(self, entity_kind: EntityKind, entity_id: int) -> None:
        """Drop anything remembered about an entity that was just deleted."""


def entity_url(service_endpoint: str, entity_kind: EntityKind, entity_id: int) -> str:
    return f"{service_endpoint.rstrip('/')}/api/{ENTITY_COLLECTIONS[entity_kind]}/{entity_id}"


class HttpEntityResolver(EntityResolver):
    """GET-by-id resolver with a per-attempt deadline and bounded exponential retry.

    Network errors, timeouts and 5xx responses are retried up to ``max_retries``
    times. 404 and every other answer are final on the first attempt.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_retries: int = 2,
        backoff_seconds: float = 0.1,
        cache: VerificationCache | None = None,
    ) -> None:
        check_retry_budget(max_retries)
        self._client = client
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._cache = cache

    async def resolve(
        self,
        service_endpoint: str,
        entity_kind: EntityKind | str,
        entity_id: int,
        timeout: float,
        *,
        service: str | None = None,
    ) -> VerificationResult:
        kind = EntityKind(entity_kind)
        reference = ForeignReference(service=service or service_endpoint, entity_kind=kind, entity_id=int(entity_id))

        if self._cache is not None:
            cached = self._cache.get(kind, reference.entity_id)
            if cached is not None:
                logger.info(
                    "resolver.cache_hit kind=%s entity_id=%s status=%s",
                    kind.value,
                    reference.entity_id,
                    cached.status.value,
                )
                return VerificationResult(reference=reference, status=cached.status, cause=cached.cause)

        try:
            response = await get_with_retry(
                self._client,
                entity_url(service_endpoint, kind, reference.entity_id),
                timeout=timeout,
                max_retries=self._max_retries,
                backoff_seconds=self._backoff_seconds,
            )
        except TransientFailure as exc:
            logger.warning(
                "resolver.unreachable service=%s kind=%s entity_id=%s cause=%s",
                reference.service,
                kind.value,
                reference.entity_id,
                exc.cause,
            )
            return VerificationResult.unreachable(reference, exc.cause)

        result = self._classify(response, reference)
        logger.info(
            "resolver.resolved service=%s kind=%s entity_id=%s status=%s",
            reference.service,
            kind.value,
            reference.entity_id,
            result.status.value,
        )
        if self._cache is not None:
            self._cache.put(result)
        return result

    def forget(self, entity_kind: EntityKind, entity_id: int) -> None:
        if self._cache is not None:
            self._cache.invalidate(entity_kind, entity_id)

    @classmethod
    def _classify(cls, response: httpx.Response, reference: ForeignReference) -> VerificationResult:
        status_code = response.status_code
        if status_code == 404:
            return VerificationResult.not_found(reference)
        if status_code in (401, 403):
            return VerificationResult.unauthorized(reference)
        if status_code != 200:
            return VerificationResult.unreachable(reference, f"unexpected status {status_code}")
        return cls._confirm_body(response, reference)

    @staticmethod
    def _confirm_body(response: httpx.Response, reference: ForeignReference) -> VerificationResult:
        try:
            body = response.json()
        except ValueError:
            return VerificationResult.unreachable(reference, "malformed body")

        if not isinstance(body, dict):
            return VerificationResult.unreachable(reference, "unexpected body")
        # Accept both a bare entity and the {"success": ..., "data": {...}} envelope.
        entity = body.get("data") if isinstance(body.get("data"), dict) else body
        if str(entity.get("id")) != str(reference.entity_id):
            return VerificationResult.unreachable(reference, "unexpected body")
        return VerificationResult.confirmed(reference)


__all__ = ["EntityResolver", "HttpEntityResolver", "entity_url"]
