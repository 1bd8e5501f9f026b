"""Pre-commit gate for writes that point at entities owned by other services."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
import logging

from historia.adapters.remote.resolver import EntityResolver
from historia.core.logging_safety import safe_log_identifier
from historia.domain.integrity import (
    ForeignReference,
    GuardDecision,
    GuardError,
    GuardErrorKind,
    VerificationResult,
    VerificationStatus,
)
from historia.domain.policy import Action, AuthorizationDecision, DenyReason, ResourceKind, evaluate
from historia.schemas.auth import Principal

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"

PolicyEvaluator = Callable[[Principal | None, ResourceKind, Action], AuthorizationDecision]


class ConsistencyGuard:
    """Authorize, then confirm every foreign reference, then decide.

    The guard never writes to the store and never retries a whole mutation;
    callers consult it immediately before their local write. All references are
    resolved concurrently and the resolve phase as a whole is bounded by
    ``deadline_seconds``; references still pending at the deadline count as
    unreachable.
    """

    def __init__(
        self,
        resolver: EntityResolver,
        *,
        service_endpoints: Mapping[str, str],
        timeout_seconds: float,
        deadline_seconds: float,
        evaluator: PolicyEvaluator = evaluate,
    ) -> None:
        self._resolver = resolver
        self._service_endpoints = dict(service_endpoints)
        self._timeout = timeout_seconds
        self._deadline = deadline_seconds
        self._evaluate = evaluator

    async def guard_mutation(
        self,
        principal: Principal | None,
        resource_kind: ResourceKind,
        action: Action,
        foreign_refs: Iterable[ForeignReference] = (),
    ) -> GuardDecision:
        authorization = self._evaluate(principal, resource_kind, action)
        if not authorization.allowed:
            return self._denied(principal, resource_kind, action, authorization)

        references = tuple(dict.fromkeys(foreign_refs))
        if not references:
            return GuardDecision()

        results = await self._resolve_all(references)
        return self._decide(resource_kind, action, results)

    def _denied(
        self,
        principal: Principal | None,
        resource_kind: ResourceKind,
        action: Action,
        authorization: AuthorizationDecision,
    ) -> GuardDecision:
        reason = authorization.reason or DenyReason.INSUFFICIENT_ROLE
        kind = GuardErrorKind.UNAUTHENTICATED if reason is DenyReason.UNAUTHENTICATED else GuardErrorKind.FORBIDDEN
        logger.info(
            "guard.denied resource=%s action=%s principal_id=%s role=%s reason=%s",
            resource_kind.value,
            action.value,
            safe_log_identifier(principal.user_id if principal else None, prefix="pid"),
            principal.role.value if principal else None,
            reason.value,
        )
        return GuardDecision(error=GuardError(kind=kind, message=reason.value))

    async def _resolve_all(self, references: tuple[ForeignReference, ...]) -> list[VerificationResult]:
        endpoints = [self._endpoint_for(reference.service) for reference in references]
        tasks = [
            asyncio.create_task(
                self._resolver.resolve(
                    endpoint,
                    reference.entity_kind,
                    reference.entity_id,
                    self._timeout,
                    service=reference.service,
                )
            )
            for endpoint, reference in zip(endpoints, references)
        ]
        pending: set[asyncio.Task[VerificationResult]] = set(tasks)
        try:
            _, pending = await asyncio.wait(tasks, timeout=self._deadline)
        finally:
            # Also reached when the caller is cancelled.
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        results: list[VerificationResult] = []
        for reference, task in zip(references, tasks):
            if task in pending:
                results.append(VerificationResult.unreachable(reference, DEADLINE_EXCEEDED))
                continue
            verdict = task.result()
            results.append(VerificationResult(reference=reference, status=verdict.status, cause=verdict.cause))
        return results

    def _endpoint_for(self, service: str) -> str:
        try:
            return self._service_endpoints[service]
        except KeyError:
            raise RuntimeError(f"No endpoint configured for service {service!r}") from None

    @staticmethod
    def _decide(resource_kind: ResourceKind, action: Action, results: list[VerificationResult]) -> GuardDecision:
        missing = [result for result in results if result.status is VerificationStatus.NOT_FOUND]
        if missing:
            first = missing[0].reference
            logger.info(
                "guard.invalid_reference resource=%s action=%s service=%s kind=%s entity_id=%s",
                resource_kind.value,
                action.value,
                first.service,
                first.entity_kind.value,
                first.entity_id,
            )
            return GuardDecision(
                error=GuardError(
                    kind=GuardErrorKind.INVALID_REFERENCE,
                    message=f"Referenced {first.entity_kind.value} {first.entity_id} does not exist",
                    references=tuple(result.reference for result in missing),
                ),
                results=tuple(results),
            )

        failed = [result for result in results if result.status is not VerificationStatus.CONFIRMED]
        if failed:
            causes = tuple(result.cause or result.status.value for result in failed)
            logger.warning(
                "guard.dependency_unavailable resource=%s action=%s services=%s causes=%s",
                resource_kind.value,
                action.value,
                ",".join(sorted({result.reference.service for result in failed})),
                ",".join(causes),
            )
            return GuardDecision(
                error=GuardError(
                    kind=GuardErrorKind.DEPENDENCY_UNAVAILABLE,
                    message="A referenced service could not confirm the reference",
                    references=tuple(result.reference for result in failed),
                    causes=causes,
                ),
                results=tuple(results),
            )

        return GuardDecision(results=tuple(results))


__all__ = ["DEADLINE_EXCEEDED", "ConsistencyGuard"]
