"""Consistency guard tests against scripted resolvers."""

from __future__ import annotations

import asyncio
import time
import unittest

from historia.adapters.remote import EntityResolver
from historia.domain.integrity import (
    EntityKind,
    ForeignReference,
    GuardErrorKind,
    VerificationResult,
    VerificationStatus,
    foreign_references_for,
)
from historia.domain.policy import Action, ResourceKind
from historia.errors import ApiError, raise_for_guard_decision
from historia.schemas.auth import Principal, Role
from historia.services.consistency_guard import DEADLINE_EXCEEDED, ConsistencyGuard

_ENDPOINTS = {"period-service": "http://periods.internal", "event-service": "http://events.internal"}


class _ScriptedResolver(EntityResolver):
    def __init__(
        self,
        statuses: dict[int, VerificationStatus] | None = None,
        *,
        delay: float = 0.0,
        cause: str = "timeout",
    ) -> None:
        self.statuses = statuses or {}
        self.delay = delay
        self.cause = cause
        self.calls: list[tuple[str, EntityKind, int, float]] = []

    async def resolve(self, service_endpoint, entity_kind, entity_id, timeout, *, service=None) -> VerificationResult:
        self.calls.append((service_endpoint, EntityKind(entity_kind), entity_id, timeout))
        if self.delay:
            await asyncio.sleep(self.delay)
        reference = ForeignReference(service=service or service_endpoint, entity_kind=EntityKind(entity_kind), entity_id=entity_id)
        status = self.statuses.get(entity_id, VerificationStatus.CONFIRMED)
        cause = self.cause if status is VerificationStatus.UNREACHABLE else None
        return VerificationResult(reference=reference, status=status, cause=cause)


def _event_ref(entity_id: int) -> ForeignReference:
    return ForeignReference(service="event-service", entity_kind=EntityKind.EVENT, entity_id=entity_id)


def _guard(resolver: EntityResolver, *, deadline: float = 1.0) -> ConsistencyGuard:
    return ConsistencyGuard(resolver, service_endpoints=_ENDPOINTS, timeout_seconds=0.5, deadline_seconds=deadline)


_MODERATOR = Principal(user_id="9", role=Role.MODERATOR)
_USER = Principal(user_id="3", role=Role.USER)


class ConsistencyGuardTests(unittest.IsolatedAsyncioTestCase):
    async def test_no_references_and_allowed_role_succeeds(self) -> None:
        resolver = _ScriptedResolver()

        decision = await _guard(resolver).guard_mutation(_MODERATOR, ResourceKind.PERIOD, Action.CREATE)

        self.assertTrue(decision.ok)
        self.assertEqual(decision.results, ())
        self.assertEqual(resolver.calls, [])

    async def test_authorization_is_checked_before_any_resolve(self) -> None:
        resolver = _ScriptedResolver()

        decision = await _guard(resolver).guard_mutation(_USER, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1)])

        self.assertFalse(decision.ok)
        self.assertEqual(decision.error.kind, GuardErrorKind.FORBIDDEN)
        self.assertEqual(decision.error.message, "insufficient role")
        self.assertEqual(resolver.calls, [])

    async def test_missing_principal_is_unauthenticated(self) -> None:
        resolver = _ScriptedResolver()

        decision = await _guard(resolver).guard_mutation(None, ResourceKind.COMMENT, Action.CREATE, [_event_ref(1)])

        self.assertEqual(decision.error.kind, GuardErrorKind.UNAUTHENTICATED)
        self.assertEqual(resolver.calls, [])

    async def test_all_confirmed_succeeds(self) -> None:
        resolver = _ScriptedResolver()

        decision = await _guard(resolver).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1), _event_ref(2)]
        )

        self.assertTrue(decision.ok)
        self.assertEqual([result.status for result in decision.results], [VerificationStatus.CONFIRMED] * 2)
        self.assertEqual(resolver.calls[0][0], "http://events.internal")
        self.assertEqual(resolver.calls[0][3], 0.5)

    async def test_one_not_found_among_confirmed_is_invalid_reference(self) -> None:
        resolver = _ScriptedResolver({2: VerificationStatus.NOT_FOUND})

        decision = await _guard(resolver).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1), _event_ref(2), _event_ref(3)]
        )

        self.assertEqual(decision.error.kind, GuardErrorKind.INVALID_REFERENCE)
        self.assertEqual(decision.error.references, (_event_ref(2),))
        self.assertEqual(decision.error.message, "Referenced event 2 does not exist")

    async def test_not_found_wins_over_unreachable(self) -> None:
        resolver = _ScriptedResolver({1: VerificationStatus.UNREACHABLE, 2: VerificationStatus.NOT_FOUND})

        decision = await _guard(resolver).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1), _event_ref(2)]
        )

        self.assertEqual(decision.error.kind, GuardErrorKind.INVALID_REFERENCE)

    async def test_unreachable_and_unauthorized_are_dependency_unavailable(self) -> None:
        resolver = _ScriptedResolver({1: VerificationStatus.UNREACHABLE, 2: VerificationStatus.UNAUTHORIZED})

        decision = await _guard(resolver).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1), _event_ref(2)]
        )

        self.assertEqual(decision.error.kind, GuardErrorKind.DEPENDENCY_UNAVAILABLE)
        self.assertEqual(decision.error.causes, ("timeout", "unauthorized"))

    async def test_all_timeouts_fail_within_aggregate_deadline(self) -> None:
        resolver = _ScriptedResolver(delay=5.0)
        references = [_event_ref(entity_id) for entity_id in range(1, 6)]

        started = time.monotonic()
        decision = await _guard(resolver, deadline=0.1).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, references
        )
        elapsed = time.monotonic() - started

        self.assertLess(elapsed, 1.0)
        self.assertEqual(decision.error.kind, GuardErrorKind.DEPENDENCY_UNAVAILABLE)
        self.assertEqual(decision.error.causes, (DEADLINE_EXCEEDED,) * 5)
        self.assertEqual(len(resolver.calls), 5)

    async def test_references_resolve_concurrently(self) -> None:
        resolver = _ScriptedResolver(delay=0.2)
        references = [_event_ref(entity_id) for entity_id in range(1, 5)]

        started = time.monotonic()
        decision = await _guard(resolver).guard_mutation(_MODERATOR, ResourceKind.MEDIA, Action.CREATE, references)

        self.assertTrue(decision.ok)
        self.assertLess(time.monotonic() - started, 0.6)

    async def test_duplicate_references_resolve_once(self) -> None:
        resolver = _ScriptedResolver()

        await _guard(resolver).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, [_event_ref(1), _event_ref(1)]
        )

        self.assertEqual(len(resolver.calls), 1)

    async def test_cancelled_guard_cancels_its_resolves(self) -> None:
        cancelled: list[int] = []

        class _HangingResolver(_ScriptedResolver):
            async def resolve(self, service_endpoint, entity_kind, entity_id, timeout, *, service=None):
                self.calls.append((service_endpoint, EntityKind(entity_kind), entity_id, timeout))
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    cancelled.append(entity_id)
                    raise

        resolver = _HangingResolver()
        references = [_event_ref(entity_id) for entity_id in range(1, 4)]
        mutation = asyncio.create_task(
            _guard(resolver, deadline=10).guard_mutation(_MODERATOR, ResourceKind.MEDIA, Action.CREATE, references)
        )
        while len(resolver.calls) < 3:
            await asyncio.sleep(0)

        mutation.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await mutation

        self.assertEqual(sorted(cancelled), [1, 2, 3])

    async def test_unknown_service_is_configuration_error(self) -> None:
        reference = ForeignReference(service="map-service", entity_kind=EntityKind.EVENT, entity_id=1)

        with self.assertRaises(RuntimeError):
            await _guard(_ScriptedResolver()).guard_mutation(_MODERATOR, ResourceKind.MEDIA, Action.CREATE, [reference])


class ReferenceRuleTests(unittest.TestCase):
    def test_event_payload_references_its_period(self) -> None:
        references = foreign_references_for(ResourceKind.EVENT, {"period_id": 4, "title": "Magna Carta"})

        self.assertEqual(
            references,
            [ForeignReference(service="period-service", entity_kind=EntityKind.PERIOD, entity_id=4)],
        )

    def test_absent_fields_are_skipped(self) -> None:
        self.assertEqual(foreign_references_for(ResourceKind.MEDIA, {"url": "https://x"}), [])
        self.assertEqual(foreign_references_for(ResourceKind.EVENT, {"period_id": None}), [])
        self.assertEqual(foreign_references_for(ResourceKind.PERIOD, {"name": "Tudor"}), [])

    def test_comments_reference_events(self) -> None:
        self.assertEqual(foreign_references_for(ResourceKind.COMMENT, {"event_id": 8}), [_event_ref(8)])


class GuardErrorMappingTests(unittest.IsolatedAsyncioTestCase):
    async def _status_for(self, resolver: EntityResolver, references: list[ForeignReference], **kwargs) -> ApiError:
        decision = await _guard(resolver, **kwargs).guard_mutation(
            _MODERATOR, ResourceKind.MEDIA, Action.CREATE, references
        )
        with self.assertRaises(ApiError) as ctx:
            raise_for_guard_decision(decision)
        return ctx.exception

    async def test_success_raises_nothing(self) -> None:
        decision = await _guard(_ScriptedResolver()).guard_mutation(_MODERATOR, ResourceKind.PERIOD, Action.CREATE)

        raise_for_guard_decision(decision)

    async def test_invalid_reference_is_422(self) -> None:
        error = await self._status_for(_ScriptedResolver({1: VerificationStatus.NOT_FOUND}), [_event_ref(1)])

        self.assertEqual(error.status_code, 422)
        self.assertEqual(error.payload.code, "INVALID_REFERENCE")
        self.assertEqual(
            error.payload.details,
            {"references": [{"service": "event-service", "entity_kind": "event", "entity_id": 1}]},
        )

    async def test_only_timeouts_is_504(self) -> None:
        error = await self._status_for(_ScriptedResolver(delay=5.0), [_event_ref(1)], deadline=0.05)

        self.assertEqual(error.status_code, 504)
        self.assertEqual(error.payload.code, "DEPENDENCY_UNAVAILABLE")

    async def test_other_failures_are_502(self) -> None:
        resolver = _ScriptedResolver({1: VerificationStatus.UNREACHABLE}, cause="upstream status 503")

        error = await self._status_for(resolver, [_event_ref(1)])

        self.assertEqual(error.status_code, 502)
        self.assertEqual(error.payload.details["causes"], ["upstream status 503"])

    async def test_denials_map_to_401_and_403(self) -> None:
        guard = _guard(_ScriptedResolver())

        with self.assertRaises(ApiError) as ctx:
            raise_for_guard_decision(await guard.guard_mutation(None, ResourceKind.PERIOD, Action.CREATE))
        self.assertEqual(ctx.exception.status_code, 401)

        with self.assertRaises(ApiError) as ctx:
            raise_for_guard_decision(await guard.guard_mutation(_USER, ResourceKind.PERIOD, Action.CREATE))
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.payload.code, "FORBIDDEN")


if __name__ == "__main__":
    unittest.main()
