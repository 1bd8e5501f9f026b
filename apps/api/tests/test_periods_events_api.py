"""Period and event API tests, including guarded writes."""

from __future__ import annotations

import os
import unittest

import httpx
from fastapi.testclient import TestClient

from historia.adapters.remote import EntityResolver, HttpEntityResolver, VerificationCache
from historia.core.config import get_settings
from historia.domain.integrity import EntityKind, ForeignReference, VerificationResult, VerificationStatus
from historia.main import create_app
from historia.routes.dependencies import get_entity_resolver

ADMIN = {"Authorization": "Bearer test:1:admin"}
CURATOR = {"Authorization": "Bearer test:2:curator"}
USER = {"Authorization": "Bearer test:3:user"}


class _StubResolver(EntityResolver):
    def __init__(self) -> None:
        self.statuses: dict[int, VerificationStatus] = {}
        self.cause = "timeout"
        self.calls: list[tuple[str, EntityKind, int]] = []
        self.forgotten: list[tuple[EntityKind, int]] = []

    async def resolve(self, service_endpoint, entity_kind, entity_id, timeout, *, service=None) -> VerificationResult:
        self.calls.append((service_endpoint, EntityKind(entity_kind), entity_id))
        reference = ForeignReference(service=service or service_endpoint, entity_kind=EntityKind(entity_kind), entity_id=entity_id)
        status = self.statuses.get(entity_id, VerificationStatus.CONFIRMED)
        cause = self.cause if status is VerificationStatus.UNREACHABLE else None
        return VerificationResult(reference=reference, status=status, cause=cause)

    def forget(self, entity_kind, entity_id) -> None:
        self.forgotten.append((entity_kind, entity_id))


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = ("HISTORIA_AUTH_PROVIDER", "HISTORIA_JWT_SECRET", "HISTORIA_SERVICE_ENDPOINTS")

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["HISTORIA_AUTH_PROVIDER"] = "mock"
        os.environ["HISTORIA_JWT_SECRET"] = "test-secret"
        os.environ["HISTORIA_SERVICE_ENDPOINTS"] = (
            '{"period-service": "http://periods.internal", "event-service": "http://events.internal", '
            '"media-service": "http://media.internal"}'
        )
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class _ApiCase(_SettingsEnvCase):
    def setUp(self) -> None:
        super().setUp()
        self.app = create_app()
        self.resolver = _StubResolver()
        self.app.dependency_overrides[get_entity_resolver] = lambda: self.resolver
        self.store = self.app.state.store
        self.client = TestClient(self.app)

    def _create_period(self, name: str = "Medieval", **fields: object) -> dict:
        response = self.client.post("/api/periods", json={"name": name, **fields}, headers=ADMIN)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _create_event(self, period_id: int, title: str = "Battle of Hastings", **fields: object) -> dict:
        response = self.client.post("/api/events", json={"period_id": period_id, "title": title, **fields}, headers=USER)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class PeriodApiTests(_ApiCase):
    def test_staff_creates_period_without_resolving_anything(self) -> None:
        period = self._create_period(start_date="1066-01-01", end_date="1485-08-22")

        self.assertEqual(period["name"], "Medieval")
        self.assertEqual(period["start_date"], "1066-01-01")
        self.assertEqual(self.resolver.calls, [])
        self.assertEqual(self.store.period_write_count, 1)

    def test_non_staff_cannot_create_period(self) -> None:
        response = self.client.post("/api/periods", json={"name": "Tudor"}, headers=CURATOR)

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"code": "FORBIDDEN", "message": "Forbidden: insufficient role"})
        self.assertEqual(self.store.period_write_count, 0)

    def test_anonymous_write_is_401(self) -> None:
        response = self.client.post("/api/periods", json={"name": "Tudor"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "TOKEN_MISSING")

    def test_expired_token_is_401_token_expired(self) -> None:
        response = self.client.post("/api/periods", json={"name": "Tudor"}, headers={"Authorization": "Bearer expired:1"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "TOKEN_EXPIRED")

    def test_invalid_payload_is_400(self) -> None:
        for payload in ({}, {"name": "   "}, {"name": "Tudor", "start_date": "1603-01-01", "end_date": "1485-01-01"}):
            response = self.client.post("/api/periods", json=payload, headers=ADMIN)

            self.assertEqual(response.status_code, 400, payload)
            self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
            self.assertTrue(response.json()["details"]["errors"])
        self.assertEqual(self.store.period_write_count, 0)

    def test_periods_list_in_start_date_order(self) -> None:
        self._create_period("Undated")
        self._create_period("Tudor", start_date="1485-08-22")
        self._create_period("Norman", start_date="1066-10-14")

        names = [period["name"] for period in self.client.get("/api/periods").json()]

        self.assertEqual(names, ["Norman", "Tudor", "Undated"])

    def test_get_period_and_missing_period(self) -> None:
        period = self._create_period()

        self.assertEqual(self.client.get(f"/api/periods/{period['id']}").json()["id"], period["id"])
        missing = self.client.get("/api/periods/999")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"code": "RESOURCE_NOT_FOUND", "message": "Resource not found"})

    def test_update_rejects_inverted_dates(self) -> None:
        period = self._create_period(start_date="1066-01-01", end_date="1485-01-01")

        response = self.client.put(f"/api/periods/{period['id']}", json={"start_date": "1500-01-01"}, headers=ADMIN)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

        renamed = self.client.put(f"/api/periods/{period['id']}", json={"name": "High Middle Ages"}, headers=ADMIN)
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.json()["name"], "High Middle Ages")
        self.assertEqual(renamed.json()["start_date"], "1066-01-01")

    def test_delete_cascades_to_local_events_and_counts(self) -> None:
        period = self._create_period()
        self._create_event(period["id"], date="1066-10-14")
        self._create_event(period["id"], title="Domesday Book", date="1086-01-01")

        counts = self.client.get("/api/periods/with-counts").json()
        self.assertEqual(counts[0]["event_count"], 2)

        response = self.client.delete(f"/api/periods/{period['id']}", headers=ADMIN)

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/events").json(), [])

    def test_delete_forgets_period_and_its_events(self) -> None:
        period = self._create_period()
        first = self._create_event(period["id"])
        second = self._create_event(period["id"], title="Domesday Book")

        self.client.delete(f"/api/periods/{period['id']}", headers=ADMIN)

        self.assertEqual(
            self.resolver.forgotten,
            [(EntityKind.PERIOD, period["id"]), (EntityKind.EVENT, first["id"]), (EntityKind.EVENT, second["id"])],
        )

    def test_period_events_sorted_by_date(self) -> None:
        period = self._create_period()
        self._create_event(period["id"], title="Domesday Book", date="1086-01-01")
        self._create_event(period["id"], title="Battle of Hastings", date="1066-10-14")

        titles = [event["title"] for event in self.client.get(f"/api/periods/{period['id']}/events").json()]

        self.assertEqual(titles, ["Battle of Hastings", "Domesday Book"])
        self.assertEqual(self.client.get("/api/periods/999/events").status_code, 404)


class EventApiTests(_ApiCase):
    def test_create_confirms_period_with_owning_service(self) -> None:
        event = self._create_event(7, location_coordinates_lat=50.91, location_coordinates_lng=0.49)

        self.assertEqual(event["period_id"], 7)
        self.assertEqual(self.resolver.calls, [("http://periods.internal", EntityKind.PERIOD, 7)])

    def test_unknown_period_is_422_and_nothing_is_written(self) -> None:
        self.resolver.statuses[7] = VerificationStatus.NOT_FOUND

        response = self.client.post("/api/events", json={"period_id": 7, "title": "Lost"}, headers=USER)

        self.assertEqual(response.status_code, 422)
        body = response.json()
        self.assertEqual(body["code"], "INVALID_REFERENCE")
        self.assertEqual(body["details"]["references"], [{"service": "period-service", "entity_kind": "period", "entity_id": 7}])
        self.assertEqual(self.store.event_write_count, 0)

    def test_timed_out_period_service_is_504(self) -> None:
        self.resolver.statuses[7] = VerificationStatus.UNREACHABLE

        response = self.client.post("/api/events", json={"period_id": 7, "title": "Pending"}, headers=USER)

        self.assertEqual(response.status_code, 504)
        self.assertEqual(response.json()["code"], "DEPENDENCY_UNAVAILABLE")
        self.assertEqual(response.json()["details"]["causes"], ["timeout"])
        self.assertEqual(self.store.event_write_count, 0)

    def test_failing_period_service_is_502(self) -> None:
        self.resolver.statuses[7] = VerificationStatus.UNREACHABLE
        self.resolver.cause = "upstream status 503"

        response = self.client.post("/api/events", json={"period_id": 7, "title": "Pending"}, headers=USER)

        self.assertEqual(response.status_code, 502)
        self.assertEqual(self.store.event_write_count, 0)

    def test_update_only_resolves_a_changed_period(self) -> None:
        event = self._create_event(7)
        self.resolver.calls.clear()

        retitled = self.client.put(f"/api/events/{event['id']}", json={"title": "Hastings"}, headers=USER)
        self.assertEqual(retitled.status_code, 200)
        self.assertEqual(self.resolver.calls, [])

        self.resolver.statuses[8] = VerificationStatus.NOT_FOUND
        moved = self.client.put(f"/api/events/{event['id']}", json={"period_id": 8}, headers=USER)
        self.assertEqual(moved.status_code, 422)
        self.assertEqual(self.client.get(f"/api/events/{event['id']}").json()["period_id"], 7)

    def test_update_of_missing_event_is_404_before_any_resolve(self) -> None:
        response = self.client.put("/api/events/999", json={"period_id": 8}, headers=USER)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "RESOURCE_NOT_FOUND")
        self.assertEqual(self.resolver.calls, [])

    def test_delete_forgets_the_event(self) -> None:
        event = self._create_event(7)

        self.client.delete(f"/api/events/{event['id']}", headers=ADMIN)

        self.assertEqual(self.resolver.forgotten, [(EntityKind.EVENT, event["id"])])

    def test_update_ignores_null_title(self) -> None:
        event = self._create_event(7)

        response = self.client.put(f"/api/events/{event['id']}", json={"title": None, "location": None}, headers=USER)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "Battle of Hastings")

    def test_coordinates_are_range_checked(self) -> None:
        response = self.client.post(
            "/api/events",
            json={"period_id": 7, "title": "Nowhere", "location_coordinates_lat": 91},
            headers=USER,
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.resolver.calls, [])

    def test_delete_is_staff_only(self) -> None:
        event = self._create_event(7)

        forbidden = self.client.delete(f"/api/events/{event['id']}", headers=USER)
        self.assertEqual(forbidden.status_code, 403)
        self.assertEqual(self.store.event_write_count, 1)

        deleted = self.client.delete(f"/api/events/{event['id']}", headers=ADMIN)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get(f"/api/events/{event['id']}").status_code, 404)


class ResolverContractTests(_SettingsEnvCase):
    """The resolver's GET-by-id convention matches this app's own read routes."""

    def test_event_create_resolves_period_through_read_api(self) -> None:
        app = create_app()
        # Route the resolver back into the same app so period lookups hit /api/periods/{id}.
        app.state.resolver = HttpEntityResolver(
            httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
            max_retries=0,
        )
        client = TestClient(app)

        period = client.post("/api/periods", json={"name": "Norman"}, headers=ADMIN).json()

        created = client.post("/api/events", json={"period_id": period["id"], "title": "Hastings"}, headers=USER)
        self.assertEqual(created.status_code, 201, created.text)

        missing = client.post("/api/events", json={"period_id": period["id"] + 100, "title": "Ghost"}, headers=USER)
        self.assertEqual(missing.status_code, 422)
        self.assertEqual(missing.json()["code"], "INVALID_REFERENCE")

    def test_deleted_period_is_not_served_from_cache(self) -> None:
        app = create_app()
        app.state.resolver = HttpEntityResolver(
            httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
            max_retries=0,
            cache=VerificationCache(300),
        )
        client = TestClient(app)
        period = client.post("/api/periods", json={"name": "Norman"}, headers=ADMIN).json()
        confirmed = client.post("/api/events", json={"period_id": period["id"], "title": "Hastings"}, headers=USER)
        self.assertEqual(confirmed.status_code, 201, confirmed.text)

        client.delete(f"/api/periods/{period['id']}", headers=ADMIN)
        orphan = client.post("/api/events", json={"period_id": period["id"], "title": "Domesday"}, headers=USER)

        self.assertEqual(orphan.status_code, 422)
        self.assertEqual(orphan.json()["code"], "INVALID_REFERENCE")


if __name__ == "__main__":
    unittest.main()
