"""Short-lived cache of definitive reference verdicts."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from historia.domain.integrity import EntityKind, VerificationResult, VerificationStatus

_CACHEABLE_STATUSES = frozenset({VerificationStatus.CONFIRMED, VerificationStatus.NOT_FOUND})


@dataclass(slots=True)
class _Entry:
    result: VerificationResult
    expires_at: float


class VerificationCache:
    """Caches ``Confirmed`` / ``NotFound`` verdicts keyed by (entity kind, entity id).

    Entries are served strictly before their TTL elapses; an entity deleted after
    being confirmed is therefore trusted for at most ``ttl_seconds``.
    Failures are never cached.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("cache TTL must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[tuple[EntityKind, int], _Entry] = {}

    def get(self, entity_kind: EntityKind, entity_id: int) -> VerificationResult | None:
        key = (entity_kind, entity_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.result

    def put(self, result: VerificationResult) -> None:
        if result.status not in _CACHEABLE_STATUSES:
            return
        if len(self._entries) >= self._max_entries:
            self._evict()
        key = (result.reference.entity_kind, result.reference.entity_id)
        self._entries[key] = _Entry(result=result, expires_at=self._clock() + self._ttl)

    def invalidate(self, entity_kind: EntityKind, entity_id: int) -> None:
        self._entries.pop((entity_kind, entity_id), None)

    def __len__(self) -> int:
        return len(self._entries)

    def _evict(self) -> None:
        now = self._clock()
        for key in [key for key, entry in self._entries.items() if now >= entry.expires_at]:
            del self._entries[key]
        # Still full: drop the entry closest to expiry.
        if len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda key: self._entries[key].expires_at)
            del self._entries[oldest]
