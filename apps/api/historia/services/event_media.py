"""Media listings for events and periods, read from the media service."""

from __future__ import annotations

import asyncio
import logging

from historia.adapters.remote.media import HttpMediaReader, RemoteReadError
from historia.errors import dependency_unavailable, not_found
from historia.repositories.memory import InMemoryStore
from historia.schemas.media import Media

logger = logging.getLogger(__name__)

MEDIA_SERVICE = "media-service"
_DEADLINE_EXCEEDED = "deadline exceeded"
_FAILURE_MESSAGE = "The media service could not list media"


class EventMediaService:
    """Cross-service reads; any failure surfaces as ``DEPENDENCY_UNAVAILABLE``, never as an empty list."""

    def __init__(
        self,
        store: InMemoryStore,
        reader: HttpMediaReader,
        *,
        service_endpoint: str,
        timeout_seconds: float,
        deadline_seconds: float,
    ) -> None:
        self._store = store
        self._reader = reader
        self._endpoint = service_endpoint
        self._timeout = timeout_seconds
        self._deadline = deadline_seconds

    async def list_for_event(self, event_id: int) -> list[Media]:
        if self._store.get_event(event_id) is None:
            raise not_found()
        return (await self._fetch_all([event_id]))[0]

    async def list_for_period(self, period_id: int) -> list[Media]:
        if self._store.get_period(period_id) is None:
            raise not_found()
        event_ids = [event.id for event in self._store.list_events_for_period(period_id)]
        if not event_ids:
            return []
        return [media for batch in await self._fetch_all(event_ids) for media in batch]

    async def _fetch_all(self, event_ids: list[int]) -> list[list[Media]]:
        try:
            async with asyncio.timeout(self._deadline):
                results = await asyncio.gather(
                    *(self._reader.list_for_event(self._endpoint, event_id, self._timeout) for event_id in event_ids),
                    return_exceptions=True,
                )
        except TimeoutError:
            logger.warning("event_media.deadline_exceeded events=%s", len(event_ids))
            raise dependency_unavailable(_FAILURE_MESSAGE, [_DEADLINE_EXCEEDED]) from None

        causes = [result.cause for result in results if isinstance(result, RemoteReadError)]
        if causes:
            raise dependency_unavailable(_FAILURE_MESSAGE, causes)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results


__all__ = ["MEDIA_SERVICE", "EventMediaService"]
