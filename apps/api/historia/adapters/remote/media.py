"""Reads of media records owned by the media service."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from historia.adapters.remote.transport import TransientFailure, check_retry_budget, get_with_retry
from historia.schemas.media import Media

logger = logging.getLogger(__name__)

_MEDIA_LIST = TypeAdapter(list[Media])


class RemoteReadError(Exception):
    """The media service gave no usable answer; ``cause`` says why."""

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause


def event_media_url(service_endpoint: str, event_id: int) -> str:
    return f"{service_endpoint.rstrip('/')}/api/media/event/{event_id}"


class HttpMediaReader:
    """Lists an event's media over the media service's read API.

    Uses the same per-attempt deadline and bounded retry as entity resolution.
    Failures raise ``RemoteReadError``; an empty list always means the service
    answered with no media.
    """

    def __init__(self, client: httpx.AsyncClient, *, max_retries: int = 2, backoff_seconds: float = 0.1) -> None:
        check_retry_budget(max_retries)
        self._client = client
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds

    async def list_for_event(self, service_endpoint: str, event_id: int, timeout: float) -> list[Media]:
        try:
            response = await get_with_retry(
                self._client,
                event_media_url(service_endpoint, event_id),
                timeout=timeout,
                max_retries=self._max_retries,
                backoff_seconds=self._backoff_seconds,
            )
        except TransientFailure as exc:
            raise self._failed(event_id, exc.cause) from exc

        if response.status_code != 200:
            raise self._failed(event_id, f"unexpected status {response.status_code}")
        try:
            body: Any = response.json()
        except ValueError as exc:
            raise self._failed(event_id, "malformed body") from exc

        # Accept both a bare list and the {"success": ..., "data": [...]} envelope.
        items = body.get("data") if isinstance(body, dict) else body
        try:
            return _MEDIA_LIST.validate_python(items)
        except ValidationError as exc:
            raise self._failed(event_id, "unexpected body") from exc

    @staticmethod
    def _failed(event_id: int, cause: str) -> RemoteReadError:
        logger.warning("media_reader.failed event_id=%s cause=%s", event_id, cause)
        return RemoteReadError(cause)


__all__ = ["HttpMediaReader", "RemoteReadError", "event_media_url"]
