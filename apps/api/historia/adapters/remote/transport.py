"""Bounded GET with retry, shared by the sibling-service adapters."""

from __future__ import annotations

import asyncio

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

MAX_RETRIES = 2
_MAX_BACKOFF_SECONDS = 2.0


class TransientFailure(Exception):
    """A failed attempt worth retrying; ``cause`` is the short reason reported upstream."""

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause


def check_retry_budget(max_retries: int) -> None:
    if not 0 <= max_retries <= MAX_RETRIES:
        raise ValueError(f"max_retries must be between 0 and {MAX_RETRIES}")


async def get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float,
    max_retries: int,
    backoff_seconds: float,
) -> httpx.Response:
    """GET ``url``; timeouts, transport errors and 5xx are retried, any other response is returned.

    Raises ``TransientFailure`` once the retry budget is spent.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_seconds, max=_MAX_BACKOFF_SECONDS),
        retry=retry_if_exception_type(TransientFailure),
        reraise=True,
    ):
        with attempt:
            response = await _attempt(client, url, timeout)
    return response


async def _attempt(client: httpx.AsyncClient, url: str, timeout: float) -> httpx.Response:
    try:
        # wait_for bounds the whole exchange, including transports that ignore httpx timeouts.
        response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout=timeout)
    except (TimeoutError, httpx.TimeoutException) as exc:
        raise TransientFailure("timeout") from exc
    except httpx.HTTPError as exc:
        raise TransientFailure(f"transport error: {type(exc).__name__}") from exc

    if response.status_code >= 500:
        raise TransientFailure(f"upstream status {response.status_code}")
    return response


__all__ = ["MAX_RETRIES", "TransientFailure", "check_retry_budget", "get_with_retry"]
