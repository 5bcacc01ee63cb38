from __future__ import annotations

import asyncio
from typing import Callable

import httpx

from stockanews.core.config import Settings


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    # One short-lived client per invocation; nothing is shared across requests.
    limits = httpx.Limits(max_keepalive_connections=1, max_connections=2)
    timeout = httpx.Timeout(settings.upstream_deadline_seconds)
    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


async def request_with_retries(
    client: httpx.AsyncClient,
    *,
    method: str,
    url: str,
    retries: int,
    backoff_seconds: float,
    retry_if: Callable[[httpx.Response], bool],
    **kwargs,
) -> httpx.Response:
    """Send ``method url``, retrying connection failures and responses matching ``retry_if``.

    Timeouts propagate from the first attempt. After the last attempt the final
    response is returned as-is for the caller to classify.
    """
    for attempt in range(retries + 1):
        last_attempt = attempt >= retries
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.NetworkError:
            if last_attempt:
                raise
        else:
            if last_attempt or not retry_if(resp):
                return resp
        await asyncio.sleep(backoff_seconds * (2**attempt))
    raise RuntimeError("request_with_retries failed unexpectedly")
