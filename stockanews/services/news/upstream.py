from __future__ import annotations

import json
import logging
import random
import time
from typing import Any
from urllib.parse import urlencode

import httpx

from stockanews.core.config import Settings
from stockanews.core.errors import MalformedUpstream, UpstreamBlocked, UpstreamTimeout, UpstreamUnavailable
from stockanews.core.http import create_http_client, request_with_retries
from stockanews.core.logging import excerpt


logger = logging.getLogger(__name__)


def build_upstream_url(settings: Settings, now_ms: int | None = None) -> str:
    """Data endpoint URL plus the cache-busting parameter the upstream expects.

    The parameter name and value format drift with upstream releases; both come
    from settings so this is the only place that changes when they do.
    """
    if not settings.cache_bust_param:
        return settings.upstream_url
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    query = urlencode({settings.cache_bust_param: settings.cache_bust_format.format(ts=ts)})
    sep = "&" if "?" in settings.upstream_url else "?"
    return f"{settings.upstream_url}{sep}{query}"


def build_upstream_headers(settings: Settings) -> dict[str, str]:
    # The CDN in front of the upstream rejects anything that doesn't look like the site's own XHR.
    origin = settings.upstream_origin.rstrip("/")
    return {
        "User-Agent": random.choice(settings.user_agents),
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": f"{origin}/news/",
        "Origin": origin,
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
    }


def _is_json(content_type: str) -> bool:
    return "application/json" in content_type.lower()


def _looks_blocked(resp: httpx.Response) -> bool:
    return not resp.is_success or not _is_json(resp.headers.get("content-type", ""))


async def _get(client: httpx.AsyncClient, settings: Settings) -> httpx.Response:
    url = build_upstream_url(settings)
    try:
        return await request_with_retries(
            client,
            method="GET",
            url=url,
            headers=build_upstream_headers(settings),
            retries=settings.upstream_retries,
            backoff_seconds=settings.upstream_retry_backoff_seconds,
            retry_if=_looks_blocked,
        )
    except httpx.TimeoutException as exc:
        raise UpstreamTimeout(f"Upstream timeout: {type(exc).__name__}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(f"Upstream error: {type(exc).__name__}: {exc}") from exc


async def fetch_news_payload(settings: Settings, client: httpx.AsyncClient | None = None) -> Any:
    """Single GET against the upstream data endpoint; returns the decoded JSON."""
    if client is None:
        async with create_http_client(settings) as owned:
            resp = await _get(owned, settings)
    else:
        resp = await _get(client, settings)

    content_type = resp.headers.get("content-type", "")
    limit = settings.log_excerpt_chars
    if _looks_blocked(resp):
        raise UpstreamBlocked(
            f"Upstream status {resp.status_code}",
            status=resp.status_code,
            content_type=content_type,
            excerpt=excerpt(resp.text, limit),
        )

    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedUpstream(
            f"Upstream JSON decode failed: {exc}",
            status=resp.status_code,
            content_type=content_type,
            excerpt=excerpt(resp.text, limit),
        ) from exc
