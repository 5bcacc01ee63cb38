from __future__ import annotations

import httpx

from stockanews.core.config import Settings
from stockanews.schemas.news import NewsEnvelope
from stockanews.services.news.normalize import normalize_payload, utc_now_iso
from stockanews.services.news.upstream import fetch_news_payload


async def get_latest_news(settings: Settings, client: httpx.AsyncClient | None = None) -> NewsEnvelope:
    payload = await fetch_news_payload(settings, client)
    articles = normalize_payload(payload, settings)
    return NewsEnvelope(
        success=True,
        count=len(articles),
        last_updated=utc_now_iso(),
        articles=articles,
    )
