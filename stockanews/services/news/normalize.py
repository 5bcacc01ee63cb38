from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone as dt_timezone
from typing import Any, Sequence
from urllib.parse import urljoin, urlsplit

from stockanews.core.config import Settings
from stockanews.core.errors import StructuralFailure
from stockanews.schemas.news import Article
from stockanews.services.news.accessor import describe_shape, first_present, first_text, lookup


logger = logging.getLogger(__name__)


# Candidate keys per field, most recent upstream naming first.
TITLE_KEYS = ("t", "title")
URL_KEYS = ("u", "url", "link")
DATE_KEYS = ("d", "date", "timestamp")
SUMMARY_KEYS = ("s", "summary", "description")
IMAGE_KEYS = ("i", "image", "img")


def iso_utc(dt: datetime) -> str:
    return dt.astimezone(dt_timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return iso_utc(datetime.now(dt_timezone.utc))


def epoch_to_iso(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not value or not math.isfinite(value):
            return None
        return iso_utc(datetime.fromtimestamp(value, tz=dt_timezone.utc))
    except (OverflowError, OSError, ValueError):
        return None


WEB_SCHEMES = {"http", "https"}


def absolute_url(origin: str, path: str | None) -> str | None:
    """Resolve an upstream link against the site origin.

    Relative paths must stay on the origin. Absolute links survive only as plain
    http(s) URLs; anything else (javascript:, mailto:, protocol-relative) is None.
    """
    if not path:
        return None
    try:
        parts = urlsplit(path)
    except ValueError:
        return None
    if parts.scheme:
        if parts.scheme.lower() in WEB_SCHEMES and parts.netloc:
            return path
        return None
    if parts.netloc:
        return None
    base = origin.rstrip("/")
    joined = urljoin(base + "/", path)
    if urlsplit(joined).netloc != urlsplit(base).netloc:
        return None
    return joined


def _article_id(path: str) -> str:
    return path.split("/")[-1] or str(int(time.time() * 1000))


def locate_entries(payload: Any, path: Sequence[str | int]) -> list[Any]:
    entries = lookup(payload, path, list)
    if entries is None:
        raise StructuralFailure(
            "Unexpected data structure",
            details=describe_shape(payload, path),
        )
    return entries


def normalize_entry(raw: Any, *, origin: str, source: str) -> Article | None:
    if not isinstance(raw, dict):
        return None
    title = first_text(raw, TITLE_KEYS)
    path = first_text(raw, URL_KEYS)
    if not title or not path:
        return None
    url = absolute_url(origin, path)
    if not url:
        return None
    try:
        return Article(
            id=_article_id(path),
            title=title,
            summary=first_text(raw, SUMMARY_KEYS) or "",
            url=url,
            published_at=epoch_to_iso(first_present(raw, DATE_KEYS)),
            source=source,
            image_url=absolute_url(origin, first_text(raw, IMAGE_KEYS)),
        )
    except ValueError as exc:
        logger.debug("Dropping entry %r: %s", path, exc)
        return None


def normalize_payload(payload: Any, settings: Settings) -> list[Article]:
    entries = locate_entries(payload, settings.articles_path)
    try:
        articles: list[Article] = []
        for raw in entries:
            article = normalize_entry(raw, origin=settings.upstream_origin, source=settings.source_name)
            if article:
                articles.append(article)
    except Exception as exc:
        raise StructuralFailure(str(exc) or type(exc).__name__) from exc

    dropped = len(entries) - len(articles)
    if dropped:
        logger.info("Normalized %d of %d upstream entries (%d dropped)", len(articles), len(entries), dropped)
    return articles
