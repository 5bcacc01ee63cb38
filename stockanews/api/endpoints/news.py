from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockanews.core.config import Settings, get_settings
from stockanews.core.errors import NewsSourceError, UpstreamTimeout, UpstreamUnavailable
from stockanews.schemas.news import ErrorBody
from stockanews.services.news.latest import get_latest_news


logger = logging.getLogger(__name__)

router = APIRouter()


ALLOWED_METHODS = "GET, OPTIONS"
ROUTE_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]


class Utf8JSONResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"


def _cors_headers(settings: Settings) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _error(status_code: int, body: ErrorBody, headers: dict[str, str]) -> Utf8JSONResponse:
    return Utf8JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


def _debug_text(exc: BaseException) -> str:
    cause = exc.__cause__ if isinstance(exc, NewsSourceError) and exc.__cause__ else exc
    return f"{type(cause).__name__}: {cause}"


def _log_failure(exc: NewsSourceError) -> None:
    parts = [f"[{exc.log_tag}] {exc}"]
    if exc.status is not None:
        parts.append(f"Status:{exc.status}")
    if exc.content_type is not None:
        parts.append(f"CT:{exc.content_type}")
    if exc.details:
        parts.append(f"Shape:{exc.details}")
    if exc.excerpt:
        parts.append(f"Snippet:{exc.excerpt}")
    logger.error(" | ".join(parts))


@router.api_route("/", methods=ROUTE_METHODS, include_in_schema=False)
async def latest_news(request: Request, settings: Settings = Depends(get_settings)) -> Response:
    headers = _cors_headers(settings)

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)
    if request.method != "GET":
        return _error(405, ErrorBody(error="Only GET allowed"), headers)

    headers["Cache-Control"] = settings.cache_control

    try:
        envelope = await asyncio.wait_for(
            get_latest_news(settings),
            timeout=settings.upstream_deadline_seconds,
        )
    except asyncio.TimeoutError:
        exc = UpstreamTimeout(f"Request exceeded {settings.upstream_deadline_seconds:g}s limit")
        _log_failure(exc)
        return _error(exc.status_code, ErrorBody(error=exc.error), headers)
    except NewsSourceError as exc:
        _log_failure(exc)
        debug = None
        if isinstance(exc, UpstreamUnavailable) and settings.dev_mode:
            debug = _debug_text(exc)
        return _error(exc.status_code, ErrorBody(error=exc.error, hint=exc.hint, debug=debug), headers)
    except Exception as exc:
        logger.exception("[CRITICAL ERROR] %s: %s", type(exc).__name__, exc)
        debug = _debug_text(exc) if settings.dev_mode else None
        return _error(500, ErrorBody(error="Service unavailable", debug=debug), headers)

    return Utf8JSONResponse(status_code=200, content=envelope.model_dump(by_alias=True), headers=headers)


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # Methods outside ROUTE_METHODS never reach the route; give them the same body and headers.
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)
    resolve = request.app.dependency_overrides.get(get_settings, get_settings)
    headers = _cors_headers(resolve())
    headers["Allow"] = ALLOWED_METHODS
    return _error(405, ErrorBody(error="Only GET allowed"), headers)
