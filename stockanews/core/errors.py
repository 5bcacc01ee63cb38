from __future__ import annotations

from typing import Any


class NewsSourceError(Exception):
    """Base for failures the news route maps onto a client-facing error body.

    ``status_code``, ``error`` and ``hint`` are what the client sees. Everything
    else (upstream status, content type, body excerpt, shape details) is for the
    operational log only.
    """

    status_code: int = 500
    error: str = "Service unavailable"
    hint: str | None = None
    log_tag: str = "UNAVAILABLE"

    def __init__(
        self,
        message: str = "",
        *,
        status: int | None = None,
        content_type: str | None = None,
        excerpt: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or self.error)
        self.status = status
        self.content_type = content_type
        self.excerpt = excerpt
        self.details = details or {}


class UpstreamTimeout(NewsSourceError):
    status_code = 504
    error = "Upstream timeout"
    log_tag = "TIMEOUT"


class UpstreamBlocked(NewsSourceError):
    status_code = 502
    error = "Source blocked request"
    hint = "Upstream returned a non-JSON or error response (likely a bot challenge); check server logs"
    log_tag = "BLOCKED"


class MalformedUpstream(UpstreamBlocked):
    hint = "Upstream returned JSON that could not be parsed; check server logs"
    log_tag = "MALFORMED"


class StructuralFailure(NewsSourceError):
    status_code = 500
    error = "Data structure changed"
    hint = "Upstream payload no longer matches the configured articles path; check transformation logic"
    log_tag = "TRANSFORM FAIL"


class UpstreamUnavailable(NewsSourceError):
    status_code = 500
    error = "Service unavailable"
    log_tag = "UNAVAILABLE"
