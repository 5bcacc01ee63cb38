from __future__ import annotations

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockanews.api.endpoints.news import method_not_allowed_handler
from stockanews.api.router import api_router
from stockanews.core.config import get_settings
from stockanews.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(get_settings())

    app = FastAPI(
        title="stockanews",
        version="0.1.0",
    )

    # Unlisted methods (TRACE, PROPFIND, ...) are rejected by routing, not by the news route.
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)

    app.include_router(api_router)
    return app


app = create_app()
