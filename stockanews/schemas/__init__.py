from __future__ import annotations

from stockanews.schemas.news import Article, ErrorBody, NewsEnvelope

__all__ = ["Article", "ErrorBody", "NewsEnvelope"]
