from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Article(_CamelModel):
    id: str
    title: str = Field(..., min_length=1)
    summary: str = ""
    url: str = Field(..., min_length=1, description="Absolute article URL.")
    published_at: str | None = Field(None, description="ISO-8601 UTC, millisecond precision.")
    source: str
    image_url: str | None = None


class NewsEnvelope(_CamelModel):
    success: bool = True
    count: int
    last_updated: str
    articles: list[Article] = Field(default_factory=list)


class ErrorBody(BaseModel):
    error: str
    hint: str | None = None
    debug: str | None = None
