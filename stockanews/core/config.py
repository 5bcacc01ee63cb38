from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_UPSTREAM_ORIGIN = "https://stockanalysis.com"
DEFAULT_UPSTREAM_URL = f"{DEFAULT_UPSTREAM_ORIGIN}/news/__data.json"


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
]


# Where the SvelteKit loader currently puts the article list. It moves.
DEFAULT_ARTICLES_PATH: list[str | int] = ["nodes", 1, "data"]


def _split_list(raw: str, sep: str = ",") -> list[Any]:
    parsed = raw.strip()
    if parsed.startswith("["):
        try:
            return [x for x in json.loads(parsed) if str(x).strip()]
        except ValueError:
            pass
    return [s.strip() for s in parsed.split(sep) if s.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOCKANEWS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Production unless told otherwise; dev mode echoes internal error detail.
    dev_mode: bool = Field(default=False)

    cors_allow_origin: str = Field(default="*")
    cache_max_age_seconds: int = Field(default=300, ge=0, le=86400)
    cache_stale_while_revalidate_seconds: int = Field(default=60, ge=0, le=86400)

    upstream_origin: str = Field(default=DEFAULT_UPSTREAM_ORIGIN)
    upstream_url: str = Field(default=DEFAULT_UPSTREAM_URL)
    source_name: str = Field(default="StockAnalysis")

    # Cache-busting query parameter; "{ts}" is epoch milliseconds.
    cache_bust_param: str = Field(default="x-sveltekit-invalidated")
    cache_bust_format: str = Field(default="{ts}_{ts}")

    user_agents: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS), min_length=1
    )

    upstream_deadline_seconds: float = Field(default=8.0, gt=0.0, le=60.0)
    upstream_retries: int = Field(default=0, ge=0, le=5)
    upstream_retry_backoff_seconds: float = Field(default=0.35, ge=0.0, le=5.0)

    articles_path: Annotated[list[str | int], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ARTICLES_PATH)
    )

    log_level: str = Field(default="INFO")
    log_excerpt_chars: int = Field(default=200, ge=0, le=5000)

    # Allow STOCKANEWS_USER_AGENTS as JSON array or "|"-separated string (agents contain commas).
    @field_validator("user_agents", mode="before")
    @classmethod
    def _parse_user_agents(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [str(x).strip() for x in _split_list(value, sep="|")]
        return value

    # Same for STOCKANEWS_ARTICLES_PATH; numeric segments become list indexes.
    @field_validator("articles_path", mode="before")
    @classmethod
    def _parse_articles_path(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [
                int(x) if isinstance(x, str) and x.lstrip("-").isdigit() else x
                for x in _split_list(value)
            ]
        return value

    @property
    def cache_control(self) -> str:
        value = f"s-maxage={self.cache_max_age_seconds}"
        if self.cache_stale_while_revalidate_seconds:
            value += f", stale-while-revalidate={self.cache_stale_while_revalidate_seconds}"
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
