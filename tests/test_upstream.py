import httpx
import pytest
import respx
from httpx import Response

from stockanews.core.config import DEFAULT_UPSTREAM_URL, Settings
from stockanews.core.errors import MalformedUpstream, UpstreamBlocked, UpstreamTimeout, UpstreamUnavailable
from stockanews.services.news.upstream import build_upstream_headers, build_upstream_url, fetch_news_payload


def test_build_upstream_url_uses_configured_cache_buster():
    url = build_upstream_url(Settings(), now_ms=1700000000000)
    assert url == f"{DEFAULT_UPSTREAM_URL}?x-sveltekit-invalidated=1700000000000_1700000000000"


def test_build_upstream_url_format_drift_is_configuration():
    settings = Settings(cache_bust_param="x-sveltekit-trailing-slash", cache_bust_format="1")
    assert build_upstream_url(settings, now_ms=5).endswith("?x-sveltekit-trailing-slash=1")

    settings = Settings(upstream_url="https://example.com/data.json?a=b", cache_bust_format="v{ts}")
    assert build_upstream_url(settings, now_ms=7) == "https://example.com/data.json?a=b&x-sveltekit-invalidated=v7"

    assert build_upstream_url(Settings(cache_bust_param="")) == DEFAULT_UPSTREAM_URL


def test_build_upstream_headers_look_like_the_site():
    settings = Settings()
    headers = build_upstream_headers(settings)
    assert headers["User-Agent"] in settings.user_agents
    assert headers["Referer"] == "https://stockanalysis.com/news/"
    assert headers["Origin"] == "https://stockanalysis.com"
    assert headers["Accept-Language"].startswith("en-US")
    assert headers["Accept"] == "*/*"


@pytest.mark.asyncio
async def test_fetch_sends_browser_headers_and_cache_buster():
    settings = Settings()
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(return_value=Response(200, json={"ok": 1}))
        async with httpx.AsyncClient() as client:
            data = await fetch_news_payload(settings, client)
        request = route.calls.last.request

    assert data == {"ok": 1}
    assert "x-sveltekit-invalidated" in request.url.params
    assert request.headers["origin"] == "https://stockanalysis.com"
    assert request.headers["user-agent"] in settings.user_agents


@pytest.mark.asyncio
async def test_fetch_opens_its_own_client():
    with respx.mock() as respx_mock:
        respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(return_value=Response(200, json=[1, 2]))
        assert await fetch_news_payload(Settings()) == [1, 2]


@pytest.mark.asyncio
async def test_fetch_classifies_challenge_page_as_blocked():
    with respx.mock() as respx_mock:
        respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(
            return_value=Response(403, text="<html>challenge</html>", headers={"content-type": "text/html"})
        )
        with pytest.raises(UpstreamBlocked) as info:
            await fetch_news_payload(Settings(log_excerpt_chars=10))

    assert info.value.status == 403
    assert info.value.content_type == "text/html"
    assert info.value.excerpt == "<html>chal..."


@pytest.mark.asyncio
async def test_fetch_classifies_bad_json_as_malformed():
    with respx.mock() as respx_mock:
        respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(
            return_value=Response(200, content=b"<", headers={"content-type": "application/json"})
        )
        with pytest.raises(MalformedUpstream):
            await fetch_news_payload(Settings())


@pytest.mark.asyncio
async def test_fetch_classifies_transport_errors():
    with respx.mock() as respx_mock:
        respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(side_effect=httpx.ConnectTimeout("t"))
        with pytest.raises(UpstreamTimeout):
            await fetch_news_payload(Settings())

    with respx.mock() as respx_mock:
        respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(side_effect=httpx.ConnectError("down"))
        with pytest.raises(UpstreamUnavailable):
            await fetch_news_payload(Settings())


@pytest.mark.asyncio
async def test_single_attempt_by_default():
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(return_value=Response(503, text="busy"))
        with pytest.raises(UpstreamBlocked):
            await fetch_news_payload(Settings())
        assert route.call_count == 1


@pytest.mark.asyncio
async def test_optional_retries_recover_from_transient_status():
    settings = Settings(upstream_retries=2, upstream_retry_backoff_seconds=0.0)
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(
            side_effect=[Response(503, text="busy"), Response(200, json={"nodes": []})]
        )
        assert await fetch_news_payload(settings) == {"nodes": []}
        assert route.call_count == 2


@pytest.mark.asyncio
async def test_timeouts_are_not_retried():
    settings = Settings(upstream_retries=3, upstream_retry_backoff_seconds=0.0)
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(UpstreamTimeout):
            await fetch_news_payload(settings)
        assert route.call_count == 1


@pytest.mark.asyncio
async def test_retries_cover_challenge_pages_and_connection_errors():
    settings = Settings(upstream_retries=2, upstream_retry_backoff_seconds=0.0)
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(
            side_effect=[
                Response(403, text="<html>challenge</html>", headers={"content-type": "text/html"}),
                httpx.ConnectError("reset"),
                Response(200, json={"nodes": [1]}),
            ]
        )
        assert await fetch_news_payload(settings) == {"nodes": [1]}
        assert route.call_count == 3


@pytest.mark.asyncio
async def test_retries_give_up_with_last_classification():
    settings = Settings(upstream_retries=1, upstream_retry_backoff_seconds=0.0)
    with respx.mock() as respx_mock:
        route = respx_mock.get(url__startswith=DEFAULT_UPSTREAM_URL).mock(
            side_effect=[httpx.ConnectError("reset"), httpx.ConnectError("reset")]
        )
        with pytest.raises(UpstreamUnavailable):
            await fetch_news_payload(settings)
        assert route.call_count == 2
