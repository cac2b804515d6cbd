"""Tests for ordered feed acquisition."""

import httpx
import pytest

from catalog_sync.config import settings
from catalog_sync.errors import FeedAcquisitionError
from catalog_sync.ingest.feed_fetcher import FeedFetcher
from catalog_sync.ingest.http_client import build_feed_client, feed_headers

URLS = [
    "https://feeds.example.com/a",
    "https://feeds.example.com/b",
    "https://feeds.example.com/c",
    "https://feeds.example.com/d",
]


@pytest.mark.asyncio
async def test_first_url_wins(make_fetcher, respond):
    requested = []
    fetcher = make_fetcher({URLS[0]: respond(200, "<Root/>")}, requested)

    feed = await fetcher.acquire(URLS)

    assert feed.url == URLS[0]
    assert feed.text == "<Root/>"
    assert feed.content == b"<Root/>"
    assert requested == [URLS[0]]


@pytest.mark.asyncio
async def test_falls_back_in_order_and_stops_after_success(make_fetcher, respond, read_timeout):
    requested = []
    fetcher = make_fetcher(
        {
            URLS[0]: read_timeout,
            URLS[1]: respond(500, "boom"),
            URLS[2]: respond(200, "<Root><Urunler/></Root>"),
            URLS[3]: respond(200, "<never/>"),
        },
        requested,
    )

    feed = await fetcher.acquire(URLS)

    assert feed.url == URLS[2]
    assert feed.text == "<Root><Urunler/></Root>"
    assert requested == URLS[:3]
    assert [a.ok for a in feed.attempts] == [False, False, True]
    assert feed.attempts[1].status_code == 500


@pytest.mark.asyncio
async def test_empty_body_is_skipped(make_fetcher, respond):
    fetcher = make_fetcher({
        URLS[0]: respond(200, "   \n"),
        URLS[1]: respond(200, "<products/>"),
    })

    feed = await fetcher.acquire(URLS[:2])

    assert feed.url == URLS[1]
    assert "Empty feed body" in feed.attempts[0].error


@pytest.mark.asyncio
async def test_all_fail_reports_last_error(make_fetcher, respond, connect_error):
    fetcher = make_fetcher({
        URLS[0]: respond(404),
        URLS[1]: connect_error,
    })

    with pytest.raises(FeedAcquisitionError) as exc_info:
        await fetcher.acquire(URLS[:2])

    assert "Connection refused" in str(exc_info.value)
    assert len(exc_info.value.attempts) == 2
    assert all(not a.ok for a in exc_info.value.attempts)


@pytest.mark.asyncio
async def test_no_urls_configured(make_fetcher):
    fetcher = make_fetcher({})

    with pytest.raises(FeedAcquisitionError):
        await fetcher.acquire([])


@pytest.mark.asyncio
async def test_request_headers(make_fetcher, respond):
    seen = {}

    def capture(request):
        seen.update(request.headers)
        return respond(200, "<Root/>")(request)

    fetcher = make_fetcher({URLS[0]: capture})
    await fetcher.acquire(URLS[:1])

    assert seen["accept"] == "application/xml, text/xml, */*"
    assert seen["cache-control"] == "no-cache"
    assert "Chrome" in seen["user-agent"]


@pytest.mark.asyncio
async def test_default_timeout_is_sixty_seconds_per_url(make_fetcher, respond, connect_error):
    timeouts = []

    def capture(handler):
        def wrapped(request):
            timeouts.append(request.extensions["timeout"])
            return handler(request)
        return wrapped

    assert settings.feed_timeout_seconds == 60.0
    assert FeedFetcher().timeout == 60.0

    fetcher = make_fetcher(
        {
            URLS[0]: capture(connect_error),
            URLS[1]: capture(respond(200, "<Root/>")),
        },
        timeout=None,
    )
    assert fetcher.timeout == 60.0

    await fetcher.acquire(URLS[:2])

    assert len(timeouts) == 2
    for timeout in timeouts:
        assert timeout["connect"] == 60.0
        assert timeout["read"] == 60.0


@pytest.mark.asyncio
async def test_feed_client_default_timeout():
    client = build_feed_client()
    try:
        assert client.timeout == httpx.Timeout(60.0)
        assert client.follow_redirects is True
    finally:
        await client.aclose()


def test_feed_headers_user_agent_override():
    headers = feed_headers("catalog-sync-test")
    assert headers["User-Agent"] == "catalog-sync-test"
