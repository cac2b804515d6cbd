"""HTTP helpers for pulling catalog feeds from the upstream provider."""

from __future__ import annotations

from typing import Optional

import httpx

from catalog_sync.config import settings


class FeedHTTPError(RuntimeError):
    """Raised when a feed URL answers with a non-success status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        super().__init__(f"{status_code} {reason}".strip() + f" for {url}")
        self.url = url
        self.status_code = status_code


class EmptyFeedError(RuntimeError):
    """Raised when a feed URL answers successfully with an empty body."""

    def __init__(self, url: str):
        super().__init__(f"Empty feed body from {url}")
        self.url = url


def feed_headers(user_agent: Optional[str] = None) -> dict[str, str]:
    """Get browser-like headers for XML feed requests."""
    return {
        "User-Agent": user_agent or settings.feed_user_agent,
        "Accept": "application/xml, text/xml, */*",
        "Cache-Control": "no-cache",
    }


def build_feed_client(timeout: Optional[float] = None, **kwargs) -> httpx.AsyncClient:
    """Create an AsyncClient configured for feed downloads."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout if timeout is not None else settings.feed_timeout_seconds),
        follow_redirects=True,
        headers=feed_headers(),
        **kwargs,
    )


async def fetch_feed_text(
    client: httpx.AsyncClient,
    url: str,
    timeout: Optional[float] = None,
) -> httpx.Response:
    """
    Fetch a single feed URL and validate the response.

    Args:
        client: httpx AsyncClient instance
        url: Feed URL
        timeout: Per-request timeout in seconds (defaults to settings)

    Returns:
        httpx.Response with a non-empty body

    Raises:
        FeedHTTPError: On a non-2xx status
        EmptyFeedError: On an empty or whitespace-only body
        httpx.HTTPError: On transport failures (timeouts, connection errors)
    """
    resp = await client.get(
        url,
        headers=feed_headers(),
        timeout=timeout if timeout is not None else settings.feed_timeout_seconds,
    )

    if not resp.is_success:
        raise FeedHTTPError(url, resp.status_code, resp.reason_phrase)

    if not resp.text or not resp.text.strip():
        raise EmptyFeedError(url)

    return resp
