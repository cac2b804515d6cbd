"""Feed acquisition with ordered fallback across candidate URLs.

The provider exposes the same catalog at several historical paths. URLs are
tried one at a time, in order, and the first one returning a non-empty body
wins. Failures on a single URL are logged and never fatal on their own.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import httpx

from catalog_sync import metrics
from catalog_sync.config import settings
from catalog_sync.errors import FeedAcquisitionError
from catalog_sync.ingest.http_client import build_feed_client, fetch_feed_text

logger = logging.getLogger(__name__)


@dataclass
class FetchAttempt:
    """Outcome of one candidate URL."""

    url: str
    ok: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    elapsed: float = 0.0


@dataclass
class FetchedFeed:
    """Raw feed document plus the URL that produced it.

    content is the undecoded body; the parser decodes it according to the
    XML declaration. text is the HTTP-level decoding, kept for logging.
    """

    url: str
    text: str
    status_code: int
    attempts: List[FetchAttempt] = field(default_factory=list)
    content: bytes = b""


class FeedFetcher:
    """
    Downloads the catalog feed from the first working candidate URL.

    Features:
    - Sequential fallback, no parallel racing of URLs
    - Per-URL timeout and browser-like headers
    - Aggregated error when every candidate fails
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.feed_timeout_seconds
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = build_feed_client(self.timeout)
        return self._http_client

    async def close(self):
        """Close HTTP client if this fetcher created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def acquire(self, urls: Optional[Sequence[str]] = None) -> FetchedFeed:
        """
        Fetch the feed from the first candidate URL with a non-empty body.

        Args:
            urls: Ordered candidate URLs (defaults to settings.feed_urls)

        Returns:
            FetchedFeed with the body and the URL that answered

        Raises:
            FeedAcquisitionError: If every candidate URL failed
        """
        candidates = list(urls) if urls is not None else list(settings.feed_urls)
        if not candidates:
            raise FeedAcquisitionError("No feed URLs configured")

        client = await self._get_client()
        attempts: List[FetchAttempt] = []
        last_error: Optional[Exception] = None

        for url in candidates:
            logger.info(f"Trying feed source: {url}")
            started = time.monotonic()
            try:
                resp = await fetch_feed_text(client, url, timeout=self.timeout)
            except Exception as e:
                elapsed = time.monotonic() - started
                last_error = e
                attempts.append(FetchAttempt(
                    url=url,
                    ok=False,
                    error=f"{type(e).__name__}: {e}",
                    status_code=getattr(e, "status_code", None),
                    elapsed=elapsed,
                ))
                metrics.feed_fetch_attempts_total.labels(status="failed").inc()
                metrics.feed_fetch_duration_seconds.observe(elapsed)
                logger.warning(f"Feed source failed, trying next: {url} ({type(e).__name__}: {e})")
                continue

            elapsed = time.monotonic() - started
            attempts.append(FetchAttempt(
                url=url,
                ok=True,
                status_code=resp.status_code,
                elapsed=elapsed,
            ))
            metrics.feed_fetch_attempts_total.labels(status="ok").inc()
            metrics.feed_fetch_duration_seconds.observe(elapsed)
            logger.info(f"Feed source answered: {url} ({len(resp.text)} chars in {elapsed:.1f}s)")
            return FetchedFeed(
                url=url,
                text=resp.text,
                status_code=resp.status_code,
                attempts=attempts,
                content=resp.content,
            )

        reason = str(last_error) if last_error else "unknown error"
        raise FeedAcquisitionError(
            f"Could not fetch feed from any of {len(candidates)} sources: {reason}",
            attempts=attempts,
        )
