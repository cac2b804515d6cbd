"""Catalog synchronization job.

acquire feed -> locate product nodes -> normalize -> upsert, one product
at a time in document order. The entry points always return a result
object instead of raising.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync import metrics
from catalog_sync.config import settings
from catalog_sync.db.repository import ProductRepository
from catalog_sync.ingest.feed_fetcher import FeedFetcher, FetchedFeed
from catalog_sync.ingest.feed_parser import DEFAULT_PARSER_CONFIG, ParserConfig, extract_product_nodes
from catalog_sync.logging_config import get_logger
from catalog_sync.normalize.categories import category_section, sections_for_product_name
from catalog_sync.normalize.processor import ProductNormalizer
from catalog_sync.normalize.product import CanonicalProduct

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    success: bool
    count: int = 0
    error: Optional[str] = None
    source_url: Optional[str] = None
    found: int = 0
    discarded: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "count": self.count}
        return {"success": False, "error": self.error}


@dataclass
class FeedCensus:
    """Product counts of a feed, without touching the store."""

    total: int = 0
    source_url: str = ""
    by_category: Dict[str, int] = field(default_factory=dict)
    by_section: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "source_url": self.source_url,
            "by_category": self.by_category,
            "by_section": self.by_section,
        }


class CatalogSyncRunner:
    """
    Runs the feed-to-store synchronization.

    The fetcher, normalizer and session factory are injectable; by default
    they come from settings.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        fetcher: Optional[FeedFetcher] = None,
        normalizer: Optional[ProductNormalizer] = None,
        parser_config: ParserConfig = DEFAULT_PARSER_CONFIG,
        feed_urls: Optional[Sequence[str]] = None,
    ):
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.parser_config = parser_config
        self.normalizer = normalizer or ProductNormalizer(parser_config)
        self.feed_urls = list(feed_urls) if feed_urls is not None else list(settings.feed_urls)

    async def _fetch(self) -> FetchedFeed:
        if self.fetcher is not None:
            return await self.fetcher.acquire(self.feed_urls)
        async with FeedFetcher() as fetcher:
            return await fetcher.acquire(self.feed_urls)

    def _get_session_factory(self) -> Callable[[], AsyncSession]:
        if self.session_factory is None:
            from catalog_sync.db.session import AsyncSessionLocal

            self.session_factory = AsyncSessionLocal
        return self.session_factory

    async def _load_nodes(self, log=logger) -> Tuple[FetchedFeed, List[Dict[str, Any]]]:
        feed = await self._fetch()
        log.info(f"Using feed from {feed.url}")
        log.debug(f"Feed head: {feed.text[:500]}")

        found = extract_product_nodes(feed.content or feed.text, self.parser_config)
        for i, node in enumerate(found.nodes[:settings.sample_node_log_count], start=1):
            log.info(f"Product {i} keys: {list(node.keys())}")
        return feed, found.nodes

    async def sync_products(self) -> SyncResult:
        """
        Pull the feed and upsert every valid product.

        Returns:
            SyncResult; count is the number of products actually written
        """
        run_id = uuid4().hex[:12]
        log = get_logger(__name__, run_id=run_id)
        log.info("Starting catalog sync")

        try:
            feed, nodes = await self._load_nodes(log)
            total = len(nodes)
            log.info(f"Found {total} products in feed")

            written = discarded = failed = 0
            async with self._get_session_factory()() as session:
                repo = ProductRepository(session)
                for index, node in enumerate(nodes, start=1):
                    if index % settings.progress_log_interval == 0:
                        log.info(f"Processing products {index}/{total}...")

                    product = self.normalizer.normalize(node)
                    if not product.is_valid:
                        discarded += 1
                        metrics.products_synced_total.labels(result="discarded").inc()
                        log.info(f"Skipping invalid product (id={product.id!r}, name={product.name!r})")
                        continue

                    try:
                        await repo.upsert(product)
                    except Exception as e:
                        failed += 1
                        metrics.products_synced_total.labels(result="failed").inc()
                        log.error(f"Failed to save product {product.id}: {e}")
                        continue

                    written += 1
                    metrics.products_synced_total.labels(result="written").inc()

            log.info(
                f"Catalog sync finished: {written} saved, {discarded} skipped, {failed} failed"
            )
            metrics.sync_runs_total.labels(status="success").inc()
            return SyncResult(
                success=True,
                count=written,
                source_url=feed.url,
                found=total,
                discarded=discarded,
                failed=failed,
            )

        except Exception as e:
            log.exception(f"Catalog sync failed: {e}")
            metrics.sync_runs_total.labels(status="failed").inc()
            return SyncResult(success=False, error=str(e))

    async def load_feed_products(self) -> List[CanonicalProduct]:
        """
        Fetch and normalize the feed without writing anything.

        Raises:
            FeedAcquisitionError, FeedParseError: If the feed is unusable
        """
        _, nodes = await self._load_nodes()
        products = self.normalizer.normalize_many(nodes)
        logger.info(f"Normalized {len(products)} of {len(nodes)} feed products")
        return products

    async def count_feed_products(self) -> FeedCensus:
        """
        Count feed products per feed category and storefront section.

        Raises:
            FeedAcquisitionError, FeedParseError: If the feed is unusable
        """
        feed, nodes = await self._load_nodes()
        products = self.normalizer.normalize_many(nodes)

        by_category: Counter = Counter()
        by_section: Counter = Counter()
        for product in products:
            category = product.categories[0] if product.categories else ""
            if category:
                by_category[category] += 1
            section = category_section(category)
            sections = [section] if section else sections_for_product_name(product.name)
            by_section.update(sections)

        return FeedCensus(
            total=len(products),
            source_url=feed.url,
            by_category=dict(by_category.most_common()),
            by_section=dict(by_section.most_common()),
        )


async def sync_products_with_database(feed_urls: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """Run a full sync with default collaborators and return the result dict."""
    runner = CatalogSyncRunner(feed_urls=feed_urls)
    result = await runner.sync_products()
    return result.to_dict()
