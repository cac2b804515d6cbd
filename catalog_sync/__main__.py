"""Command line entry point.

    python -m catalog_sync sync      # pull the feed and upsert products
    python -m catalog_sync preview   # normalize the feed, print products
    python -m catalog_sync count     # product counts per category/section
    python -m catalog_sync init-db   # create missing tables
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from catalog_sync.logging_config import setup_logging
from catalog_sync.worker.tasks import CatalogSyncRunner

logger = logging.getLogger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


async def _run(args: argparse.Namespace) -> int:
    urls: Optional[List[str]] = args.url or None

    if args.command == "init-db":
        from catalog_sync.db.session import init_db

        await init_db()
        logger.info("Database tables created")
        return 0

    runner = CatalogSyncRunner(feed_urls=urls)

    if args.command == "sync":
        result = await runner.sync_products()
        _print_json(result.to_dict())
        return 0 if result.success else 1

    if args.command == "preview":
        products = await runner.load_feed_products()
        if args.limit is not None:
            products = products[:args.limit]
        _print_json([p.to_dict() for p in products])
        return 0

    if args.command == "count":
        census = await runner.count_feed_products()
        _print_json(census.to_dict())
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="catalog_sync", description="Supplier catalog feed sync")
    parser.add_argument(
        "--url",
        action="append",
        help="Candidate feed URL (repeatable, tried in order; defaults to FEED_URLS)",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Fetch the feed and upsert products into the database")
    preview = sub.add_parser("preview", help="Fetch and normalize the feed without saving")
    preview.add_argument("--limit", type=int, default=None, help="Print at most N products")
    sub.add_parser("count", help="Count feed products per category and storefront section")
    sub.add_parser("init-db", help="Create database tables")

    args = parser.parse_args(argv)
    setup_logging()

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
