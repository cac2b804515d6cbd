"""Prometheus metrics for the catalog sync service."""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("catalog_sync", "Catalog sync application info")
app_info.info({"version": "0.1.0", "name": "catalog-sync"})

# Feed acquisition metrics
feed_fetch_attempts_total = Counter(
    "feed_fetch_attempts_total",
    "Total number of feed fetch attempts per candidate URL",
    ["status"],
)

feed_fetch_duration_seconds = Histogram(
    "feed_fetch_duration_seconds",
    "Time spent fetching a single candidate feed URL",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Sync metrics
sync_runs_total = Counter(
    "sync_runs_total",
    "Total number of catalog sync runs",
    ["status"],
)

products_synced_total = Counter(
    "products_synced_total",
    "Products processed by sync runs",
    ["result"],  # written, discarded, failed
)

feed_products_found = Gauge(
    "feed_products_found",
    "Number of product nodes found in the last parsed feed",
)
