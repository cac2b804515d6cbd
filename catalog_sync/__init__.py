"""Supplier catalog feed synchronization.

Fetches the supplier's XML product feed, finds the product nodes in it,
normalizes them into canonical product records and upserts them into
the product store.
"""

__version__ = "0.1.0"
