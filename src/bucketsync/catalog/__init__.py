"""Durable per-project catalog of object sync records."""

from bucketsync.catalog.store import CatalogEntry, CatalogStore, StatusCount

__all__ = ["CatalogEntry", "CatalogStore", "StatusCount"]
