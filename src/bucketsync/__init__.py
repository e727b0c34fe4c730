"""bucketsync - resumable, catalog-driven object storage synchronization."""

__version__ = "0.1.0"
