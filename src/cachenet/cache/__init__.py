"""Tiered response caching for cachenet.

This package provides :class:`CacheStore`, which keeps decoded responses in
memory and persists their raw bytes to disk using :mod:`diskcache`.  The
store is owned by a :class:`~cachenet.client.Networking` instance and is
consulted by the dispatch engine before, and populated after, every
network round-trip whose :class:`~cachenet.models.CachingLevel` is not
``NONE``.
"""

from cachenet.cache.store import CacheStore

__all__ = ["CacheStore"]
