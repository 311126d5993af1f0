"""Two-tier store for decoded responses.

Tier 1 is an in-process dictionary holding decoded objects, so repeated reads
return the identical object.  Tier 2 persists the raw bytes with
:mod:`diskcache` and decodes them again on a read, promoting the result into
tier 1.

Entries are keyed by ``(response type, cache name)``; a JSON document and an
image stored under the same name never shadow each other.  Disk keys are
SHA-256 hashes of ``TYPE|name``.

The disk tier is best-effort: any failure to read, write, or decode an entry
is reported as a warning and treated as a miss, so a broken cache directory
never fails a request.
"""

from __future__ import annotations

import hashlib
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

import diskcache

from cachenet.client.codecs import get_codec
from cachenet.exceptions import CacheError, CachenetError
from cachenet.models import CachingLevel, ResponseType
from cachenet.output import debug, warning

_DISK_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class CacheStore:
    """Memory + disk cache for decoded responses.

    Args:
        cache_dir: Root directory for the disk tier.  A ``responses/``
            subdirectory is created inside it.  ``None`` disables the disk
            tier; ``MEMORY_AND_FILE`` then behaves like ``MEMORY``.  A
            directory that cannot be opened also leaves the disk tier off,
            with a warning.

    Example::

        store = CacheStore("/tmp/cachenet")
        store.put("/users", [{"id": 1}], CachingLevel.MEMORY_AND_FILE, ResponseType.JSON)
        store.get("/users", ResponseType.JSON)  # [{'id': 1}]
    """

    def __init__(self, cache_dir: str | Path | None = None) -> None:
        self._lock = threading.RLock()
        self._memory: dict[tuple[ResponseType, str], Any] = {}
        self._disk: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        if self._cache_dir is not None:
            try:
                self._disk = diskcache.Cache(str(self._cache_dir / "responses"))
            except _DISK_ERRORS as exc:
                warning(f"Disk cache unavailable at {self._cache_dir}, using memory only: {exc}")

    @property
    def has_disk_tier(self) -> bool:
        return self._disk is not None

    def get(
        self,
        cache_name: str,
        response_type: ResponseType,
        caching_level: CachingLevel = CachingLevel.MEMORY_AND_FILE,
    ) -> Optional[Any]:
        """Look up a cached object, memory first.

        Args:
            cache_name: Cache name (usually the request path).
            response_type: Response type of the stored object.
            caching_level: ``MEMORY`` consults tier 1 only; ``NONE`` always
                misses.

        Returns:
            The decoded object, or ``None`` on a miss.
        """
        caching_level = CachingLevel(caching_level)
        if caching_level is CachingLevel.NONE:
            return None

        key = (ResponseType(response_type), cache_name)
        with self._lock:
            if key in self._memory:
                debug(f"Memory cache hit: {cache_name} ({key[0].value})")
                return self._memory[key]
            if caching_level is not CachingLevel.MEMORY_AND_FILE or self._disk is None:
                return None

            raw = self._disk_get(key)
            if raw is None:
                return None
            try:
                value = get_codec(key[0]).decode(raw)
            except CachenetError as exc:
                warning(f"Discarding unreadable cache entry {cache_name!r}: {exc}")
                self._disk_delete(key)
                return None

            debug(f"Disk cache hit: {cache_name} ({key[0].value}), promoted to memory")
            self._memory[key] = value
            return value

    def put(
        self,
        cache_name: str,
        value: Any,
        caching_level: CachingLevel,
        response_type: ResponseType,
        raw: Optional[bytes] = None,
    ) -> None:
        """Store *value* in the tiers selected by *caching_level*.

        Args:
            cache_name: Cache name (usually the request path).
            value: The decoded object.
            caching_level: ``MEMORY`` writes tier 1 only, ``MEMORY_AND_FILE``
                both tiers, ``NONE`` nothing.
            response_type: Response type of *value*.
            raw: Original response bytes for the disk tier.  When omitted,
                *value* is re-encoded with the response type's codec.
        """
        caching_level = CachingLevel(caching_level)
        if caching_level is CachingLevel.NONE:
            return

        key = (ResponseType(response_type), cache_name)
        with self._lock:
            self._memory[key] = value
            if caching_level is not CachingLevel.MEMORY_AND_FILE or self._disk is None:
                return
            try:
                payload = raw if raw is not None else get_codec(key[0]).encode(value)
            except CachenetError as exc:
                warning(f"Cannot persist cache entry {cache_name!r}: {exc}")
                return
            try:
                self._disk.set(self._disk_key(key), payload)
            except _DISK_ERRORS as exc:
                warning(f"Disk cache write failed for {cache_name!r}: {exc}")

    def invalidate(self, cache_name: str, response_type: Optional[ResponseType] = None) -> None:
        """Remove an entry from both tiers.

        Args:
            cache_name: Cache name to remove.
            response_type: Only remove this response type; all types when
                ``None``.
        """
        types = [ResponseType(response_type)] if response_type is not None else list(ResponseType)
        with self._lock:
            for rtype in types:
                key = (rtype, cache_name)
                self._memory.pop(key, None)
                self._disk_delete(key)

    def clear_memory(self) -> None:
        """Drop tier 1 only; subsequent reads fall through to the disk tier."""
        with self._lock:
            self._memory.clear()

    def clear(self) -> None:
        """Remove every entry from both tiers.

        Raises:
            CacheError: If the disk tier cannot be cleared.
        """
        with self._lock:
            self._memory.clear()
            if self._disk is None:
                return
            try:
                self._disk.clear()
            except _DISK_ERRORS as exc:
                raise CacheError(f"Cannot clear disk cache: {exc}") from exc

    def stats(self) -> dict[str, Any]:
        """Return entry counts and the disk directory."""
        with self._lock:
            result: dict[str, Any] = {"memory_entries": len(self._memory), "disk_enabled": False}
            if self._disk is not None:
                result.update(
                    disk_enabled=True,
                    disk_entries=len(self._disk),
                    directory=str(self._cache_dir / "responses"),
                )
            return result

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and drop tier 1."""
        with self._lock:
            self._memory.clear()
            if self._disk is not None:
                self._disk.close()

    # ------------------------------------------------------------------ #
    # Disk helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _disk_key(key: tuple[ResponseType, str]) -> str:
        raw = f"{key[0].value}|{key[1]}"
        return hashlib.sha256(raw.encode()).hexdigest()

    def _disk_get(self, key: tuple[ResponseType, str]) -> Optional[bytes]:
        if self._disk is None:
            return None
        try:
            raw = self._disk.get(self._disk_key(key))
        except _DISK_ERRORS as exc:
            warning(f"Disk cache read failed for {key[1]!r}: {exc}")
            return None
        if raw is None:
            return None
        if not isinstance(raw, bytes):
            warning(f"Discarding malformed cache entry {key[1]!r}")
            self._disk_delete(key)
            return None
        return raw

    def _disk_delete(self, key: tuple[ResponseType, str]) -> None:
        if self._disk is None:
            return
        try:
            self._disk.delete(self._disk_key(key))
        except _DISK_ERRORS as exc:
            warning(f"Disk cache delete failed for {key[1]!r}: {exc}")
