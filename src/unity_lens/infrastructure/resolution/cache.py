"""
Time-bounded cache of resolved identifier names.

The cache is persisted as one record in a KeyValueStore::

    {
        "uuidCache": {"<uuid>": {"data": {"type": ..., "fullName": ...}, "cachedAt": <epoch-ms>}},
        "cacheUpdatedAt": <epoch-ms> | null
    }

Entries are valid for CACHE_TTL_MS after they were written; expired entries
are reported as misses and overwritten on re-resolution.
"""

import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from unity_lens.domain.identifiers import ResolvedName, TypedIdentifier
from unity_lens.io.storage import KeyValueStore
from unity_lens.utils.logging import get_logger

from .types import CACHE_TTL_MS, CacheStatus

logger = get_logger(__name__)

CACHE_KEY = "uuidCache"
UPDATED_AT_KEY = "cacheUpdatedAt"


class ResolutionCache:
    """
    Cache of identifier -> ResolvedName with a fixed 24-hour TTL.

    All reads and writes of the persisted record go through one lock, so
    concurrent merges cannot lose each other's entries.

    Attributes:
        store: Persistence backend holding the cache record.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _load(self) -> Tuple[Dict[str, Any], Optional[int]]:
        stored = self.store.get([CACHE_KEY, UPDATED_AT_KEY])
        entries = stored.get(CACHE_KEY) or {}
        if not isinstance(entries, dict):
            logger.warning("cache.unexpected_record", record_type=type(entries).__name__)
            entries = {}
        return entries, stored.get(UPDATED_AT_KEY)

    def split(
        self, identifiers: Iterable[TypedIdentifier]
    ) -> Tuple[Dict[str, ResolvedName], List[TypedIdentifier]]:
        """
        Partition identifiers into fresh cache hits and misses.

        Every identifier lands in exactly one of the two results. Missing,
        expired and unreadable entries are all misses.

        Returns:
            Tuple of (hits keyed by lower-case id, misses in request order)
        """
        with self._lock:
            entries, _ = self._load()
        now = self._now_ms()

        hits: Dict[str, ResolvedName] = {}
        misses: List[TypedIdentifier] = []
        for ident in identifiers:
            key = ident.id.lower()
            value = _fresh_value(entries.get(key), now)
            if value is None:
                misses.append(ident)
            else:
                hits[key] = value

        logger.info("cache.split", hits=len(hits), misses=len(misses))
        return hits, misses

    def merge(self, fresh: Dict[str, ResolvedName]) -> None:
        """
        Store freshly resolved names, overwriting any previous entries.

        The whole record is re-read and re-written under the lock, and
        ``cacheUpdatedAt`` is bumped even when ``fresh`` is empty.
        """
        with self._lock:
            entries, _ = self._load()
            now = self._now_ms()
            for key, value in fresh.items():
                entries[key.lower()] = {"data": value.to_record(), "cachedAt": now}
            self.store.set({CACHE_KEY: entries, UPDATED_AT_KEY: now})

        logger.info("cache.merged", stored=len(fresh), size=len(entries))

    def clear(self) -> None:
        """Drop every entry and unset the last-update timestamp."""
        with self._lock:
            self.store.set({CACHE_KEY: {}, UPDATED_AT_KEY: None})
        logger.info("cache.cleared")

    def status(self) -> CacheStatus:
        with self._lock:
            entries, updated_at = self._load()
        return CacheStatus(size=len(entries), updated_at_ms=updated_at)


def _fresh_value(entry: Any, now_ms: int) -> Optional[ResolvedName]:
    if not isinstance(entry, dict):
        return None
    cached_at = entry.get("cachedAt")
    if not isinstance(cached_at, (int, float)) or now_ms - cached_at >= CACHE_TTL_MS:
        return None
    try:
        return ResolvedName.model_validate(entry.get("data"))
    except ValidationError:
        logger.debug("cache.unreadable_entry")
        return None
