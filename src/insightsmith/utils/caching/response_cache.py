import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

from ...errors import CacheReadAnomaly
from ...logger import get_logger
from ...models import CacheEntry, Response
from .redis_backend import RedisBackend
from .stats import CacheStats

logger = get_logger(__name__)


class ResponseCache:
    """
    Bounded, TTL-keyed store of prior responses.

    Eviction is by insertion order: when full, the earliest-inserted key is
    dropped before the new one is added. Reads do not refresh an entry's
    position. Expiry is checked lazily on read.
    """

    def __init__(
        self,
        max_entries: int = 100,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
        redis: Optional[RedisBackend] = None,
    ):
        """
        Initialize the cache.

        Args:
            max_entries: Maximum number of entries
            default_ttl: TTL in seconds used when set() is called without one
            clock: Returns the current time in seconds
            redis: Optional shared mirror consulted on local misses
        """
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.clock = clock
        self.redis = redis
        self.entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.stats = CacheStats()

    def _expired(self, entry: CacheEntry) -> bool:
        return self.clock() >= entry.expires_at

    def get(self, key: str) -> Optional[Response]:
        """
        Return a copy of the cached response, or None.

        Raises:
            CacheReadAnomaly: the Redis mirror held an unreadable payload
        """
        entry = self.entries.get(key)
        if entry is not None:
            if self._expired(entry):
                self.entries.pop(key, None)
                self.stats.expirations += 1
                self.stats.misses += 1
                logger.debug(f"[cache-expired] {key[:24]}")
                return None
            self.stats.hits += 1
            return entry.response.model_copy(deep=True)

        if self.redis is not None and self.redis.enabled:
            try:
                mirrored = self.redis.get(key)
            except CacheReadAnomaly:
                self.stats.anomalies += 1
                self.stats.misses += 1
                raise
            if mirrored is not None:
                self.stats.hits += 1
                return mirrored

        self.stats.misses += 1
        return None

    def set(self, key: str, response: Response, ttl: Optional[int] = None) -> None:
        """Store a snapshot of ``response`` for ``ttl`` seconds; ttl <= 0 stores nothing."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return

        if key in self.entries:
            self.entries.pop(key)
        elif len(self.entries) >= self.max_entries:
            oldest_key, _ = self.entries.popitem(last=False)
            self.stats.evictions += 1
            logger.debug(f"[cache-evict] {oldest_key[:24]}")

        snapshot = response.model_copy(deep=True, update={"cached": True})
        self.entries[key] = CacheEntry(key=key, response=snapshot, expires_at=self.clock() + ttl)
        self.stats.sets += 1

        if self.redis is not None:
            self.redis.set(key, snapshot, ttl)

    def has(self, key: str) -> bool:
        """True when a live (unexpired) entry exists locally."""
        entry = self.entries.get(key)
        if entry is None:
            return False
        if self._expired(entry):
            self.entries.pop(key, None)
            self.stats.expirations += 1
            return False
        return True

    def clear(self) -> None:
        """Drop every entry, locally and in the mirror."""
        self.entries.clear()
        if self.redis is not None:
            self.redis.clear()
        logger.info("[cache] cleared")

    def size(self) -> int:
        return len(self.entries)

    def keys(self):
        return list(self.entries.keys())

    def summary(self) -> Dict[str, object]:
        return {"size": self.size(), "max_entries": self.max_entries, **self.stats.to_dict()}
