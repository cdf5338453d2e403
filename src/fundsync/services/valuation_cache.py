"""Short-TTL in-memory cache of provider valuations keyed by fund code."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from fundsync.core.timezone import now_market
from fundsync.domain.models import CacheEntry, ValuationResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 5


class ValuationCache:
    """
    Read-through cache for the valuation client.

    Expiry is checked on every read, so an expired entry is a miss even if
    sweep() never ran. The cache is an optimization only: callers must treat
    a cleared or empty cache exactly like a cold one.
    """

    def __init__(
        self,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = now_market,
    ):
        self._ttl_minutes = ttl_minutes
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        # Batch workers read and write concurrently
        self._lock = threading.Lock()

    @property
    def ttl_minutes(self) -> int:
        return self._ttl_minutes

    def get(self, code: str) -> Optional[ValuationResult]:
        """Return the cached valuation, or None when absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(code)
            if entry is None:
                logger.debug("Valuation cache miss for %s", code)
                return None
            if entry.is_expired(now):
                logger.debug("Valuation cache entry for %s expired at %s", code, entry.expires_at)
                return None
        logger.debug("Valuation cache hit for %s", code)
        return entry.result

    def put(self, code: str, result: ValuationResult, ttl_minutes: Optional[int] = None) -> CacheEntry:
        """Store (always overwriting) a valuation for `ttl_minutes`."""
        ttl = self._ttl_minutes if ttl_minutes is None else ttl_minutes
        written_at = self._clock()
        entry = CacheEntry(
            result=result,
            written_at=written_at,
            expires_at=written_at + timedelta(minutes=ttl),
        )
        with self._lock:
            self._entries[code] = entry
        return entry

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [code for code, entry in self._entries.items() if entry.is_expired(now)]
            for code in expired:
                del self._entries[code]
        if expired:
            logger.debug("Swept %d expired valuation cache entries", len(expired))
        return len(expired)

    def invalidate(self, code: str) -> None:
        with self._lock:
            self._entries.pop(code, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
