"""
In-process TTL cache.

Holds small JSON-ready snapshots (currently only the open-loans list) and
is invalidated explicitly by the writes that change them.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

BORROWED_BOOKS_KEY = "borrowed_books"


class CacheManager:
    """Keyed cache whose entries expire ``ttl_seconds`` after they were written."""

    def __init__(self, ttl_seconds: int = 600, timer: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._timer = timer
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.RLock()
        self.stats = {"hits": 0, "misses": 0}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or an expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if self._timer() < expires_at:
                    self.stats["hits"] += 1
                    return value
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
            self.stats["misses"] += 1
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (value, self._timer() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Cache entry invalidated: {key}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
