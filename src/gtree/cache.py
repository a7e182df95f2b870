"""In-memory expiring cache for rendered trees."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheRecord(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Key → value store where every entry lives for the same fixed TTL.

    Expired entries are removed lazily the first time a lookup sees them.
    All access goes through one lock; the critical sections are plain dict
    operations and never wait on I/O.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._records: dict[str, CacheRecord[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if self._clock() >= record.expires_at:
                del self._records[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            return record.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._records[key] = CacheRecord(value, self._clock() + self.ttl)

    def purge_expired(self) -> int:
        """Drop every expired record. Returns the number removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, r in self._records.items() if now >= r.expires_at]
            for key in stale:
                del self._records[key]
        if stale:
            logger.debug("Purged %d expired cache entries", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def tree_cache_key(owner: str, repo: str, branch: str) -> str:
    """Cache key for a rendered tree. Owner and repo names cannot contain ':'."""
    return f"{owner}:{repo}:{branch}"


def branch_cache_key(owner: str, repo: str) -> str:
    return f"default_branch:{owner}:{repo}"
