"""Per-client token bucket rate limiting."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class RateBucket:
    tokens: float
    last_refill_at: float


@dataclass(frozen=True)
class TakeResult:
    admitted: bool
    remaining_tokens: float
    reset_after: float

    @property
    def remaining(self) -> int:
        """Remaining tokens floored for display."""
        return math.floor(self.remaining_tokens)

    @property
    def reset_seconds(self) -> int:
        """Seconds until the bucket is full again, rounded up."""
        return math.ceil(self.reset_after)


class TokenBucketLimiter:
    """Admission control with one continuously refilled bucket per identity.

    Args:
        capacity: Maximum burst size (bucket size).
        refill_rate: Tokens added per second.
        clock: Monotonic time source, in seconds.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._buckets: dict[str, RateBucket] = {}
        self._lock = threading.Lock()

    def take(self, identity: str) -> TakeResult:
        """Try to consume one token for *identity*."""
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(identity)
            if bucket is None:
                bucket = RateBucket(tokens=self.capacity, last_refill_at=now)
                self._buckets[identity] = bucket

            # Refill happens on rejected calls too so throttled clients recover
            self._refill(bucket, now)

            admitted = bucket.tokens >= 1
            if admitted:
                bucket.tokens -= 1
            tokens = bucket.tokens

        if not admitted:
            logger.info("Rate limit exceeded for %s", identity)
        return TakeResult(
            admitted=admitted,
            remaining_tokens=tokens,
            reset_after=(self.capacity - tokens) / self.refill_rate,
        )

    def prune(self) -> int:
        """Forget buckets that have refilled to capacity.

        A fresh bucket starts full, so dropping a full one changes nothing a
        client can observe. Returns the number of buckets removed.
        """
        with self._lock:
            now = self._clock()
            idle = []
            for identity, bucket in self._buckets.items():
                self._refill(bucket, now)
                if bucket.tokens >= self.capacity:
                    idle.append(identity)
            for identity in idle:
                del self._buckets[identity]
        if idle:
            logger.debug("Pruned %d idle rate limit buckets", len(idle))
        return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _refill(self, bucket: RateBucket, now: float) -> None:
        elapsed = now - bucket.last_refill_at
        if elapsed > 0:
            bucket.tokens = min(self.capacity, bucket.tokens + elapsed * self.refill_rate)
            bucket.last_refill_at = now
