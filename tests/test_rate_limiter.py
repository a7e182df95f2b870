"""Tests for rate_limiter module."""

import threading

import pytest

from gtree.rate_limiter import TokenBucketLimiter


class TestTake:
    def test_burst_then_reject_then_recover(self, clock):
        limiter = TokenBucketLimiter(capacity=2, refill_rate=1, clock=clock)
        assert limiter.take("1.2.3.4").admitted is True
        assert limiter.take("1.2.3.4").admitted is True
        assert limiter.take("1.2.3.4").admitted is False
        clock.advance(1)
        assert limiter.take("1.2.3.4").admitted is True

    def test_new_identity_starts_full(self, clock):
        limiter = TokenBucketLimiter(capacity=5, refill_rate=1, clock=clock)
        result = limiter.take("a")
        assert result.remaining_tokens == 4
        assert result.remaining == 4

    def test_identities_are_independent(self, clock):
        limiter = TokenBucketLimiter(capacity=1, refill_rate=1, clock=clock)
        assert limiter.take("a").admitted is True
        assert limiter.take("a").admitted is False
        assert limiter.take("b").admitted is True

    def test_rejection_does_not_consume(self, clock):
        limiter = TokenBucketLimiter(capacity=1, refill_rate=1, clock=clock)
        limiter.take("a")
        clock.advance(0.5)
        result = limiter.take("a")
        assert result.admitted is False
        assert result.remaining_tokens == pytest.approx(0.5)
        assert result.remaining == 0
        clock.advance(0.5)
        assert limiter.take("a").admitted is True

    def test_never_exceeds_capacity(self, clock):
        limiter = TokenBucketLimiter(capacity=3, refill_rate=10, clock=clock)
        limiter.take("a")
        clock.advance(1000)
        result = limiter.take("a")
        assert result.remaining_tokens == 2

    def test_never_negative(self, clock):
        limiter = TokenBucketLimiter(capacity=2, refill_rate=1, clock=clock)
        for _ in range(10):
            assert limiter.take("a").remaining_tokens >= 0

    def test_full_after_capacity_over_rate(self, clock):
        limiter = TokenBucketLimiter(capacity=5, refill_rate=2, clock=clock)
        for _ in range(5):
            assert limiter.take("a").admitted is True
        assert limiter.take("a").admitted is False
        clock.advance(5 / 2)
        assert limiter.take("a").remaining_tokens == 4

    def test_reset_estimate(self, clock):
        limiter = TokenBucketLimiter(capacity=50, refill_rate=100 / 60, clock=clock)
        result = limiter.take("a")
        assert result.reset_after == pytest.approx(0.6)
        assert result.reset_seconds == 1

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            TokenBucketLimiter(capacity=0, refill_rate=1)
        with pytest.raises(ValueError):
            TokenBucketLimiter(capacity=1, refill_rate=0)

    def test_concurrent_takes_admit_exactly_capacity(self, clock):
        limiter = TokenBucketLimiter(capacity=100, refill_rate=1, clock=clock)
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                result = limiter.take("shared")
                if result.admitted:
                    with lock:
                        admitted.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(admitted) == 100


class TestPrune:
    def test_removes_only_full_buckets(self, clock):
        limiter = TokenBucketLimiter(capacity=2, refill_rate=1, clock=clock)
        limiter.take("idle")
        clock.advance(10)
        limiter.take("busy")
        assert limiter.prune() == 1
        assert len(limiter) == 1

    def test_pruned_identity_starts_full_again(self, clock):
        limiter = TokenBucketLimiter(capacity=2, refill_rate=1, clock=clock)
        limiter.take("a")
        clock.advance(5)
        limiter.prune()
        assert limiter.take("a").remaining_tokens == 1
