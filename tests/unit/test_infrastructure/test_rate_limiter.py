"""Unit tests for TokenBucketLimiter."""

import threading
import time

import pytest

from siteqa.infrastructure.rate_limiter import (
    TokenBucketLimiter,
    get_shared_limiter,
    reset_shared_limiter,
)


class TestTokenBucketLimiter:
    """Tests for TokenBucketLimiter."""

    def test_initial_tokens(self):
        """Test bucket starts full."""
        limiter = TokenBucketLimiter(rate=2.0, capacity=3)
        assert limiter.available_tokens == pytest.approx(3, abs=0.1)

    def test_first_acquire_is_immediate(self):
        limiter = TokenBucketLimiter(rate=2.0)
        assert limiter.acquire() == 0.0

    def test_sequential_acquisitions_respect_rate(self):
        """10 acquisitions at 2 permits/second take about 4.5 seconds."""
        limiter = TokenBucketLimiter(rate=2.0)

        start = time.monotonic()
        for _ in range(10):
            limiter.acquire()
        elapsed = time.monotonic() - start

        assert elapsed >= 4.4
        assert limiter.total_acquired == 10
        assert limiter.total_wait_time >= 4.4

    def test_burst_capacity(self):
        """A full bucket serves `capacity` permits without waiting."""
        limiter = TokenBucketLimiter(rate=1.0, capacity=5)

        start = time.monotonic()
        for _ in range(5):
            limiter.acquire()

        assert time.monotonic() - start < 0.5

    def test_concurrent_callers_share_the_rate(self):
        limiter = TokenBucketLimiter(rate=10.0)
        start = time.monotonic()

        threads = [threading.Thread(target=limiter.acquire) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # First permit is immediate, the other five arrive at 10/s
        assert time.monotonic() - start >= 0.45
        assert limiter.total_acquired == 6

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            TokenBucketLimiter(rate=0)
        with pytest.raises(ValueError):
            TokenBucketLimiter(rate=1.0, capacity=0)
        with pytest.raises(ValueError):
            TokenBucketLimiter(rate=1.0, capacity=1).acquire(tokens=2)


class TestSharedLimiter:
    """Tests for the process-wide limiter."""

    def test_same_instance(self):
        first = get_shared_limiter(2.0)
        second = get_shared_limiter(5.0)

        assert first is second
        assert first.rate == 2.0

    def test_reset(self):
        first = get_shared_limiter(2.0)
        reset_shared_limiter()

        assert get_shared_limiter(3.0) is not first
