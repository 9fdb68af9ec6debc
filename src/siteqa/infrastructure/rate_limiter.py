"""
Token Bucket Rate Limiter.

Throttles page loads for sequential traversal of the live site. Callers
block in acquire() until a permit is available; there is no timeout.
"""

import logging
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)


class TokenBucketLimiter:
    """
    Token bucket rate limiter shared by every caller in the process.

    With the default capacity of one permit the limiter releases permits at
    a steady `rate` per second; larger capacities allow short bursts while
    maintaining the average rate.
    """

    def __init__(
        self,
        rate: float = 1.0,  # Permits per second
        capacity: int = 1,  # Max burst size
    ):
        """
        Initialize token bucket.

        Args:
            rate: Permit generation rate (per second)
            capacity: Maximum permits in bucket
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.rate = rate
        self.capacity = capacity
        self._tokens = float(capacity)
        self._last_update = time.monotonic()
        self._lock = threading.Lock()
        self._total_acquired = 0
        self._total_wait_time = 0.0

    def acquire(self, tokens: int = 1) -> float:
        """
        Acquire permits, blocking the calling thread if necessary.

        The lock is held while sleeping so waiting callers are served in
        turn rather than racing for the next refill.

        Args:
            tokens: Number of permits to acquire

        Returns:
            Time waited (seconds)
        """
        if tokens > self.capacity:
            raise ValueError(f"cannot acquire {tokens} permits from a bucket of {self.capacity}")

        with self._lock:
            wait_time = 0.0

            while True:
                self._refill()

                if self._tokens >= tokens:
                    self._tokens -= tokens
                    self._total_acquired += tokens
                    self._total_wait_time += wait_time
                    if wait_time > 0:
                        logger.debug(f"Rate limiter: waited {wait_time:.2f}s for {tokens} permit(s)")
                    return wait_time

                # Calculate wait time for enough tokens
                needed = tokens - self._tokens
                wait = needed / self.rate

                time.sleep(wait)
                wait_time += wait

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = time.monotonic()
        elapsed = now - self._last_update

        new_tokens = elapsed * self.rate
        self._tokens = min(self.capacity, self._tokens + new_tokens)
        self._last_update = now

    @property
    def available_tokens(self) -> float:
        """Current available permits."""
        with self._lock:
            self._refill()
            return self._tokens

    @property
    def total_acquired(self) -> int:
        return self._total_acquired

    @property
    def total_wait_time(self) -> float:
        return self._total_wait_time


_shared_limiter: Optional[TokenBucketLimiter] = None
_shared_lock = threading.Lock()


def get_shared_limiter(rate: float) -> TokenBucketLimiter:
    """
    Get the process-wide limiter, creating it on first use.

    Later calls return the same instance regardless of `rate`; use
    reset_shared_limiter() to change it.

    Args:
        rate: Permits per second for a newly created limiter

    Returns:
        The shared TokenBucketLimiter
    """
    global _shared_limiter
    with _shared_lock:
        if _shared_limiter is None:
            _shared_limiter = TokenBucketLimiter(rate=rate)
            logger.info(f"Created shared rate limiter at {rate} permits/second")
        return _shared_limiter


def reset_shared_limiter() -> None:
    """Drop the process-wide limiter so the next caller creates a new one."""
    global _shared_limiter
    with _shared_lock:
        _shared_limiter = None
