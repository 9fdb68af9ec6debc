"""Thread-safe forward-only cursor over the URL corpus."""

import threading
from typing import Iterable, Optional


class SharedUrlCursor:
    """
    Hands out each corpus URL to exactly one caller.

    The existence check and the advance happen inside one critical section,
    so concurrent callers can neither receive the same URL twice nor lose one
    to a race between "has more" and "take one".
    """

    def __init__(self, urls: Iterable[str]):
        """
        Initialize cursor.

        Args:
            urls: Ordered corpus; copied, so later changes to the source are not seen
        """
        self._urls: tuple[str, ...] = tuple(urls)
        self._position = 0
        self._lock = threading.Lock()

    def try_next(self) -> Optional[str]:
        """
        Take the next unserved URL.

        Returns:
            The URL, or None once the corpus is exhausted
        """
        with self._lock:
            if self._position >= len(self._urls):
                return None
            url = self._urls[self._position]
            self._position += 1
            return url

    @property
    def total(self) -> int:
        return len(self._urls)

    @property
    def served(self) -> int:
        with self._lock:
            return self._position

    @property
    def remaining(self) -> int:
        with self._lock:
            return len(self._urls) - self._position

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0
