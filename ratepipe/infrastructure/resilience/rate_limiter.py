"""Sliding window request quota.

Models the remote side of the contract: at most ``max_requests`` requests in
any ``window_seconds`` interval. The simulated exchange uses it to reject
requests that would break the quota, which is how a run proves the
dispatcher paces correctly.
"""

import collections
import logging
import time
from threading import Lock
from typing import Callable, Deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 5
DEFAULT_WINDOW_SECONDS = 5.0


class SlidingWindowQuota:
    """Manages request admission using a sliding window approach."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the quota.

        Args:
            max_requests: Maximum number of requests allowed within the window.
            window_seconds: The duration of the sliding window in seconds.
            clock: Monotonic time source.
        """
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("Max requests and window must be positive.")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.timestamps: Deque[float] = collections.deque()
        self.rejected = 0
        self._clock = clock
        self._lock = Lock()
        logger.info(f"SlidingWindowQuota initialized: Max {max_requests} requests / {window_seconds}s.")

    def _prune_timestamps(self, current_time: float) -> None:
        """Removes timestamps that have slid out of the window."""
        while self.timestamps and self.timestamps[0] <= current_time - self.window_seconds:
            self.timestamps.popleft()

    def can_request(self) -> bool:
        """Checks if a request can be made without exceeding the limit."""
        with self._lock:
            self._prune_timestamps(self._clock())
            return len(self.timestamps) < self.max_requests

    def try_acquire(self) -> bool:
        """Records a request if the quota allows it.

        Returns:
            True if the request was admitted, False if it would exceed the quota.
        """
        with self._lock:
            now = self._clock()
            self._prune_timestamps(now)
            if len(self.timestamps) < self.max_requests:
                self.timestamps.append(now)
                return True
            self.rejected += 1
            logger.debug(f"Quota exceeded: {len(self.timestamps)} requests in the last {self.window_seconds}s.")
            return False

    def wait_time(self) -> float:
        """Seconds until the next request would be admitted (0 if now)."""
        with self._lock:
            now = self._clock()
            self._prune_timestamps(now)
            if len(self.timestamps) < self.max_requests:
                return 0.0
            return max(0.0, self.timestamps[0] + self.window_seconds - now)
