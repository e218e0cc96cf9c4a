"""
Per-instance request budget for the primary provider.

The limiter is a value object owned by one gateway instance. Its counter
lives in process memory only: under horizontal scale-out the budget is
"max_requests per window per live instance". Within a process the counter
is shared by concurrent requests and guarded by a lock.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """
    Fixed-window request counter reset by wall-clock comparison.

    Attributes:
        max_requests: Requests allowed per window
        window_seconds: Window length in seconds
        requests_in_window: Requests counted in the current window
        window_reset_time: Wall-clock time (epoch seconds) at which the window resets
        clock: Time source, returns epoch seconds

    Example:
        >>> limiter = RateLimiter(max_requests=100, window_seconds=60)
        >>> if limiter.try_acquire():
        ...     call_primary()
    """
    max_requests: int = 100
    window_seconds: float = 60.0
    clock: Callable[[], float] = field(default=time.time, repr=False)
    requests_in_window: int = 0
    window_reset_time: Optional[float] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.window_reset_time is None:
            self.window_reset_time = self.clock() + self.window_seconds

    def _roll_window(self) -> None:
        now = self.clock()
        if now > self.window_reset_time:
            self.requests_in_window = 0
            self.window_reset_time = now + self.window_seconds

    def try_acquire(self) -> bool:
        """
        Count one request against the budget.

        Returns:
            True if the request fits in the current window, False if the
            budget is exhausted (the request is not counted)
        """
        with self._lock:
            self._roll_window()
            if self.requests_in_window >= self.max_requests:
                logger.debug(
                    f"Rate limit reached ({self.requests_in_window}/{self.max_requests}); "
                    f"window resets at {self.window_reset_time:.0f}"
                )
                return False
            self.requests_in_window += 1
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            self._roll_window()
            return max(self.max_requests - self.requests_in_window, 0)
