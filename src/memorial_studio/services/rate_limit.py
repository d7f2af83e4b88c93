"""Rate limiter abstractions."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class RateLimiter(Protocol):
    """Shared key-value limiter; multi-process deployments need a shared store."""

    def check(self, key: str) -> bool:
        """Record a request for the key and return whether it is allowed."""


@dataclass
class _Window:
    count: int
    resets_at: datetime


@dataclass
class InMemoryRateLimiter(RateLimiter):
    """Fixed-window limiter held in process memory."""

    max_requests: int
    window_seconds: float
    _windows: dict[str, _Window]

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows = {}

    def check(self, key: str) -> bool:
        """Allow up to max_requests per key within each window."""
        now = datetime.now(tz=UTC)
        self._evict_expired(now)
        window = self._windows.get(key)
        if window is None:
            self._windows[key] = _Window(
                count=1, resets_at=now + timedelta(seconds=self.window_seconds)
            )
            return True
        if window.count >= self.max_requests:
            return False
        window.count += 1
        return True

    def _evict_expired(self, now: datetime) -> None:
        expired = [key for key, w in self._windows.items() if now >= w.resets_at]
        for key in expired:
            self._windows.pop(key, None)
