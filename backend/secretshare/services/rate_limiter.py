"""Fixed-window rate limiting per (client IP, route).

Each key has two counters, one per hour and one per minute. A request is
admitted only if both are under their limits; admitted requests increment both
and rejected ones increment neither. Counters expire with their window, so a
burst straddling a window boundary can admit up to twice the nominal limit.

Counters live in a ``limits`` storage backend: ``memory://`` for a single
process, ``redis://...`` to share them between workers.
"""

import threading
from typing import Protocol

from limits.storage import storage_from_string

RATE_LIMIT_PREFIX = "rate_limit:"
HOUR_SECONDS = 60 * 60
MINUTE_SECONDS = 60


class CounterStorage(Protocol):
    def get(self, key: str) -> int: ...

    def incr(self, key: str, expiry: int) -> int: ...


class RateLimiter:
    def __init__(self, storage: CounterStorage) -> None:
        self._storage = storage
        self._lock = threading.Lock()

    @classmethod
    def from_uri(cls, storage_uri: str) -> "RateLimiter":
        return cls(storage_from_string(storage_uri))

    @property
    def storage(self) -> CounterStorage:
        return self._storage

    def allow(self, ip: str, route: str, hour_limit: int, minute_limit: int) -> bool:
        """
        Check and record a request for (ip, route).

        Returns False without counting the request if either window is full.
        Backend errors propagate; the caller decides whether to fail open.
        """
        hour_key = f"{RATE_LIMIT_PREFIX}{ip}:{route}:hour"
        minute_key = f"{RATE_LIMIT_PREFIX}{ip}:{route}:minute"

        # Check and increment as one step within this process
        with self._lock:
            if self._storage.get(hour_key) >= hour_limit:
                return False
            if self._storage.get(minute_key) >= minute_limit:
                return False

            # The expiry only takes effect when incr creates the counter
            self._storage.incr(hour_key, HOUR_SECONDS)
            self._storage.incr(minute_key, MINUTE_SECONDS)
        return True

    def healthy(self) -> bool:
        check = getattr(self._storage, "check", None)
        if check is None:
            return True
        try:
            return bool(check())
        except Exception:
            return False

    def close(self) -> None:
        """Stop the memory backend's expiry timer or close the Redis client."""
        timer = getattr(self._storage, "timer", None)
        if timer is not None:
            timer.cancel()
        client = getattr(self._storage, "storage", None)
        close = getattr(client, "close", None)
        if callable(close):
            close()
