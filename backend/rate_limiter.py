import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

MAX_BUCKETS = 10_000


@dataclass(slots=True)
class _Bucket:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window request counter keyed by caller id.

    is_limited() answers immediately and never blocks. Expired buckets are
    pruned at most once per window, and the map is capped at max_buckets so
    a flood of distinct keys can't grow it without bound.

    Thread-safety:
    - FastAPI runs sync endpoints in a threadpool, so bucket access is locked
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 20,
        *,
        max_buckets: int = MAX_BUCKETS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self._window = float(window_seconds)
        self._max_requests = max_requests
        self._max_buckets = max_buckets
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def is_limited(self, key: str) -> bool:
        """Count one request for key; True if it goes over the window's limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_prune >= self._window:
                self._prune_expired(now)

            bucket = self._buckets.get(key)
            if bucket is None or now >= bucket.reset_at:
                self._cap_size()
                self._buckets[key] = _Bucket(count=1, reset_at=now + self._window)
                return False

            bucket.count += 1
            return bucket.count > self._max_requests

    def _prune_expired(self, now: float) -> None:
        expired = [key for key, bucket in self._buckets.items() if now >= bucket.reset_at]
        for key in expired:
            del self._buckets[key]
        self._last_prune = now
        if len(expired) > 100:
            logger.info("Rate limiter pruned %d expired buckets", len(expired))

    def _cap_size(self) -> None:
        if len(self._buckets) < self._max_buckets:
            return
        # dicts keep insertion order, so the first keys are the oldest windows
        overflow = len(self._buckets) - self._max_buckets + 1
        for key in list(self._buckets)[:overflow]:
            del self._buckets[key]
        logger.warning("Rate limiter at capacity; evicted %d oldest buckets", overflow)
