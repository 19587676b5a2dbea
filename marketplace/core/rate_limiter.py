"""
Per-client attempt limits for the auth endpoints.

Each (scope, client) pair gets a fixed window. Buckets whose window has
closed are dropped on the next check, so the table only holds clients seen
in the current window.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    attempts: int
    closes_at: float


class AttemptLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def hit(self, key: str, limit: int, window_seconds: int) -> None:
        """Count one attempt for ``key``; raise 429 once the window's allowance is spent."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = _Bucket(0, now + window_seconds)
            bucket.attempts += 1
            if bucket.attempts <= limit:
                return
            retry_after = max(1, math.ceil(bucket.closes_at - now))
        logger.warning("rate limit hit for %s", key)
        raise HTTPException(
            429,
            "Too many attempts. Try again shortly.",
            headers={"Retry-After": str(retry_after)},
        )

    def _prune(self, now: float) -> None:
        expired = [key for key, bucket in self._buckets.items() if bucket.closes_at <= now]
        for key in expired:
            del self._buckets[key]

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter = AttemptLimiter()


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    _limiter.hit(f"{scope}:{client_address(request)}", limit, window_seconds)


def reset_rate_limits() -> None:
    _limiter.clear()
