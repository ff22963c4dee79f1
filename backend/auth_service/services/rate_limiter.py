from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    limit: int
    remaining: int
    count: int
    window_reset_epoch: int
    limiter_key: str
    window_seconds: int


class RateLimiter(Protocol):
    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        ...


class NoopRateLimiter:
    """
    Disabled limiter that always allows requests. Used when rate limiting is turned off.
    """

    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        now_ts = int(now if now is not None else time.time())
        reset_epoch = now_ts + window_seconds
        limiter_key = f"noop:{route_key}:window:{window_seconds}"
        return RateLimitResult(
            allowed=True,
            retry_after_seconds=0,
            limit=limit,
            remaining=max(0, limit),
            count=0,
            window_reset_epoch=reset_epoch,
            limiter_key=limiter_key,
            window_seconds=window_seconds,
        )


class InMemoryRateLimiter:
    """
    Fixed-window counter per (identifier, route_key), held in process memory.

    Counts are per worker process. Expired windows are pruned lazily every
    `prune_every` checks.
    """

    def __init__(self, *, prune_every: int = 1000) -> None:
        self._counts: dict[tuple[str, str], tuple[int, int, int]] = {}
        self._lock = threading.Lock()
        self._prune_every = max(1, prune_every)
        self._checks = 0

    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        now_ts = int(now if now is not None else time.time())
        window_seconds = max(1, window_seconds)
        window_start = now_ts - (now_ts % window_seconds)
        window_reset = window_start + window_seconds
        limiter_key = f"route:{route_key}:window:{window_seconds}"
        bucket = (identifier, limiter_key)

        with self._lock:
            self._checks += 1
            if self._checks % self._prune_every == 0:
                self._prune(now_ts)

            stored = self._counts.get(bucket)
            if stored is None or stored[0] != window_start:
                count = 1
            else:
                count = stored[1] + 1
            self._counts[bucket] = (window_start, count, window_reset)

        allowed = count <= limit
        return RateLimitResult(
            allowed=allowed,
            retry_after_seconds=0 if allowed else max(1, window_reset - now_ts),
            limit=limit,
            remaining=max(0, limit - count),
            count=count,
            window_reset_epoch=window_reset,
            limiter_key=limiter_key,
            window_seconds=window_seconds,
        )

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def _prune(self, now_ts: int) -> None:
        expired = [key for key, (_, _, reset_at) in self._counts.items() if reset_at <= now_ts]
        for key in expired:
            del self._counts[key]


def build_rate_limiter(enabled: bool) -> RateLimiter:
    if not enabled:
        logger.info("Rate limiting disabled via RATE_LIMIT_ENABLED=false; using NoopRateLimiter")
        return NoopRateLimiter()
    logger.info("Rate limiting enabled using in-memory fixed windows")
    return InMemoryRateLimiter()
