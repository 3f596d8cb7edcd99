"""
Host-aware request pacing.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from app.crawling.urls import host_of


class HostRateLimiter:
    """
    Enforces a minimum interval between requests to the same host.

    Concurrent callers reserve consecutive slots under the lock and sleep
    outside it, so a worker pool never sends two requests to one host
    closer together than the interval.
    """

    def __init__(
        self,
        *,
        default_min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._default_min_interval = max(0.0, default_min_interval_seconds)
        self._next_slot_by_host: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep

    def wait(
        self,
        *,
        url: str,
        min_interval_seconds: float | None = None,
        crawl_delay_seconds: float | None = None,
    ) -> float:
        """
        Block until a request to `url`'s host is allowed; return seconds waited.
        """

        host = host_of(url)
        if not host:
            return 0.0

        interval = self._default_min_interval if min_interval_seconds is None else min_interval_seconds
        if crawl_delay_seconds is not None:
            interval = max(interval, crawl_delay_seconds)
        interval = max(0.0, interval)

        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot_by_host.get(host, now))
            self._next_slot_by_host[host] = slot + interval
        wait_seconds = slot - now
        if wait_seconds > 0:
            self._sleep(wait_seconds)
        return wait_seconds
