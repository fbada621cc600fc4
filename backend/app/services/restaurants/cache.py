"""
Stale-while-revalidate cache with single-flight fetches.

- Fresh (age < ttl): return the cached value.
- Stale (ttl <= age < ttl + stale window): return the cached value now and refresh it on
  the executor in the background.
- Missing or past the stale window: the caller blocks on a fetch.

At most one fetch per key is in flight; every caller for that key waits on the same Future.
A failed fetch never touches the cached entry, so a stale value stays servable until its
window runs out.
"""
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from app.core.constants import CACHE_REFRESH_WORKERS

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("value", "created_at")

    def __init__(self, value: Any, created_at: float) -> None:
        self.value = value
        self.created_at = created_at


class StaleWhileRevalidateCache:
    """One cache instance per policy; build them once and pass them to whoever needs them."""

    def __init__(
        self,
        name: str,
        *,
        ttl_seconds: float,
        stale_seconds: float,
        max_entries: int | None = None,
        executor: ThreadPoolExecutor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.stale_seconds = stale_seconds
        self.max_entries = max_entries
        self._executor = executor
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._stale_hits = 0
        self._misses = 0
        self._refresh_failures = 0

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=CACHE_REFRESH_WORKERS,
                thread_name_prefix=f"{self.name}_refresh",
            )
        return self._executor

    def get_or_fetch(self, key: str, fetch: Callable[[], Any]) -> Any:
        """Return the value for key, fetching (or joining an in-flight fetch) when needed."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                age = self._clock() - entry.created_at
                if age < self.ttl_seconds:
                    self._hits += 1
                    self._entries.move_to_end(key)
                    return entry.value
                if age < self.ttl_seconds + self.stale_seconds:
                    self._stale_hits += 1
                    self._entries.move_to_end(key)
                    self._refresh_in_background_locked(key, fetch)
                    return entry.value
            self._misses += 1
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future
        if owner:
            self._run_fetch(key, fetch, future)
        else:
            logger.debug("%s cache: joining in-flight fetch for %s", self.name, key)
        return future.result()

    def _refresh_in_background_locked(self, key: str, fetch: Callable[[], Any]) -> None:
        if key in self._in_flight:
            return
        future: Future = Future()
        self._in_flight[key] = future
        try:
            self._get_executor().submit(self._run_fetch, key, fetch, future)
        except RuntimeError as e:
            # Executor shut down (app stopping); stale value is still returned
            self._in_flight.pop(key, None)
            logger.warning("%s cache: could not schedule refresh for %s: %s", self.name, key, e)
            return
        logger.debug("%s cache: stale hit for %s, refreshing in background", self.name, key)

    def _run_fetch(self, key: str, fetch: Callable[[], Any], future: Future) -> None:
        try:
            value = fetch()
        except BaseException as e:
            with self._lock:
                self._in_flight.pop(key, None)
                self._refresh_failures += 1
            logger.warning("%s cache: fetch failed for %s: %s", self.name, key, e)
            future.set_exception(e)
            if not isinstance(e, Exception):
                raise
            return
        with self._lock:
            self._entries[key] = _Entry(value, self._clock())
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)
            self._in_flight.pop(key, None)
        future.set_result(value)

    def refresh(self, key: str, fetch: Callable[[], Any]) -> Any:
        """Fetch now regardless of freshness (joins an in-flight fetch). Used by the warm job."""
        with self._lock:
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future
        if owner:
            self._run_fetch(key, fetch, future)
        return future.result()

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._stale_hits = 0
            self._misses = 0
            self._refresh_failures = 0

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._stale_hits + self._misses
            served = self._hits + self._stale_hits
            return {
                "name": self.name,
                "size": len(self._entries),
                "in_flight": len(self._in_flight),
                "hits": self._hits,
                "stale_hits": self._stale_hits,
                "misses": self._misses,
                "refresh_failures": self._refresh_failures,
                "hit_rate": round(served / total * 100, 1) if total > 0 else 0.0,
            }
