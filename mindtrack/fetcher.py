"""Cache-through reads of mood and journal records with request coalescing."""

from __future__ import annotations

import asyncio
import logging

from mindtrack.cache import CacheStore, cache_key, user_prefix
from mindtrack.constants import USER_DATA_LIMIT, USER_DATA_TTL_SECONDS
from mindtrack.errors import CacheMiss, FetchFailed
from mindtrack.models import DateRange, UserData
from mindtrack.storage import RecordStoreClient
from mindtrack.utils import PerformanceMonitor, measure_performance


class DataFetcher:
    """Reads user records through a shared CacheStore.

    Identical concurrent misses share one load: the first caller registers
    an asyncio task under the cache key before its first ``await`` and later
    callers await that same task. Waiters are shielded, so a caller that is
    cancelled leaves the load running for everyone else.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        cache: CacheStore,
        ttl: float = USER_DATA_TTL_SECONDS,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.ttl = ttl
        self.monitor = monitor or PerformanceMonitor()
        self._in_flight: dict[str, asyncio.Task[UserData]] = {}
        self._generations: dict[str, int] = {}
        self._background: set[asyncio.Task[UserData]] = set()

    async def fetch_user_data(self, user_id: str) -> UserData:
        """Most recent entries of each kind, for dashboards and lists."""
        return await self._fetch(
            user_id, cache_key(user_id, "user_data"), "user data", limit=USER_DATA_LIMIT
        )

    async def fetch_analytics_data(self, user_id: str) -> UserData:
        """Every entry for the user, for aggregate analytics."""
        return await self._fetch(user_id, cache_key(user_id, "analytics_data"), "analytics data")

    async def fetch_month_data(self, user_id: str, year: int, month: int) -> UserData:
        """Entries created within one calendar month."""
        return await self._fetch(
            user_id,
            cache_key(user_id, "month", f"{year:04d}-{month:02d}"),
            "month data",
            date_range=DateRange.for_month(year, month),
        )

    def generation(self, user_id: str) -> int:
        """Counter bumped by every invalidation of ``user_id``."""
        return self._generations.get(user_id, 0)

    def invalidate_user(self, user_id: str) -> int:
        """Drop every cached view of ``user_id``.

        Loads already in flight keep running for their waiters but will not
        write their (possibly pre-write) result back into the cache.
        """
        self._generations[user_id] = self._generations.get(user_id, 0) + 1
        prefix = user_prefix(user_id)
        for key in [key for key in self._in_flight if key.startswith(prefix)]:
            del self._in_flight[key]
        removed = self.cache.invalidate_prefix(prefix)
        logging.info("Cleared cache for user %s (%d entries)", user_id, removed)
        return removed

    def preload(self, user_id: str) -> asyncio.Task[UserData]:
        """Warm the user-data cache in the background. Errors are only logged."""
        task = asyncio.ensure_future(self.fetch_user_data(user_id))
        self._background.add(task)
        task.add_done_callback(self._on_preload_done)
        return task

    def _on_preload_done(self, task: asyncio.Task[UserData]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logging.warning("Preload failed: %s", exc)
        else:
            logging.debug("Preloaded critical data")

    async def _fetch(
        self,
        user_id: str,
        key: str,
        shape: str,
        date_range: DateRange | None = None,
        limit: int | None = None,
    ) -> UserData:
        try:
            return self.cache.lookup(key)
        except CacheMiss:
            pass

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._load(user_id, key, shape, self.generation(user_id), date_range, limit)
            )
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logging.debug("Joining in-flight request for %s", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[UserData]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark failures as retrieved; waiters still re-raise them through the shield.
        if not task.cancelled():
            task.exception()

    @measure_performance("record store load")
    async def _load(
        self,
        user_id: str,
        key: str,
        shape: str,
        generation: int,
        date_range: DateRange | None,
        limit: int | None,
    ) -> UserData:
        logging.debug("Fetching fresh %s for user %s", shape, user_id)
        try:
            moods, journals = await asyncio.gather(
                self.client.select_mood_entries(user_id, date_range, limit),
                self.client.select_journal_entries(user_id, date_range, limit),
            )
        except Exception as exc:
            raise FetchFailed(user_id, shape) from exc

        data = UserData(mood_entries=tuple(moods), journal_entries=tuple(journals))
        if self.generation(user_id) == generation:
            self.cache.set(key, data, self.ttl)
        else:
            logging.debug("Discarding %s for user %s; invalidated during load", shape, user_id)
        return data
