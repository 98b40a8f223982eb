"""Cached analytics snapshots and dashboard statistics."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from mindtrack.analytics import build_snapshot, dashboard_stats
from mindtrack.cache import CacheStore, cache_key
from mindtrack.constants import INSIGHTS_TTL_SECONDS
from mindtrack.errors import CacheMiss
from mindtrack.fetcher import DataFetcher
from mindtrack.models import AnalyticsSnapshot, DashboardStats, UserData
from mindtrack.utils import local_now

T = TypeVar("T")

Aggregator = Callable[[UserData, datetime], AnalyticsSnapshot]


class InsightGenerator:
    """Serves analytics snapshots from the shared cache.

    Records always come through the DataFetcher, so raw reads and derived
    results share one cache and are cleared together by the same per-user
    invalidation. Snapshots are keyed by the ``as_of`` calendar date and
    live for their own TTL.
    """

    def __init__(
        self,
        fetcher: DataFetcher,
        cache: CacheStore,
        ttl: float = INSIGHTS_TTL_SECONDS,
        aggregate: Aggregator = build_snapshot,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.ttl = ttl
        self.aggregate = aggregate
        self.clock = clock

    async def get_insights(
        self, user_id: str, as_of: datetime | None = None
    ) -> AnalyticsSnapshot:
        as_of = as_of or self.clock()
        return await self._derive(
            user_id,
            cache_key(user_id, "insights", as_of.date().isoformat()),
            self.fetcher.fetch_analytics_data,
            lambda data: self.aggregate(data, as_of),
        )

    async def get_dashboard_stats(
        self, user_id: str, as_of: datetime | None = None
    ) -> DashboardStats:
        as_of = as_of or self.clock()
        return await self._derive(
            user_id,
            cache_key(user_id, "dashboard", as_of.date().isoformat()),
            self.fetcher.fetch_user_data,
            lambda data: dashboard_stats(data, as_of),
        )

    async def _derive(
        self,
        user_id: str,
        key: str,
        fetch: Callable[[str], Awaitable[UserData]],
        compute: Callable[[UserData], T],
    ) -> T:
        try:
            return self.cache.lookup(key)
        except CacheMiss:
            pass

        generation = self.fetcher.generation(user_id)
        data = await fetch(user_id)
        # Another caller may have finished computing while we waited.
        try:
            return self.cache.lookup(key)
        except CacheMiss:
            pass

        result = compute(data)
        if self.fetcher.generation(user_id) == generation:
            self.cache.set(key, result, self.ttl)
        logging.debug("Computed %s", key)
        return result
