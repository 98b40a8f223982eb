"""Tests for cached insight snapshots."""

from __future__ import annotations

import asyncio
from datetime import timedelta

from conftest import AS_OF, make_mood

from mindtrack.analytics import build_snapshot
from mindtrack.fetcher import DataFetcher
from mindtrack.insights import InsightGenerator


class CountingAggregator:
    """Wraps build_snapshot and records how often it ran."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, data, as_of):
        self.calls += 1
        return build_snapshot(data, as_of)


def make_generator(store, cache, ttl=120):
    fetcher = DataFetcher(store, cache, ttl=60)
    aggregator = CountingAggregator()
    generator = InsightGenerator(
        fetcher, cache, ttl=ttl, aggregate=aggregator, clock=lambda: AS_OF
    )
    return fetcher, generator, aggregator


class TestInsightGenerator:
    def test_second_call_within_ttl_reuses_snapshot(self, store, cache):
        store.moods.append(make_mood("good"))
        _, generator, aggregator = make_generator(store, cache)

        async def scenario():
            return (
                await generator.get_insights("user-1"),
                await generator.get_insights("user-1"),
            )

        first, second = asyncio.run(scenario())

        assert aggregator.calls == 1
        assert second is first
        assert first.weekly_trend[-1].average_mood == 4.0

    def test_concurrent_calls_aggregate_once(self, store, cache):
        _, generator, aggregator = make_generator(store, cache)

        async def scenario():
            return await asyncio.gather(
                generator.get_insights("user-1"), generator.get_insights("user-1")
            )

        first, second = asyncio.run(scenario())

        assert aggregator.calls == 1
        assert store.mood_selects == 1
        assert first is second

    def test_snapshot_expires_on_its_own_ttl(self, store, cache, clock):
        _, generator, aggregator = make_generator(store, cache, ttl=120)

        asyncio.run(generator.get_insights("user-1"))
        clock.advance(90)
        # records (60s) are stale by now, the snapshot (120s) is not
        asyncio.run(generator.get_insights("user-1"))
        assert aggregator.calls == 1
        assert store.mood_selects == 1

        clock.advance(40)
        asyncio.run(generator.get_insights("user-1"))
        assert aggregator.calls == 2
        assert store.mood_selects == 2

    def test_invalidation_forces_recompute(self, store, cache):
        fetcher, generator, aggregator = make_generator(store, cache)

        async def scenario():
            before = await generator.get_insights("user-1")
            store.moods.append(make_mood("excellent"))
            fetcher.invalidate_user("user-1")
            after = await generator.get_insights("user-1")
            return before, after

        before, after = asyncio.run(scenario())

        assert aggregator.calls == 2
        assert before.insights == ["Start tracking your mood to see insights here!"]
        assert after.mood_distribution == {"excellent": 1}
        assert (before.streak_length, after.streak_length) == (0, 1)

    def test_snapshot_keyed_by_day(self, store, cache):
        _, generator, aggregator = make_generator(store, cache)

        async def scenario():
            await generator.get_insights("user-1", as_of=AS_OF)
            await generator.get_insights("user-1", as_of=AS_OF + timedelta(days=1))

        asyncio.run(scenario())

        assert aggregator.calls == 2

    def test_reads_go_through_fetcher_cache(self, store, cache):
        fetcher, generator, _ = make_generator(store, cache)

        async def scenario():
            await fetcher.fetch_analytics_data("user-1")
            await generator.get_insights("user-1")

        asyncio.run(scenario())

        assert store.mood_selects == 1

    def test_dashboard_stats_are_cached(self, store, cache):
        store.moods.append(make_mood("good"))
        store.moods.append(make_mood("bad", days_ago=1))
        _, generator, _ = make_generator(store, cache)

        async def scenario():
            return (
                await generator.get_dashboard_stats("user-1"),
                await generator.get_dashboard_stats("user-1"),
            )

        first, second = asyncio.run(scenario())

        assert first is second
        assert first.total_mood_entries == 2
        assert first.current_streak == 2
        assert first.average_mood == 3.0
        assert store.mood_selects == 1
