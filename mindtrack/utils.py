"""Utility functions for rounding, timestamps and timing."""

from __future__ import annotations

import functools
import logging
import math
import time
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone, tzinfo
from typing import Any, TypeVar

from mindtrack.constants import LOCAL_TIMEZONE

T = TypeVar("T")


def round_one(value: float) -> float:
    """Round half away from zero to one decimal place (2.25 -> 2.3)."""
    scaled = abs(value) * 10
    return math.copysign(math.floor(scaled + 0.5) / 10, value)


def local_now() -> datetime:
    """Current time in ``MINDTRACK_TIMEZONE``, or naive system local time.

    With a naive ``as_of`` each aware entry is placed on its calendar day
    using the system offset in force at that entry's own instant.
    """
    if LOCAL_TIMEZONE is None:
        return datetime.now()
    return datetime.now(LOCAL_TIMEZONE)


def local_day(moment: datetime, tz: tzinfo | None = None) -> date:
    """Truncate a timestamp to its calendar date in ``tz``.

    Naive timestamps are taken as already local. Aware timestamps are
    converted to ``tz``, or to the system zone (with the offset in force at
    that instant) when ``tz`` is None.
    """
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def to_storage_timestamp(moment: datetime) -> str:
    """Serialize a timestamp as UTC ISO-8601 so text ordering matches time ordering."""
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_storage_timestamp(raw: str) -> datetime:
    """Parse a stored timestamp; values without an offset are UTC."""
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class PerformanceMonitor:
    """Collects named duration samples, in milliseconds."""

    def __init__(self) -> None:
        self._metrics: dict[str, list[float]] = {}

    def start_timer(self, name: str) -> Callable[[], float]:
        """Start timing ``name``; call the returned function to record the sample."""
        start = time.perf_counter()

        def stop() -> float:
            duration = (time.perf_counter() - start) * 1000
            self.record_metric(name, duration)
            logging.debug("%s: %.2fms", name, duration)
            return duration

        return stop

    def record_metric(self, name: str, value: float) -> None:
        """Store one duration sample, in milliseconds."""
        self._metrics.setdefault(name, []).append(value)

    def get_average_metric(self, name: str) -> float:
        """Mean of the samples for ``name``, or 0.0 when there are none."""
        values = self._metrics.get(name)
        if not values:
            return 0.0
        return sum(values) / len(values)

    def get_metrics(self) -> dict[str, dict[str, float]]:
        """Average and sample count for every recorded name."""
        return {
            name: {"average": self.get_average_metric(name), "count": len(values)}
            for name, values in self._metrics.items()
        }

    def clear_metrics(self) -> None:
        self._metrics.clear()


def measure_performance(
    name: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Time a coroutine method with the owning object's ``monitor``.

    The decorated method's instance must expose a ``monitor`` attribute
    holding a PerformanceMonitor. Failures are timed too.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            stop = self.monitor.start_timer(name)
            try:
                return await func(self, *args, **kwargs)
            finally:
                stop()

        return wrapper

    return decorator
