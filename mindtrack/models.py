"""Data models for mood entries, journal entries and derived analytics."""

from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from mindtrack.constants import ENERGY_MAX, ENERGY_MIN
from mindtrack.errors import InvalidEntry


class Mood(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"
    TERRIBLE = "terrible"

    @classmethod
    def parse(cls, raw: object) -> Mood:
        """Accept a Mood or its label, case-insensitively."""
        if isinstance(raw, Mood):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise InvalidEntry(f"Invalid mood value: {raw!r}") from None


def _new_entry_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class MoodEntry:
    """A single mood check-in. Never updated after creation."""

    id: str
    user_id: str
    mood: str
    energy_level: int
    created_at: datetime
    notes: str | None = None
    activities: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        user_id: str,
        mood: Mood | str,
        energy_level: int,
        created_at: datetime,
        notes: str | None = None,
        activities: list[str] | tuple[str, ...] | None = None,
    ) -> MoodEntry:
        """Validate user input and build a new entry with a fresh id."""
        label = Mood.parse(mood).value
        if isinstance(energy_level, bool) or (
            isinstance(energy_level, float) and not energy_level.is_integer()
        ):
            raise InvalidEntry(f"Invalid energy level: {energy_level!r}")
        try:
            energy = int(energy_level)
        except (TypeError, ValueError):
            raise InvalidEntry(f"Invalid energy level: {energy_level!r}") from None
        if not ENERGY_MIN <= energy <= ENERGY_MAX:
            raise InvalidEntry(
                f"Energy level must be between {ENERGY_MIN} and {ENERGY_MAX}, got {energy}"
            )
        cleaned_notes = (notes or "").strip() or None
        tags = tuple(tag.strip() for tag in activities or () if tag and tag.strip())
        return cls(
            id=_new_entry_id(),
            user_id=user_id,
            mood=label,
            energy_level=energy,
            created_at=created_at,
            notes=cleaned_notes,
            activities=tags,
        )


@dataclass(frozen=True)
class JournalEntry:
    """A titled journal page, optionally tagged with a mood."""

    id: str
    user_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    mood: str | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        user_id: str,
        title: str,
        content: str,
        created_at: datetime,
        mood: Mood | str | None = None,
        tags: list[str] | tuple[str, ...] | None = None,
    ) -> JournalEntry:
        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            raise InvalidEntry("Journal entries need both a title and content")
        label = Mood.parse(mood).value if mood else None
        return cls(
            id=_new_entry_id(),
            user_id=user_id,
            title=title,
            content=content,
            created_at=created_at,
            updated_at=created_at,
            mood=label,
            tags=tuple(tag.strip() for tag in tags or () if tag and tag.strip()),
        )


@dataclass(frozen=True)
class DateRange:
    """Half-open interval ``[start, end)`` used to narrow record queries."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("DateRange end must be after start")

    @classmethod
    def for_month(cls, year: int, month: int) -> DateRange:
        days = calendar.monthrange(year, month)[1]
        start = datetime(year, month, 1)
        return cls(start=start, end=start + timedelta(days=days))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class UserData:
    """Mood and journal records fetched together for one user."""

    mood_entries: tuple[MoodEntry, ...] = ()
    journal_entries: tuple[JournalEntry, ...] = ()


@dataclass(frozen=True)
class TrendPoint:
    day: date
    average_mood: float | None


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Derived analytics for one user, computed on demand and never persisted."""

    as_of: datetime
    mood_distribution: dict[str, int]
    weekly_trend: list[TrendPoint]
    streak_length: int
    insights: list[str]
    average_energy: float | None = None
    average_mood: float | None = None
    mood_trend: str = "stable"
    mood_variability: float = 0.0
    common_themes: list[str] = field(default_factory=list)
    emotional_patterns: list[str] = field(default_factory=list)
    positive_trends: list[str] = field(default_factory=list)
    areas_of_concern: list[str] = field(default_factory=list)
    overall_insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardStats:
    total_mood_entries: int
    total_journal_entries: int
    current_streak: int
    average_mood: float
