"""Pure analytics over in-memory mood and journal records.

Nothing here reads the clock or touches storage: callers pass the "as of"
moment explicitly. Day boundaries use the calendar date of each timestamp in
the time zone of ``as_of``; a naive ``as_of`` means the system zone, applied
with the offset in force at each entry's own instant.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from mindtrack.constants import (
    COMMON_THEMES_LIMIT,
    CONCERN_KEYWORDS,
    DEFAULT_MOOD_SCORE,
    MOOD_SCORES,
    MOOD_TREND_MIN_ENTRIES,
    MOOD_TREND_THRESHOLD,
    MOOD_TREND_WINDOW,
    NEGATIVE_MOODS,
    POSITIVE_KEYWORDS,
    POSITIVE_MOODS,
    RECENT_JOURNAL_WINDOW,
    RECOMMENDATIONS_LIMIT,
    WEEKLY_TREND_DAYS,
    render_message,
)
from mindtrack.models import (
    AnalyticsSnapshot,
    DashboardStats,
    JournalEntry,
    MoodEntry,
    TrendPoint,
    UserData,
)
from mindtrack.utils import local_day, round_one


def mood_score(label: str) -> int:
    """Numeric score of a mood label; unknown labels count as neutral."""
    return MOOD_SCORES.get(label, DEFAULT_MOOD_SCORE)


def _days_with_entries(entries: Iterable[MoodEntry], as_of: datetime) -> set[date]:
    return {local_day(entry.created_at, as_of.tzinfo) for entry in entries}


def mood_distribution(entries: Iterable[MoodEntry]) -> dict[str, int]:
    """Count entries per mood label, keyed in first-seen order."""
    distribution: dict[str, int] = {}
    for entry in entries:
        distribution[entry.mood] = distribution.get(entry.mood, 0) + 1
    return distribution


def most_frequent_mood(distribution: dict[str, int]) -> tuple[str, int] | None:
    """Highest count wins; ties go to the label seen first."""
    if not distribution:
        return None
    return max(distribution.items(), key=lambda item: item[1])


def weekly_trend(
    entries: Iterable[MoodEntry], as_of: datetime, days: int = WEEKLY_TREND_DAYS
) -> list[TrendPoint]:
    """Average mood score per day for the last ``days`` days, oldest first.

    Days without entries carry ``None``.
    """
    today = as_of.date()
    scores_by_day: dict[date, list[int]] = {}
    for entry in entries:
        day = local_day(entry.created_at, as_of.tzinfo)
        scores_by_day.setdefault(day, []).append(mood_score(entry.mood))

    points = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        scores = scores_by_day.get(day)
        average = round_one(sum(scores) / len(scores)) if scores else None
        points.append(TrendPoint(day=day, average_mood=average))
    return points


def streak_length(entries: Iterable[MoodEntry], as_of: datetime) -> int:
    """Consecutive days with at least one entry, counting back from ``as_of``.

    A day with no entry ends the streak, including ``as_of``'s own day: a
    user who has not checked in yet today has a streak of 0.
    """
    days = _days_with_entries(entries, as_of)
    day = as_of.date()
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def average_energy(entries: Sequence[MoodEntry]) -> float | None:
    """Mean energy level rounded to one decimal, or None without entries."""
    if not entries:
        return None
    return round_one(sum(entry.energy_level for entry in entries) / len(entries))


def average_mood_score(entries: Sequence[MoodEntry]) -> float | None:
    if not entries:
        return None
    return sum(mood_score(entry.mood) for entry in entries) / len(entries)


def mood_variability(entries: Sequence[MoodEntry]) -> float:
    """Population standard deviation of mood scores."""
    if not entries:
        return 0.0
    scores = [mood_score(entry.mood) for entry in entries]
    mean = sum(scores) / len(scores)
    return math.sqrt(sum((score - mean) ** 2 for score in scores) / len(scores))


def mood_trend(entries: Sequence[MoodEntry]) -> str:
    """Compare the newest window of entries against the one before it.

    Returns ``improving``, ``declining`` or ``stable``. Both windows need a
    minimum number of entries, otherwise the trend is ``stable``.
    """
    ordered = sorted(entries, key=lambda entry: entry.created_at, reverse=True)
    recent = ordered[:MOOD_TREND_WINDOW]
    older = ordered[MOOD_TREND_WINDOW : MOOD_TREND_WINDOW * 2]
    if len(recent) < MOOD_TREND_MIN_ENTRIES or len(older) < MOOD_TREND_MIN_ENTRIES:
        return "stable"

    recent_avg = average_mood_score(recent)
    older_avg = average_mood_score(older)
    if recent_avg > older_avg + MOOD_TREND_THRESHOLD:
        return "improving"
    if recent_avg < older_avg - MOOD_TREND_THRESHOLD:
        return "declining"
    return "stable"


def common_themes(
    journal_entries: Iterable[JournalEntry], limit: int = COMMON_THEMES_LIMIT
) -> list[str]:
    counts = Counter(tag for entry in journal_entries for tag in entry.tags)
    return [tag for tag, _ in counts.most_common(limit)]


def _mentions(entry: JournalEntry, keywords: Sequence[str]) -> bool:
    text = f"{entry.title}\n{entry.content}".lower()
    return any(keyword in text for keyword in keywords)


def emotional_patterns(journal_entries: Sequence[JournalEntry]) -> list[str]:
    """Describe the mood tags attached to journal entries.

    Entries without a mood are left out. More than 60% positive moods reads
    as a positive state, otherwise more than 40% negative reads as frequent
    negative emotions. Frequent ``excellent`` (over 20%) and ``terrible``
    (over 10%) moods add their own line.
    """
    moods = [entry.mood for entry in journal_entries if entry.mood]
    if not moods:
        return []

    counts = Counter(moods)
    total = len(moods)
    positive = sum(counts[label] for label in POSITIVE_MOODS)
    negative = sum(counts[label] for label in NEGATIVE_MOODS)

    if positive / total > 0.6:
        patterns = [render_message("mostly_positive")]
    elif negative / total > 0.4:
        patterns = [render_message("mostly_negative")]
    else:
        patterns = [render_message("mixed_emotions")]
    if counts["excellent"] / total > 0.2:
        patterns.append(render_message("high_positivity"))
    if counts["terrible"] / total > 0.1:
        patterns.append(render_message("very_low_moods"))
    return patterns


def positive_trends(journal_entries: Sequence[JournalEntry]) -> list[str]:
    """Flag recent entries that mostly use positive wording."""
    if len(journal_entries) < 2:
        return []
    ordered = sorted(journal_entries, key=lambda entry: entry.created_at, reverse=True)
    recent = ordered[:RECENT_JOURNAL_WINDOW]
    positive = sum(1 for entry in recent if _mentions(entry, POSITIVE_KEYWORDS))
    if positive > len(recent) * 0.6:
        return [render_message("positive_content")]
    return []


def areas_of_concern(journal_entries: Sequence[JournalEntry]) -> list[str]:
    """Flag journals where over 30% of entries mention stress-like words."""
    if not journal_entries:
        return []
    concerning = sum(1 for entry in journal_entries if _mentions(entry, CONCERN_KEYWORDS))
    if concerning > len(journal_entries) * 0.3:
        return [render_message("frequent_concerns")]
    return []


def mood_recommendations(
    average_mood: float | None, trend: str, streak: int
) -> list[str]:
    if average_mood is None:
        return [render_message("start_mood_tracking")]

    names = []
    if average_mood < 2.5:
        names += ["seek_professional", "physical_activity"]
    elif average_mood < 3.5:
        names += ["small_joys", "practice_gratitude"]
    if trend == "declining":
        names += ["declining_reflect", "keep_routine"]
    elif trend == "improving":
        names.append("improving_keep_up")
    if streak < 3:
        names.append("track_consistently")
    elif streak > 7:
        names.append("great_consistency")
    return [render_message(name) for name in names]


def journal_recommendations(
    has_entries: bool, themes: Sequence[str], trends: Sequence[str], concerns: Sequence[str]
) -> list[str]:
    if not has_entries:
        return [render_message("start_journaling")]

    names = []
    if not themes:
        names.append("add_tags")
    if concerns:
        names += ["discuss_concerns", "self_compassion"]
    if trends:
        names.append("keep_positive_focus")
    names.append("journal_same_time")
    return [render_message(name) for name in names]


def overall_insights(
    average_mood: float | None, trend: str, themes: Sequence[str], trends: Sequence[str]
) -> list[str]:
    """Headline observations combining mood and journal analysis."""
    insights = []
    if average_mood is not None and average_mood > 4:
        insights.append(render_message("very_positive_overall"))
    elif average_mood is not None and average_mood < 2.5:
        insights.append(render_message("low_overall"))
    if trend == "improving":
        insights.append(render_message("improving_overall"))
    if themes:
        insights.append(render_message("frequent_themes", themes=themes[:3]))
    if trends:
        insights.append(render_message("journal_positivity"))
    return insights


def recommendations(
    mood_advice: Sequence[str], journal_advice: Sequence[str], streak: int, themes: Sequence[str]
) -> list[str]:
    """Merge mood and journal advice, add general tips, dedupe, keep the top few."""
    combined = [*mood_advice, *journal_advice]
    if streak < 5:
        combined.append(render_message("daily_reminder"))
    if not themes:
        combined.append(render_message("explore_topics"))
    return list(dict.fromkeys(combined))[:RECOMMENDATIONS_LIMIT]


def summary_insights(entries: Sequence[MoodEntry], as_of: datetime) -> list[str]:
    if not entries:
        return [render_message("no_entries")]

    insights = []
    top = most_frequent_mood(mood_distribution(entries))
    if top is not None:
        insights.append(render_message("most_common_mood", mood=top[0], count=top[1]))
    insights.append(render_message("average_energy", energy=average_energy(entries)))
    streak = streak_length(entries, as_of)
    if streak > 0:
        insights.append(render_message("streak", days=streak))
    return insights


def build_snapshot(data: UserData, as_of: datetime) -> AnalyticsSnapshot:
    moods = list(data.mood_entries)
    journals = list(data.journal_entries)
    streak = streak_length(moods, as_of)
    average = average_mood_score(moods)
    trend = mood_trend(moods)
    themes = common_themes(journals)
    upbeat = positive_trends(journals)
    concerns = areas_of_concern(journals)
    return AnalyticsSnapshot(
        as_of=as_of,
        mood_distribution=mood_distribution(moods),
        weekly_trend=weekly_trend(moods, as_of),
        streak_length=streak,
        insights=summary_insights(moods, as_of),
        average_energy=average_energy(moods),
        average_mood=average,
        mood_trend=trend,
        mood_variability=mood_variability(moods),
        common_themes=themes,
        emotional_patterns=emotional_patterns(journals),
        positive_trends=upbeat,
        areas_of_concern=concerns,
        overall_insights=overall_insights(average, trend, themes, upbeat),
        recommendations=recommendations(
            mood_recommendations(average, trend, streak),
            journal_recommendations(bool(journals), themes, upbeat, concerns),
            streak,
            themes,
        ),
    )


def dashboard_stats(data: UserData, as_of: datetime) -> DashboardStats:
    moods = list(data.mood_entries)
    return DashboardStats(
        total_mood_entries=len(moods),
        total_journal_entries=len(data.journal_entries),
        current_streak=streak_length(moods, as_of),
        average_mood=average_mood_score(moods) or 0.0,
    )
