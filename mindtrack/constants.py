"""Configuration constants and templates for the tracker core."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from textwrap import dedent

import pytz
from jinja2 import DictLoader, Environment, select_autoescape

# Storage
DATABASE_PATH = Path(os.getenv("MINDTRACK_DB_PATH", "mindtrack.sqlite3"))

# Calendar days follow this zone when set (e.g. "Europe/Berlin"),
# otherwise the system's local time.
TIMEZONE_NAME = os.getenv("MINDTRACK_TIMEZONE")
LOCAL_TIMEZONE = pytz.timezone(TIMEZONE_NAME) if TIMEZONE_NAME else None

# Cache lifetimes, in seconds
USER_DATA_TTL_SECONDS = float(os.getenv("MINDTRACK_USER_DATA_TTL", 5 * 60))
INSIGHTS_TTL_SECONDS = float(os.getenv("MINDTRACK_INSIGHTS_TTL", 10 * 60))

# Query shapes
USER_DATA_LIMIT = 100
WEEKLY_TREND_DAYS = 7
COMMON_THEMES_LIMIT = 5
MOOD_TREND_WINDOW = 7
MOOD_TREND_MIN_ENTRIES = 3
MOOD_TREND_THRESHOLD = 0.5

# Energy level bounds for mood entries
ENERGY_MIN = 1
ENERGY_MAX = 10

# Mood labels with their numeric score, best first
MOOD_SCORES = {
    "excellent": 5,
    "good": 4,
    "neutral": 3,
    "bad": 2,
    "terrible": 1,
}
DEFAULT_MOOD_SCORE = MOOD_SCORES["neutral"]
POSITIVE_MOODS = ("excellent", "good")
NEGATIVE_MOODS = ("bad", "terrible")

# Journal text analysis
POSITIVE_KEYWORDS = (
    "happy",
    "good",
    "great",
    "excellent",
    "wonderful",
    "amazing",
    "positive",
    "grateful",
)
CONCERN_KEYWORDS = (
    "stress",
    "anxiety",
    "worry",
    "sad",
    "depressed",
    "lonely",
    "overwhelmed",
    "tired",
)
RECENT_JOURNAL_WINDOW = 5
RECOMMENDATIONS_LIMIT = 5

# Basic logging setup
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

# Insight and recommendation wording, one template per message
MESSAGES = {
    "most_common_mood": "Your most common mood is {{ mood }} ({{ count }} times)",
    "average_energy": "Your average energy level is {{ energy }}/10",
    "streak": "You're on a {{ days }}-day tracking streak!",
    "no_entries": "Start tracking your mood to see insights here!",
    # Emotional patterns
    "mostly_positive": "Generally positive emotional state",
    "mostly_negative": "Frequent negative emotions noted",
    "mixed_emotions": "Mixed emotional patterns",
    "high_positivity": "Experiences moments of high positivity",
    "very_low_moods": "Occasional very low moods",
    "positive_content": "Increasing positive content in recent entries",
    "frequent_concerns": "Frequent mentions of stress or negative emotions",
    # Overall insights
    "very_positive_overall": "You're maintaining a very positive mood overall",
    "low_overall": "Your mood has been consistently low - consider seeking support",
    "improving_overall": "Your mood is showing positive improvement over time",
    "frequent_themes": "You frequently write about: {{ themes | join(', ') }}",
    "journal_positivity": "Your journal entries show increasing positivity",
    # Mood recommendations
    "start_mood_tracking": "Start tracking your mood daily to get personalized insights",
    "seek_professional": "Consider reaching out to a mental health professional",
    "physical_activity": "Try incorporating more physical activity into your routine",
    "small_joys": "Focus on small daily activities that bring you joy",
    "practice_gratitude": "Practice gratitude by noting 3 positive things each day",
    "declining_reflect": (
        "Your mood has been trending downward - consider what might be contributing"
    ),
    "keep_routine": "Try to maintain your daily routine even when feeling low",
    "improving_keep_up": "Great! Your mood is improving - keep up the positive habits",
    "track_consistently": "Try to track your mood more consistently for better insights",
    "great_consistency": "Excellent consistency! You're building a great habit",
    # Journal recommendations
    "start_journaling": (
        "Start journaling regularly to gain deeper insights into your thoughts and feelings"
    ),
    "add_tags": "Try adding tags to your journal entries for better organization",
    "discuss_concerns": (
        "Consider discussing your concerns with a trusted friend or professional"
    ),
    "self_compassion": "Practice self-compassion - it's okay to have difficult days",
    "keep_positive_focus": "Great progress! Continue focusing on positive experiences",
    "journal_same_time": "Try journaling at the same time each day to build consistency",
    # General recommendations
    "daily_reminder": "Set a daily reminder to track your mood",
    "explore_topics": "Try exploring different topics in your journal entries",
}

SNAPSHOT_REPORT = dedent(
    """\
    Insights for {{ user_id }} as of {{ snapshot.as_of.date().isoformat() }}
    Streak: {{ snapshot.streak_length }} day{{ '' if snapshot.streak_length == 1 else 's' }}
    Mood trend: {{ snapshot.mood_trend }}
    {% if snapshot.mood_distribution %}
    Mood distribution:
    {% for mood, count in snapshot.mood_distribution.items() %}
      {{ mood }}: {{ count }}
    {% endfor %}
    {% endif %}
    Last {{ snapshot.weekly_trend | length }} days:
    {% for point in snapshot.weekly_trend %}
      {{ point.day.isoformat() }}  {{ '%.1f'|format(point.average_mood) if point.average_mood is not none else '-' }}
    {% endfor %}
    {% if snapshot.common_themes %}
    Common themes: {{ snapshot.common_themes | join(', ') }}
    {% endif %}
    {% for insight in snapshot.insights + snapshot.emotional_patterns + snapshot.overall_insights %}
    * {{ insight }}
    {% endfor %}
    {% if snapshot.recommendations %}
    Recommendations:
    {% for recommendation in snapshot.recommendations %}
      - {{ recommendation }}
    {% endfor %}
    {% endif %}
    """
)

# Jinja2 environment for insight and report text
TEMPLATE_ENV = Environment(
    loader=DictLoader(
        {
            **{f"{name}.txt": text for name, text in MESSAGES.items()},
            "snapshot_report.txt": SNAPSHOT_REPORT,
        }
    ),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

SNAPSHOT_REPORT_TEMPLATE = TEMPLATE_ENV.get_template("snapshot_report.txt")


def render_message(name: str, **context: object) -> str:
    """Render one insight or recommendation message by name."""
    return TEMPLATE_ENV.get_template(f"{name}.txt").render(**context)
