"""Derived-metrics services: level table, history stores and sparkline."""

from leveltracker.services.daily_history import (
    DailyHistoryStore,
    DailyLevelPoint,
    prune_daily,
    upsert_daily,
    windowed_delta,
)
from leveltracker.services.experience_history import (
    ExperienceHistoryStore,
    ExperiencePoint,
    prune_experience,
    push_experience_point,
)
from leveltracker.services.level_table import total_experience, xp_meta, xp_to_next
from leveltracker.services.sparkline import build_sparkline

__all__ = [
    "DailyHistoryStore",
    "DailyLevelPoint",
    "prune_daily",
    "upsert_daily",
    "windowed_delta",
    "ExperienceHistoryStore",
    "ExperiencePoint",
    "prune_experience",
    "push_experience_point",
    "total_experience",
    "xp_meta",
    "xp_to_next",
    "build_sparkline",
]
