"""Adaptive daily-state engine.

Compares planned workouts with performed activities and turns the
accumulated variance into today's fatigue, glycogen and recovery
picture, training-load ceiling and calorie/macro targets.
"""

from empathy.adaptive.daily_state import calculate_daily_state
from empathy.adaptive.delta import (
    calculate_activity_delta,
    calculate_deltas_for_date_range,
    calculate_weekly_summary,
    match_activity_to_planned,
)
from empathy.adaptive.repository import load_daily_state, save_daily_state
from empathy.adaptive.types import (
    ActivityDelta,
    ActualActivity,
    AthleteDailyState,
    GlycogenStatus,
    MetabolicProfile,
    PlannedWorkout,
    RecoveryNeed,
    TodayWorkout,
    WeeklySummary,
)

__all__ = [
    "ActivityDelta",
    "ActualActivity",
    "AthleteDailyState",
    "GlycogenStatus",
    "MetabolicProfile",
    "PlannedWorkout",
    "RecoveryNeed",
    "TodayWorkout",
    "WeeklySummary",
    "calculate_activity_delta",
    "calculate_daily_state",
    "calculate_deltas_for_date_range",
    "calculate_weekly_summary",
    "load_daily_state",
    "match_activity_to_planned",
    "save_daily_state",
]
