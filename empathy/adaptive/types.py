"""Input/output models of the adaptive engine.

This module defines the data structures for:
- Planned workouts and performed activities (read-only inputs)
- Activity deltas and their weekly aggregate
- The athlete daily state and its status enumerations
"""

from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecoveryNeed(StrEnum):
    """How much recovery the athlete needs today."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GlycogenStatus(StrEnum):
    """Classification of the simulated glycogen reservoir."""

    DEPLETED = "depleted"
    LOW = "low"
    NORMAL = "normal"
    LOADED = "loaded"


class HydrationStatus(StrEnum):
    DEHYDRATED = "dehydrated"
    LOW = "low"
    NORMAL = "normal"
    OPTIMAL = "optimal"


class PlannedWorkout(BaseModel):
    """Workout slot from the training plan.

    Attributes:
        id: Planned workout identifier (empty for the synthetic unplanned workout)
        day_of_week: Day of the week, 0=Monday .. 6=Sunday
        workout_type: Workout type label (e.g. "endurance", "intervals")
        sport: Sport label, compared case-insensitively when matching
        duration_minutes: Planned duration
        target_tss: Planned training stress score
        target_zone: Planned intensity zone (z1..z7 or a named alias)
        estimated_kcal: Planned energy expenditure
        scheduled_time: Optional HH:MM start time
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    day_of_week: int = Field(..., ge=0, le=6)
    workout_type: str = ""
    sport: str = ""
    duration_minutes: int = 0
    target_tss: float = 0
    target_zone: str = "z2"
    estimated_kcal: float = 0
    scheduled_time: str | None = None


class ActualActivity(BaseModel):
    """Performed activity as imported or logged.

    zones_distribution maps a zone label to the seconds spent in it.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    activity_date: date
    title: str = ""
    sport: str = ""
    duration_seconds: int = 0
    tss: float = 0
    avg_hr: float = 0
    avg_power: float = 0
    calories: float = 0
    zones_distribution: dict[str, float] | None = None


class ActivityDelta(BaseModel):
    """Planned vs actual variance for one activity.

    Immutable once computed. planned_workout_id is None for unplanned activities.
    delta_intensity is (actual_rank - planned_rank) / 3, rounded to 2 decimals.
    """

    model_config = ConfigDict(frozen=True)

    athlete_id: str
    activity_id: str
    planned_workout_id: str | None = None
    delta_date: date

    planned_duration_min: int
    planned_tss: float
    planned_kcal: float
    planned_zone: str

    actual_duration_min: int
    actual_tss: float
    actual_kcal: float
    actual_avg_zone: str

    delta_duration_min: int
    delta_tss: float
    delta_kcal: float
    delta_intensity: float
    delta_fatigue_score: int = Field(..., ge=-20, le=30)


class WeeklySummary(BaseModel):
    """Aggregate over a sequence of activity deltas. Never persisted on its own."""

    total_delta_tss: float = 0
    total_delta_kcal: float = 0
    total_delta_duration: int = 0
    avg_intensity_delta: float = 0
    cumulative_fatigue: int = 0
    activities_count: int = 0
    unplanned_count: int = 0


class MetabolicProfile(BaseModel):
    bmr: float
    daily_kcal: float


class TodayWorkout(BaseModel):
    """Today's planned session as seen by the daily state updater."""

    zone: str = "z2"
    tss: float = 0


class AthleteDailyState(BaseModel):
    """Adapted targets for one athlete on one date.

    Recomputed wholesale for a date, never patched. factors is a loose
    diagnostic bag (weekly_summary, glycogen_level, yesterday_delta).
    """

    athlete_id: str
    state_date: date

    fatigue_score: int = Field(..., ge=0, le=100)
    recovery_need: RecoveryNeed
    glycogen_status: GlycogenStatus
    hydration_status: HydrationStatus = HydrationStatus.NORMAL

    kcal_target: int
    kcal_adjustment: int
    kcal_debt: float

    cho_ratio_adjustment: int
    pro_ratio_adjustment: int
    fat_ratio_adjustment: int

    tss_capacity: int = Field(..., ge=20)
    tss_adjustment_percent: int = Field(..., ge=50, le=120)
    recommended_zone: str
    max_zone_today: str

    training_phase: str
    days_to_event: int | None = None

    ai_notes: str
    adaptation_reasons: list[str] = Field(default_factory=list)
    factors: dict[str, Any] = Field(default_factory=dict)
