"""Planned vs actual delta calculation.

Matches each performed activity to the planned workout of the same weekday,
computes duration/TSS/kcal/intensity deltas and a bounded fatigue
contribution, and aggregates deltas into a weekly summary.
"""

from collections.abc import Sequence
from datetime import date

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from empathy.adaptive import repository
from empathy.adaptive.rules import (
    DELTA_FATIGUE_MAX,
    DELTA_FATIGUE_MIN,
    FATIGUE_INTENSITY_AMPLIFIER,
    FATIGUE_PER_DELTA_TSS,
    INTENSITY_NORMALIZER,
    clamp,
    round_half_up,
    round_int,
)
from empathy.adaptive.types import ActivityDelta, ActualActivity, PlannedWorkout, WeeklySummary
from empathy.adaptive.zones import DEFAULT_ZONE, dominant_zone, monday_weekday, zone_intensity


def unplanned_workout(activity: ActualActivity) -> PlannedWorkout:
    """Zero-target stand-in used when an activity has no planned counterpart."""
    return PlannedWorkout(
        id="",
        day_of_week=monday_weekday(activity.activity_date),
        workout_type="unplanned",
        sport=activity.sport,
        duration_minutes=0,
        target_tss=0,
        target_zone=DEFAULT_ZONE,
        estimated_kcal=0,
    )


def match_activity_to_planned(
    activity: ActualActivity,
    planned_workouts: Sequence[PlannedWorkout],
) -> PlannedWorkout | None:
    """Find the planned workout an activity was meant to fulfil.

    Candidates share the activity's weekday. When several remain, the first
    one with the same sport (case-insensitive) wins, else the first candidate.

    Returns:
        Matched planned workout, or None for an unplanned activity
    """
    weekday = monday_weekday(activity.activity_date)
    candidates = [pw for pw in planned_workouts if pw.day_of_week == weekday]

    if not candidates:
        return None

    sport = (activity.sport or "").lower()
    for candidate in candidates:
        if (candidate.sport or "").lower() == sport:
            return candidate

    return candidates[0]


def calculate_fatigue_contribution(delta_tss: float, delta_intensity: float) -> int:
    """Fatigue points added by one activity, bounded to [-20, 30].

    10 extra TSS make one point; a harder-than-planned zone amplifies it by
    up to 50% per normalized intensity step.
    """
    fatigue = delta_tss * FATIGUE_PER_DELTA_TSS

    if delta_intensity > 0:
        fatigue *= 1 + delta_intensity * FATIGUE_INTENSITY_AMPLIFIER

    return int(clamp(round_int(fatigue), DELTA_FATIGUE_MIN, DELTA_FATIGUE_MAX))


def calculate_activity_delta(
    athlete_id: str,
    activity: ActualActivity,
    planned_workout: PlannedWorkout | None,
) -> ActivityDelta:
    """Calculate the delta between a performed activity and its planned workout.

    Args:
        athlete_id: Athlete the activity belongs to
        activity: Performed activity
        planned_workout: Matched planned workout, or None when unplanned

    Returns:
        ActivityDelta carrying planned and actual snapshots plus the deltas
    """
    actual_duration_min = round_int(activity.duration_seconds / 60)
    actual_zone = dominant_zone(activity.zones_distribution)

    planned = planned_workout or unplanned_workout(activity)

    delta_duration = actual_duration_min - planned.duration_minutes
    delta_tss = activity.tss - planned.target_tss
    delta_kcal = activity.calories - planned.estimated_kcal

    planned_rank = zone_intensity(planned.target_zone)
    actual_rank = zone_intensity(actual_zone)
    delta_intensity = (actual_rank - planned_rank) / INTENSITY_NORMALIZER

    return ActivityDelta(
        athlete_id=athlete_id,
        activity_id=activity.id,
        planned_workout_id=planned.id or None,
        delta_date=activity.activity_date,
        planned_duration_min=planned.duration_minutes,
        planned_tss=planned.target_tss,
        planned_kcal=planned.estimated_kcal,
        planned_zone=planned.target_zone,
        actual_duration_min=actual_duration_min,
        actual_tss=activity.tss,
        actual_kcal=activity.calories,
        actual_avg_zone=actual_zone,
        delta_duration_min=delta_duration,
        delta_tss=delta_tss,
        delta_kcal=delta_kcal,
        delta_intensity=round_half_up(delta_intensity, 2),
        delta_fatigue_score=calculate_fatigue_contribution(delta_tss, delta_intensity),
    )


def calculate_weekly_summary(deltas: Sequence[ActivityDelta]) -> WeeklySummary:
    """Aggregate a sequence of deltas. An empty sequence yields all zeros."""
    if not deltas:
        return WeeklySummary()

    total_tss = 0.0
    total_kcal = 0.0
    total_duration = 0
    total_intensity = 0.0
    total_fatigue = 0
    unplanned = 0

    for delta in deltas:
        total_tss += delta.delta_tss
        total_kcal += delta.delta_kcal
        total_duration += delta.delta_duration_min
        total_intensity += delta.delta_intensity
        total_fatigue += delta.delta_fatigue_score
        if not delta.planned_workout_id:
            unplanned += 1

    return WeeklySummary(
        total_delta_tss=total_tss,
        total_delta_kcal=total_kcal,
        total_delta_duration=total_duration,
        avg_intensity_delta=round_half_up(total_intensity / len(deltas), 2),
        cumulative_fatigue=round_int(total_fatigue),
        activities_count=len(deltas),
        unplanned_count=unplanned,
    )


def calculate_deltas_for_date_range(
    session: Session,
    athlete_id: str,
    start_date: date,
    end_date: date,
) -> list[ActivityDelta]:
    """Compute deltas for every activity of an athlete within [start_date, end_date].

    A failure to read activities yields an empty list; a failure to read the
    plan makes every activity unplanned. Neither is raised, and the session
    is rolled back so later statements on it still run.
    """
    try:
        activities = repository.fetch_activities(session, athlete_id, start_date, end_date)
    except SQLAlchemyError as e:
        session.rollback()
        logger.bind(athlete_id=athlete_id, error=str(e)).error("Error fetching activities for delta calculation")
        return []

    try:
        planned_workouts = repository.fetch_planned_workouts(session, athlete_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.bind(athlete_id=athlete_id, error=str(e)).warning("Error fetching planned workouts, treating activities as unplanned")
        planned_workouts = []

    deltas = [
        calculate_activity_delta(athlete_id, activity, match_activity_to_planned(activity, planned_workouts))
        for activity in activities
    ]

    logger.bind(athlete_id=athlete_id).debug(
        f"Calculated {len(deltas)} deltas between {start_date.isoformat()} and {end_date.isoformat()} "
        f"({len(planned_workouts)} planned workouts available)"
    )
    return deltas
