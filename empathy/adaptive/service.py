"""Adaptive engine service.

Wires the calculators to storage:
1. Loads athlete and metabolic data
2. Calculates activity deltas for the lookback window
3. Resolves today's planned workout
4. Calculates and saves the daily state
5. Generates and stores the adaptations
"""

from dataclasses import dataclass
from datetime import date, timedelta

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from empathy.adaptive import repository
from empathy.adaptive.adaptations import AdaptationOutput, NutritionProfile, WorkoutPlan, generate_adaptations
from empathy.adaptive.daily_state import calculate_daily_state
from empathy.adaptive.delta import calculate_deltas_for_date_range, calculate_weekly_summary
from empathy.adaptive.errors import AthleteNotFoundError
from empathy.adaptive.types import (
    ActivityDelta,
    AthleteDailyState,
    MetabolicProfile,
    PlannedWorkout,
    TodayWorkout,
    WeeklySummary,
)
from empathy.adaptive.zones import monday_weekday
from empathy.config.settings import settings
from empathy.db.models import Athlete

DEFAULT_WEIGHT_KG = 70.0
BMR_KCAL_PER_KG = 24
ACTIVITY_MULTIPLIER = 1.5
DEFAULT_PLANNED_TSS = 80


@dataclass(frozen=True)
class EngineResult:
    """Outcome of one engine run.

    Attributes:
        state: Daily state calculated for the date
        adaptations: Prescriptions derived from the state
        deltas_summary: Summary of the deltas the state was computed from
        deltas: The deltas themselves, oldest first
        saved: Whether the state reached the store
    """

    state: AthleteDailyState
    adaptations: AdaptationOutput
    deltas_summary: WeeklySummary
    deltas: list[ActivityDelta]
    saved: bool


def build_nutrition_profile(athlete: Athlete) -> NutritionProfile:
    """Base metabolic data, estimated from body weight when no profile is stored."""
    weight = athlete.weight_kg or DEFAULT_WEIGHT_KG
    profile = athlete.metabolic_profile
    bmr = profile.bmr if profile and profile.bmr else weight * BMR_KCAL_PER_KG
    daily_kcal = bmr * ACTIVITY_MULTIPLIER
    return NutritionProfile(bmr=bmr, daily_kcal=daily_kcal, weight_kg=weight)


def find_planned_for_day(planned_workouts: list[PlannedWorkout], day: date) -> PlannedWorkout | None:
    weekday = monday_weekday(day)
    return next((pw for pw in planned_workouts if pw.day_of_week == weekday), None)


def require_athlete(session: Session, athlete_id: str) -> Athlete:
    """Load an athlete or raise AthleteNotFoundError."""
    athlete = repository.get_athlete(session, athlete_id)
    if athlete is None:
        raise AthleteNotFoundError(athlete_id)
    return athlete


def get_state(session: Session, athlete_id: str, state_date: date) -> AthleteDailyState | None:
    return repository.load_daily_state(session, athlete_id, state_date)


def run_adaptive_engine(
    session: Session,
    athlete_id: str,
    state_date: date,
    *,
    lookback_days: int | None = None,
) -> EngineResult:
    """Recompute, store and return today's state and adaptations for an athlete.

    Args:
        session: Database session
        athlete_id: Athlete identifier
        state_date: Date to compute the state for
        lookback_days: Days of activities considered (default from settings)

    Returns:
        EngineResult with state, adaptations and delta summary

    Raises:
        AthleteNotFoundError: If the athlete does not exist
    """
    lookback_days = lookback_days or settings.delta_lookback_days

    athlete = require_athlete(session, athlete_id)

    profile = build_nutrition_profile(athlete)

    deltas = calculate_deltas_for_date_range(
        session,
        athlete_id,
        state_date - timedelta(days=lookback_days),
        state_date,
    )

    try:
        planned_workouts = repository.fetch_planned_workouts(session, athlete_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.bind(athlete_id=athlete_id, error=str(e)).warning("Error fetching planned workouts, assuming nothing planned today")
        planned_workouts = []

    planned_today = find_planned_for_day(planned_workouts, state_date)
    today_workout = None
    workout_plan = None
    if planned_today:
        zone = planned_today.target_zone or "z2"
        tss = planned_today.target_tss or DEFAULT_PLANNED_TSS
        today_workout = TodayWorkout(zone=zone, tss=tss)
        workout_plan = WorkoutPlan(
            tss=tss,
            duration_min=planned_today.duration_minutes or 60,
            zone=zone,
        )

    state = calculate_daily_state(
        athlete_id,
        state_date,
        deltas,
        MetabolicProfile(bmr=profile.bmr, daily_kcal=profile.daily_kcal),
        today_workout,
    )

    saved = repository.save_daily_state(session, athlete_id, state)

    adaptations = generate_adaptations(state, profile, workout_plan)
    repository.save_adaptations(session, athlete_id, state_date, adaptations.model_dump(mode="json"))

    logger.bind(athlete_id=athlete_id, state_date=state_date.isoformat()).info(
        f"Adaptive engine run complete: {len(deltas)} deltas, recommended_zone={state.recommended_zone}, "
        f"kcal_target={state.kcal_target}, saved={saved}"
    )

    return EngineResult(
        state=state,
        adaptations=adaptations,
        deltas_summary=calculate_weekly_summary(deltas),
        deltas=deltas,
        saved=saved,
    )
