"""Storage access for the adaptive engine.

Daily states are not rows of their own: they live in the per-athlete,
per-year plan document (AnnualTrainingPlan.config_json) under
"daily_states", keyed by ISO date, with a rolling window of the most
recent entries.

Saving is a read-merge-write of that document. To avoid lost updates,
saves for one athlete are serialized by an in-process lock and the plan
row is selected FOR UPDATE (effective on PostgreSQL) so other processes
wait as well. The write is committed before the lock is released.
"""

import threading
import weakref
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from empathy.adaptive.types import ActualActivity, AthleteDailyState, PlannedWorkout
from empathy.config.settings import settings
from empathy.db.models import (
    AnnualTrainingPlan,
    Athlete,
    PlannedWorkoutRecord,
    TrainingActivity,
    TrainingMesocycle,
    TrainingWeek,
)

DAILY_STATES_KEY = "daily_states"
ADAPTATIONS_KEY = "current_adaptations"
LAST_STATE_UPDATE_KEY = "last_state_update"

ModelT = TypeVar("ModelT", bound=BaseModel)


class _AthleteLock:
    """Mutex for one athlete. Lives only while some caller holds a reference."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_AthleteLock":
        self._lock.acquire()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self._lock.release()


class _AthleteLocks:
    """One lock per athlete, created on first use and dropped once unused."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, _AthleteLock] = weakref.WeakValueDictionary()

    def get(self, athlete_id: str) -> _AthleteLock:
        with self._guard:
            lock = self._locks.get(athlete_id)
            if lock is None:
                lock = _AthleteLock()
                self._locks[athlete_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


_athlete_locks = _AthleteLocks()


def _current_year() -> int:
    return date.today().year


def _plan_name(year: int) -> str:
    return f"Plan {year}"


def _validate_rows(model: type[ModelT], rows: Iterable[Any], athlete_id: str) -> list[ModelT]:
    """Convert ORM rows to models, skipping rows whose stored values are invalid."""
    valid: list[ModelT] = []
    for row in rows:
        try:
            valid.append(model.model_validate(row))
        except ValidationError as e:
            logger.bind(athlete_id=athlete_id, row_id=getattr(row, "id", None), error=str(e)).warning(
                f"Skipping invalid {model.__name__} row"
            )
    return valid


def fetch_activities(
    session: Session,
    athlete_id: str,
    start_date: date,
    end_date: date,
) -> list[ActualActivity]:
    """Activities of an athlete within [start_date, end_date], oldest first.

    Rows holding values the models reject are logged and skipped.

    Raises:
        SQLAlchemyError: If the query fails
    """
    rows = session.execute(
        select(TrainingActivity)
        .where(
            TrainingActivity.athlete_id == athlete_id,
            TrainingActivity.activity_date >= start_date,
            TrainingActivity.activity_date <= end_date,
        )
        .order_by(TrainingActivity.activity_date.asc())
    ).scalars()
    return _validate_rows(ActualActivity, rows, athlete_id)


def fetch_planned_workouts(session: Session, athlete_id: str) -> list[PlannedWorkout]:
    """Planned workouts reachable through plan -> mesocycle -> week for an athlete.

    Rows holding values the models reject are logged and skipped.

    Raises:
        SQLAlchemyError: If the query fails
    """
    rows = session.execute(
        select(PlannedWorkoutRecord)
        .join(TrainingWeek, PlannedWorkoutRecord.week_id == TrainingWeek.id)
        .join(TrainingMesocycle, TrainingWeek.mesocycle_id == TrainingMesocycle.id)
        .join(AnnualTrainingPlan, TrainingMesocycle.plan_id == AnnualTrainingPlan.id)
        .where(AnnualTrainingPlan.athlete_id == athlete_id)
        .order_by(TrainingWeek.week_start_date.asc(), PlannedWorkoutRecord.day_of_week.asc())
    ).scalars()
    return _validate_rows(PlannedWorkout, rows, athlete_id)


def get_athlete(session: Session, athlete_id: str) -> Athlete | None:
    return session.execute(select(Athlete).where(Athlete.id == athlete_id)).scalar_one_or_none()


def _get_plan(session: Session, athlete_id: str, year: int, *, for_update: bool = False) -> AnnualTrainingPlan | None:
    query = select(AnnualTrainingPlan).where(
        AnnualTrainingPlan.athlete_id == athlete_id,
        AnnualTrainingPlan.year == year,
    )
    if for_update:
        query = query.with_for_update()
    return session.execute(query).scalar_one_or_none()


def prune_daily_states(daily_states: Mapping[str, Any], window: int) -> dict[str, Any]:
    """Keep the `window` most recent entries by descending ISO date key."""
    recent_dates = sorted(daily_states.keys(), reverse=True)[:window]
    return {state_date: daily_states[state_date] for state_date in recent_dates}


def save_daily_state(
    session: Session,
    athlete_id: str,
    state: AthleteDailyState,
    *,
    year: int | None = None,
    window: int | None = None,
) -> bool:
    """Merge a daily state into the athlete's yearly plan document.

    The document keeps only the `window` most recent states (default from
    settings, 14). A missing document is created.

    Args:
        session: Database session (committed on success, rolled back on error)
        athlete_id: Athlete identifier
        state: State to store under its state_date
        year: Plan year, defaults to the current year
        window: Number of states retained

    Returns:
        True if saved, False if the store failed
    """
    year = year or _current_year()
    window = window or settings.daily_state_window
    state_key = state.state_date.isoformat()

    with _athlete_locks.get(athlete_id):
        try:
            plan = _get_plan(session, athlete_id, year, for_update=True)

            existing_config = dict(plan.config_json or {}) if plan else {}
            daily_states = dict(existing_config.get(DAILY_STATES_KEY) or {})
            daily_states[state_key] = state.model_dump(mode="json")

            updated_config = {
                **existing_config,
                DAILY_STATES_KEY: prune_daily_states(daily_states, window),
                LAST_STATE_UPDATE_KEY: datetime.now(timezone.utc).isoformat(),
            }

            if plan:
                plan.config_json = updated_config
            else:
                session.add(
                    AnnualTrainingPlan(
                        athlete_id=athlete_id,
                        year=year,
                        name=_plan_name(year),
                        config_json=updated_config,
                    )
                )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.bind(athlete_id=athlete_id, state_date=state_key, error=str(e)).error("Error saving daily state")
            return False

    logger.bind(athlete_id=athlete_id, state_date=state_key).info(
        f"Daily state saved: fatigue={state.fatigue_score}, recovery={state.recovery_need}, glycogen={state.glycogen_status}"
    )
    return True


def _load_daily_states_map(session: Session, athlete_id: str, year: int) -> dict[str, Any]:
    plan = _get_plan(session, athlete_id, year)
    if not plan or not plan.config_json:
        return {}
    return dict(plan.config_json.get(DAILY_STATES_KEY) or {})


def _parse_state(raw: Any, athlete_id: str, state_key: str) -> AthleteDailyState | None:
    try:
        return AthleteDailyState.model_validate(raw)
    except ValidationError as e:
        logger.bind(athlete_id=athlete_id, state_date=state_key, error=str(e)).warning("Stored daily state is malformed, ignoring")
        return None


def load_daily_state(
    session: Session,
    athlete_id: str,
    state_date: date,
    *,
    year: int | None = None,
) -> AthleteDailyState | None:
    """Load the stored state for a date.

    Returns:
        The state, or None when the document or the date is missing or the store fails
    """
    year = year or _current_year()
    state_key = state_date.isoformat()

    try:
        daily_states = _load_daily_states_map(session, athlete_id, year)
    except SQLAlchemyError as e:
        session.rollback()
        logger.bind(athlete_id=athlete_id, state_date=state_key, error=str(e)).error("Error loading daily state")
        return None

    raw = daily_states.get(state_key)
    if raw is None:
        return None
    return _parse_state(raw, athlete_id, state_key)


def load_recent_daily_states(
    session: Session,
    athlete_id: str,
    *,
    year: int | None = None,
) -> list[AthleteDailyState]:
    """All stored states of the year document, most recent first."""
    year = year or _current_year()

    try:
        daily_states = _load_daily_states_map(session, athlete_id, year)
    except SQLAlchemyError as e:
        session.rollback()
        logger.bind(athlete_id=athlete_id, error=str(e)).error("Error loading recent daily states")
        return []

    states: list[AthleteDailyState] = []
    for state_key in sorted(daily_states.keys(), reverse=True):
        state = _parse_state(daily_states[state_key], athlete_id, state_key)
        if state is not None:
            states.append(state)
    return states


def save_adaptations(
    session: Session,
    athlete_id: str,
    state_date: date,
    adaptations: Mapping[str, Any],
    *,
    year: int | None = None,
) -> bool:
    """Store the latest adaptations in an existing plan document.

    Returns:
        True if stored, False when no document exists or the store fails
    """
    year = year or _current_year()

    with _athlete_locks.get(athlete_id):
        try:
            plan = _get_plan(session, athlete_id, year, for_update=True)
            if not plan:
                logger.bind(athlete_id=athlete_id, year=year).warning("No plan document, adaptations not stored")
                return False

            plan.config_json = {
                **(plan.config_json or {}),
                ADAPTATIONS_KEY: {
                    "date": state_date.isoformat(),
                    **adaptations,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
            }
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.bind(athlete_id=athlete_id, error=str(e)).error("Error saving adaptations")
            return False

    return True
