"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from collections.abc import Callable, Generator
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from empathy.db.models import (
    AnnualTrainingPlan,
    Athlete,
    Base,
    MetabolicProfile,
    PlannedWorkoutRecord,
    TrainingActivity,
    TrainingMesocycle,
    TrainingWeek,
)


@pytest.fixture
def test_athlete_id() -> str:
    """Stable athlete ID for use in tests."""
    return "athlete-1"


@pytest.fixture(scope="function")
def db_engine() -> Generator[Engine, None, None]:
    """Isolated in-memory SQLite engine with all tables created.

    StaticPool keeps a single connection so the in-memory database survives
    across sessions and the FastAPI threadpool.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Session on the in-memory test database.

    Usage:
        def test_something(db_session):
            db_session.add(Athlete(id="a"))
            db_session.commit()
    """
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def add_activity(db_session: Session) -> Callable[..., TrainingActivity]:
    """Factory inserting a performed activity."""

    def _add(
        *,
        activity_id: str,
        athlete_id: str,
        activity_date: date,
        sport: str = "run",
        duration_seconds: int = 3600,
        tss: float = 50,
        calories: float = 500,
        zones_distribution: dict[str, float] | None = None,
    ) -> TrainingActivity:
        activity = TrainingActivity(
            id=activity_id,
            athlete_id=athlete_id,
            activity_date=activity_date,
            title=f"{sport} {activity_date.isoformat()}",
            sport=sport,
            duration_seconds=duration_seconds,
            tss=tss,
            avg_hr=140,
            avg_power=0,
            calories=calories,
            zones_distribution=zones_distribution,
        )
        db_session.add(activity)
        db_session.commit()
        return activity

    return _add


@pytest.fixture
def seeded_athlete(
    db_session: Session,
    add_activity: Callable[..., TrainingActivity],
    test_athlete_id: str,
) -> str:
    """Athlete with a metabolic profile, a weekly plan and three activities.

    Plan (current-year document): Monday bike 60min/50 TSS/z2, Wednesday
    run 60min/70 TSS/z4, Friday run 45min/40 TSS/z2.
    Activities: Monday bike (matched), Wednesday run (matched), Thursday run
    (unplanned), plus one activity outside the 7-day lookback and one
    belonging to another athlete.
    """
    athlete = Athlete(id=test_athlete_id, name="Test Athlete", weight_kg=80)
    athlete.metabolic_profile = MetabolicProfile(bmr=1600)
    db_session.add(athlete)

    plan = AnnualTrainingPlan(
        athlete_id=test_athlete_id,
        year=date.today().year,
        name=f"Plan {date.today().year}",
        config_json={"zones": {"ftp": 250}},
    )
    mesocycle = TrainingMesocycle(plan=plan, name="Base", phase="build")
    week = TrainingWeek(mesocycle=mesocycle, week_start_date=date(2025, 1, 6))
    week.workouts = [
        PlannedWorkoutRecord(
            id="pw-mon",
            day_of_week=0,
            workout_type="endurance",
            sport="Bike",
            duration_minutes=60,
            target_tss=50,
            target_zone="z2",
            estimated_kcal=600,
        ),
        PlannedWorkoutRecord(
            id="pw-wed",
            day_of_week=2,
            workout_type="intervals",
            sport="Run",
            duration_minutes=60,
            target_tss=70,
            target_zone="z4",
            estimated_kcal=700,
        ),
        PlannedWorkoutRecord(
            id="pw-fri",
            day_of_week=4,
            workout_type="easy",
            sport="Run",
            duration_minutes=45,
            target_tss=40,
            target_zone="z2",
            estimated_kcal=450,
        ),
    ]
    db_session.add_all([plan, mesocycle, week])
    db_session.commit()

    add_activity(
        activity_id="act-mon",
        athlete_id=test_athlete_id,
        activity_date=date(2025, 1, 6),
        sport="bike",
        tss=60,
        calories=650,
        zones_distribution={"z2": 3000, "z3": 600},
    )
    add_activity(
        activity_id="act-wed",
        athlete_id=test_athlete_id,
        activity_date=date(2025, 1, 8),
        sport="run",
        tss=90,
        calories=800,
        zones_distribution={"z4": 2000, "z2": 1000},
    )
    add_activity(
        activity_id="act-thu",
        athlete_id=test_athlete_id,
        activity_date=date(2025, 1, 9),
        sport="run",
        duration_seconds=1800,
        tss=30,
        calories=350,
    )
    add_activity(
        activity_id="act-old",
        athlete_id=test_athlete_id,
        activity_date=date(2025, 1, 1),
        tss=200,
    )
    add_activity(
        activity_id="act-other",
        athlete_id="athlete-2",
        activity_date=date(2025, 1, 9),
        tss=300,
    )

    return test_athlete_id
