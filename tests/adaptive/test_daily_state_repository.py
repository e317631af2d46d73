"""Tests for daily state persistence in the yearly plan document."""

import gc
import threading
from datetime import date, timedelta

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from empathy.adaptive import repository
from empathy.adaptive.daily_state import calculate_daily_state
from empathy.adaptive.repository import (
    ADAPTATIONS_KEY,
    DAILY_STATES_KEY,
    LAST_STATE_UPDATE_KEY,
    load_daily_state,
    load_recent_daily_states,
    prune_daily_states,
    save_adaptations,
    save_daily_state,
)
from empathy.adaptive.types import AthleteDailyState
from empathy.db.models import AnnualTrainingPlan, Base

YEAR = 2025
ATHLETE_ID = "athlete-1"


def make_state(state_date: date, athlete_id: str = ATHLETE_ID) -> AthleteDailyState:
    return calculate_daily_state(athlete_id, state_date, [])


def get_plans(session, athlete_id: str = ATHLETE_ID) -> list[AnnualTrainingPlan]:
    return list(session.execute(select(AnnualTrainingPlan).where(AnnualTrainingPlan.athlete_id == athlete_id)).scalars())


def _raise_db_error(*_args, **_kwargs):
    raise SQLAlchemyError("connection lost")


class TestPruneDailyStates:
    def test_keeps_most_recent(self) -> None:
        states = {f"2025-01-{day:02d}": {"day": day} for day in range(1, 11)}

        pruned = prune_daily_states(states, 3)

        assert list(pruned) == ["2025-01-10", "2025-01-09", "2025-01-08"]

    def test_smaller_than_window(self) -> None:
        assert prune_daily_states({"2025-01-01": {}}, 14) == {"2025-01-01": {}}


class TestSaveAndLoad:
    """Tests for saving and loading single states."""

    def test_round_trip(self, db_session) -> None:
        state = make_state(date(2025, 1, 10))

        assert save_daily_state(db_session, ATHLETE_ID, state, year=YEAR) is True

        loaded = load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=YEAR)
        assert loaded == state

    def test_creates_plan_document(self, db_session) -> None:
        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR)
        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 11)), year=YEAR)

        plans = get_plans(db_session)
        assert len(plans) == 1
        assert plans[0].year == YEAR
        assert plans[0].name == "Plan 2025"
        assert set(plans[0].config_json[DAILY_STATES_KEY]) == {"2025-01-10", "2025-01-11"}
        assert LAST_STATE_UPDATE_KEY in plans[0].config_json

    def test_preserves_other_document_keys(self, db_session) -> None:
        db_session.add(
            AnnualTrainingPlan(
                athlete_id=ATHLETE_ID,
                year=YEAR,
                name="Season 2025",
                config_json={"zones": {"ftp": 250}, "goal": "Ironman"},
            )
        )
        db_session.commit()

        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 3, 1)), year=YEAR)

        plan = get_plans(db_session)[0]
        assert plan.name == "Season 2025"
        assert plan.config_json["zones"] == {"ftp": 250}
        assert plan.config_json["goal"] == "Ironman"
        assert "2025-03-01" in plan.config_json[DAILY_STATES_KEY]

    def test_resave_replaces_state(self, db_session) -> None:
        first = make_state(date(2025, 1, 10))
        second = first.model_copy(update={"fatigue_score": 75, "ai_notes": "recomputed"})

        save_daily_state(db_session, ATHLETE_ID, first, year=YEAR)
        save_daily_state(db_session, ATHLETE_ID, second, year=YEAR)

        loaded = load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=YEAR)
        assert loaded is not None
        assert loaded.fatigue_score == 75
        assert loaded.ai_notes == "recomputed"

    def test_rolling_window_keeps_fourteen(self, db_session) -> None:
        start = date(2025, 1, 1)
        for offset in range(20):
            assert save_daily_state(db_session, ATHLETE_ID, make_state(start + timedelta(days=offset)), year=YEAR)

        stored = get_plans(db_session)[0].config_json[DAILY_STATES_KEY]
        assert len(stored) == 14
        assert min(stored) == "2025-01-07"
        assert max(stored) == "2025-01-20"
        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 6), year=YEAR) is None

    def test_explicit_window(self, db_session) -> None:
        for day in range(1, 6):
            save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, day)), year=YEAR, window=2)

        stored = get_plans(db_session)[0].config_json[DAILY_STATES_KEY]
        assert sorted(stored) == ["2025-01-04", "2025-01-05"]

    def test_athletes_are_isolated(self, db_session) -> None:
        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR)

        assert load_daily_state(db_session, "athlete-2", date(2025, 1, 10), year=YEAR) is None

    def test_missing_document_or_date(self, db_session) -> None:
        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=YEAR) is None

        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR)

        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 9), year=YEAR) is None
        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=2024) is None

    def test_default_year_is_current(self, db_session) -> None:
        today = date.today()

        save_daily_state(db_session, ATHLETE_ID, make_state(today))

        assert get_plans(db_session)[0].year == today.year
        assert load_daily_state(db_session, ATHLETE_ID, today) is not None


class TestStoreFailures:
    """Store failures are reported, never raised."""

    def test_save_failure_returns_false(self, db_session, monkeypatch) -> None:
        monkeypatch.setattr(repository, "_get_plan", _raise_db_error)

        assert save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR) is False

    def test_load_failure_returns_none(self, db_session, monkeypatch) -> None:
        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR)
        monkeypatch.setattr(repository, "_get_plan", _raise_db_error)

        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=YEAR) is None
        assert load_recent_daily_states(db_session, ATHLETE_ID, year=YEAR) == []

    def test_malformed_entry_is_ignored(self, db_session) -> None:
        state = make_state(date(2025, 1, 9))
        db_session.add(
            AnnualTrainingPlan(
                athlete_id=ATHLETE_ID,
                year=YEAR,
                name="Plan 2025",
                config_json={
                    DAILY_STATES_KEY: {
                        "2025-01-10": {"fatigue_score": "very tired"},
                        "2025-01-09": state.model_dump(mode="json"),
                    }
                },
            )
        )
        db_session.commit()

        assert load_daily_state(db_session, ATHLETE_ID, date(2025, 1, 10), year=YEAR) is None
        assert load_recent_daily_states(db_session, ATHLETE_ID, year=YEAR) == [state]


class TestLoadRecentDailyStates:
    def test_most_recent_first(self, db_session) -> None:
        for day in (3, 1, 2):
            save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, day)), year=YEAR)

        states = load_recent_daily_states(db_session, ATHLETE_ID, year=YEAR)

        assert [s.state_date for s in states] == [date(2025, 1, 3), date(2025, 1, 2), date(2025, 1, 1)]

    def test_no_document(self, db_session) -> None:
        assert load_recent_daily_states(db_session, ATHLETE_ID, year=YEAR) == []


class TestSaveAdaptations:
    def test_requires_existing_document(self, db_session) -> None:
        assert save_adaptations(db_session, ATHLETE_ID, date(2025, 1, 10), {"training": {}}, year=YEAR) is False
        assert get_plans(db_session) == []

    def test_stores_latest_adaptations(self, db_session) -> None:
        save_daily_state(db_session, ATHLETE_ID, make_state(date(2025, 1, 10)), year=YEAR)

        saved = save_adaptations(
            db_session,
            ATHLETE_ID,
            date(2025, 1, 10),
            {"nutrition": {"kcal": 2500}, "training": {"zone": "z2"}},
            year=YEAR,
        )

        assert saved is True
        config = get_plans(db_session)[0].config_json
        adaptations = config[ADAPTATIONS_KEY]
        assert adaptations["date"] == "2025-01-10"
        assert adaptations["nutrition"] == {"kcal": 2500}
        assert adaptations["training"] == {"zone": "z2"}
        assert "updated_at" in adaptations
        assert "2025-01-10" in config[DAILY_STATES_KEY]

    def test_failure_returns_false(self, db_session, monkeypatch) -> None:
        monkeypatch.setattr(repository, "_get_plan", _raise_db_error)

        assert save_adaptations(db_session, ATHLETE_ID, date(2025, 1, 10), {}, year=YEAR) is False


def test_concurrent_saves_keep_every_state(tmp_path) -> None:
    """Saves from parallel workers for one athlete must not overwrite each other."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'states.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    dates = [date(2025, 2, 1) + timedelta(days=offset) for offset in range(10)]
    results: list[bool] = []
    results_lock = threading.Lock()

    def worker(state_date: date) -> None:
        session = session_factory()
        try:
            saved = save_daily_state(session, ATHLETE_ID, make_state(state_date), year=YEAR)
        finally:
            session.close()
        with results_lock:
            results.append(saved)

    threads = [threading.Thread(target=worker, args=(d,)) for d in dates]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [True] * len(dates)

    session = session_factory()
    try:
        plans = get_plans(session)
        assert len(plans) == 1
        assert sorted(plans[0].config_json[DAILY_STATES_KEY]) == [d.isoformat() for d in dates]
    finally:
        session.close()
        engine.dispose()


class TestAthleteLocks:
    def test_same_lock_while_held(self) -> None:
        locks = repository._AthleteLocks()

        first = locks.get("athlete-a")

        assert locks.get("athlete-a") is first
        assert locks.get("athlete-b") is not first
        assert len(locks) == 1

    def test_unused_locks_are_dropped(self) -> None:
        locks = repository._AthleteLocks()
        for offset in range(100):
            with locks.get(f"athlete-{offset}"):
                pass
        gc.collect()

        assert len(locks) == 0

    def test_registry_is_empty_after_saves(self, db_session) -> None:
        for offset in range(5):
            assert save_daily_state(db_session, f"athlete-{offset}", make_state(date(2025, 1, 10), f"athlete-{offset}"), year=YEAR)
        gc.collect()

        assert len(repository._athlete_locks) == 0
