from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""


class Athlete(Base):
    """Athlete entity the adaptive engine computes states for."""

    __tablename__ = "athletes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)

    metabolic_profile: Mapped[MetabolicProfile | None] = relationship(
        back_populates="athlete",
        uselist=False,
    )


class MetabolicProfile(Base):
    """Measured or estimated metabolic data for an athlete.

    daily_kcal is optional; the engine derives it from bmr when missing.
    """

    __tablename__ = "metabolic_profiles"

    athlete_id: Mapped[str] = mapped_column(ForeignKey("athletes.id"), primary_key=True)
    bmr: Mapped[float | None] = mapped_column(Float, nullable=True)
    daily_kcal: Mapped[float | None] = mapped_column(Float, nullable=True)

    athlete: Mapped[Athlete] = relationship(back_populates="metabolic_profile")


class TrainingActivity(Base):
    """Performed activity imported from a device or logged manually."""

    __tablename__ = "training_activities"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    athlete_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False, default="")
    sport: Mapped[str] = mapped_column(String, nullable=False, default="")
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tss: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_hr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_power: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    calories: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    zones_distribution: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (Index("idx_training_activities_athlete_date", "athlete_id", "activity_date"),)


class AnnualTrainingPlan(Base):
    """Per-athlete, per-year plan document.

    config_json is a free-form document. The adaptive engine owns two keys
    inside it: "daily_states" (ISO date -> serialized AthleteDailyState) and
    "current_adaptations".
    """

    __tablename__ = "annual_training_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    athlete_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    config_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    mesocycles: Mapped[list[TrainingMesocycle]] = relationship(back_populates="plan")

    __table_args__ = (UniqueConstraint("athlete_id", "year", name="uq_annual_plan_athlete_year"),)


class TrainingMesocycle(Base):
    __tablename__ = "training_mesocycles"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    plan_id: Mapped[str] = mapped_column(ForeignKey("annual_training_plans.id"), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    phase: Mapped[str | None] = mapped_column(String, nullable=True)

    plan: Mapped[AnnualTrainingPlan] = relationship(back_populates="mesocycles")
    weeks: Mapped[list[TrainingWeek]] = relationship(back_populates="mesocycle")


class TrainingWeek(Base):
    __tablename__ = "training_weeks"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    mesocycle_id: Mapped[str] = mapped_column(ForeignKey("training_mesocycles.id"), nullable=False, index=True)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)

    mesocycle: Mapped[TrainingMesocycle] = relationship(back_populates="weeks")
    workouts: Mapped[list[PlannedWorkoutRecord]] = relationship(back_populates="week")


class PlannedWorkoutRecord(Base):
    """Planned workout slot inside a training week (day_of_week: 0=Monday)."""

    __tablename__ = "planned_workouts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    week_id: Mapped[str] = mapped_column(ForeignKey("training_weeks.id"), nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    workout_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    sport: Mapped[str] = mapped_column(String, nullable=False, default="")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_tss: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    target_zone: Mapped[str] = mapped_column(String, nullable=False, default="z2")
    estimated_kcal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    scheduled_time: Mapped[str | None] = mapped_column(String, nullable=True)  # HH:MM format

    week: Mapped[TrainingWeek] = relationship(back_populates="workouts")
