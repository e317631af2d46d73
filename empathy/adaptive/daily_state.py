"""Daily state calculation.

Derives an athlete's daily state from recent activity deltas:
- Accumulated fatigue
- Simulated glycogen reservoir
- Recovery need
- Training-load ceiling and zone ceiling
- Caloric and macro adjustments, with a readable rationale

Pure computation: persistence lives in empathy.adaptive.repository.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from empathy.adaptive import rules
from empathy.adaptive.delta import calculate_weekly_summary
from empathy.adaptive.rules import clamp, round_int
from empathy.adaptive.types import (
    ActivityDelta,
    AthleteDailyState,
    GlycogenStatus,
    HydrationStatus,
    MetabolicProfile,
    RecoveryNeed,
    TodayWorkout,
)
from empathy.adaptive.zones import DEFAULT_ZONE, zone_intensity

OPTIMAL_STATE_NOTE = "Optimal state — follow standard plan"
ADAPTATIONS_PREFIX = "Adaptations: "

NORMAL_MAX_ZONE = "z5"


@dataclass(frozen=True)
class GlycogenEstimate:
    status: GlycogenStatus
    level: int


@dataclass(frozen=True)
class ZoneCeiling:
    recommended: str
    max: str


@dataclass(frozen=True)
class CaloricAdjustment:
    target: int
    adjustment: int
    cho_adjust: int
    pro_adjust: int
    fat_adjust: int


def calculate_fatigue_score(cumulative_fatigue: int) -> int:
    """Resting baseline of 30 plus accumulated fatigue capped at 50, kept in [0, 100]."""
    accumulated = min(rules.FATIGUE_ACCUMULATED_CAP, cumulative_fatigue)
    return int(clamp(rules.FATIGUE_BASE + accumulated, 0, rules.FATIGUE_MAX))


def calculate_glycogen_status(
    recent_deltas: Sequence[ActivityDelta],
    hours_recovery: float,
    cho_intake_g: float,
) -> GlycogenEstimate:
    """Simulate the glycogen reservoir starting from full stores.

    Args:
        recent_deltas: Deltas whose actual TSS depletes the reservoir
        hours_recovery: Hours of passive restoration
        cho_intake_g: Estimated carbohydrate intake in grams

    Returns:
        Status classification and the level in grams (rounded)
    """
    glycogen = float(rules.GLYCOGEN_MAX)

    total_tss = sum(d.actual_tss for d in recent_deltas)
    glycogen -= total_tss * rules.GLYCOGEN_DEPLETION_PER_TSS

    glycogen += hours_recovery * rules.GLYCOGEN_RESTORE_PER_HOUR
    glycogen += cho_intake_g * rules.GLYCOGEN_CHO_ABSORPTION

    glycogen = clamp(glycogen, 0, rules.GLYCOGEN_MAX)

    if glycogen < rules.GLYCOGEN_DEPLETED_THRESHOLD:
        status = GlycogenStatus.DEPLETED
    elif glycogen < rules.GLYCOGEN_LOW_THRESHOLD:
        status = GlycogenStatus.LOW
    elif glycogen < rules.GLYCOGEN_MAX * rules.GLYCOGEN_LOADED_RATIO:
        status = GlycogenStatus.NORMAL
    else:
        status = GlycogenStatus.LOADED

    return GlycogenEstimate(status=status, level=round_int(glycogen))


def calculate_recovery_need(fatigue_score: int, delta_tss_yesterday: float) -> RecoveryNeed:
    """Classify recovery need from fatigue plus yesterday's extra load."""
    if delta_tss_yesterday > rules.YESTERDAY_HEAVY_DELTA_TSS:
        load_factor = rules.YESTERDAY_HEAVY_LOAD_FACTOR
    elif delta_tss_yesterday > 0:
        load_factor = rules.YESTERDAY_LIGHT_LOAD_FACTOR
    else:
        load_factor = 0

    effective_fatigue = fatigue_score + load_factor

    if effective_fatigue >= rules.FATIGUE_CRITICAL:
        return RecoveryNeed.CRITICAL
    if effective_fatigue >= rules.FATIGUE_HIGH:
        return RecoveryNeed.HIGH
    if effective_fatigue >= rules.FATIGUE_MEDIUM:
        return RecoveryNeed.MEDIUM
    return RecoveryNeed.LOW


def calculate_tss_capacity(fatigue_score: int) -> int:
    reduction = fatigue_score * rules.TSS_REDUCTION_PER_FATIGUE
    return max(rules.TSS_CAPACITY_MIN, round_int(rules.TSS_CAPACITY_BASE - reduction))


def calculate_tss_adjustment_percent(tss_capacity: int, planned_workout: TodayWorkout | None) -> int:
    """Share of today's planned TSS the athlete can absorb, in [50, 120].

    Exactly 100 when nothing is planned; the ratio is only computed against
    a planned session.
    """
    if planned_workout is None:
        return rules.TSS_ADJUSTMENT_DEFAULT

    reference = max(planned_workout.tss, rules.TSS_REFERENCE_MIN)
    percent = round_int(tss_capacity / reference * 100)
    return int(clamp(percent, rules.TSS_ADJUSTMENT_MIN, rules.TSS_ADJUSTMENT_MAX))


def calculate_recommended_zone(
    recovery_need: RecoveryNeed,
    glycogen_status: GlycogenStatus,
    planned_zone: str,
) -> ZoneCeiling:
    """Zone recommendation and ceiling. Rules are evaluated in order; first match wins."""
    if recovery_need == RecoveryNeed.CRITICAL:
        return ZoneCeiling(recommended="z1", max="z1")

    if recovery_need == RecoveryNeed.HIGH or glycogen_status == GlycogenStatus.DEPLETED:
        return ZoneCeiling(recommended="z2", max="z2")

    if recovery_need == RecoveryNeed.MEDIUM or glycogen_status == GlycogenStatus.LOW:
        return ZoneCeiling(recommended="z2", max="z3")

    # Follow the plan, never above the normal-state ceiling
    if zone_intensity(planned_zone) > zone_intensity(NORMAL_MAX_ZONE):
        return ZoneCeiling(recommended=NORMAL_MAX_ZONE, max=NORMAL_MAX_ZONE)
    return ZoneCeiling(recommended=planned_zone, max=NORMAL_MAX_ZONE)


def calculate_caloric_adjustments(
    base_kcal: float,
    delta_tss: float,
    delta_kcal: float,
    glycogen_status: GlycogenStatus,
    recovery_need: RecoveryNeed,
) -> CaloricAdjustment:
    """Calorie target and macro ratio shifts (percentage points).

    Every term is computed from the inputs, not from previous terms. Fat
    absorbs the carbohydrate and protein increases.
    """
    adjustment = 0.0
    cho_adjust = 0
    pro_adjust = 0

    if delta_kcal > rules.KCAL_DEBT_THRESHOLD:
        adjustment += min(rules.KCAL_DEBT_RECOVERY_MAX, delta_kcal * rules.KCAL_DEBT_RECOVERY_RATIO)

    if glycogen_status == GlycogenStatus.DEPLETED:
        cho_adjust = rules.GLYCOGEN_DEPLETED_CHO_ADJUST
        adjustment += rules.GLYCOGEN_DEPLETED_KCAL
    elif glycogen_status == GlycogenStatus.LOW:
        cho_adjust = rules.GLYCOGEN_LOW_CHO_ADJUST
        adjustment += rules.GLYCOGEN_LOW_KCAL

    if recovery_need in {RecoveryNeed.HIGH, RecoveryNeed.CRITICAL}:
        pro_adjust = rules.RECOVERY_PRO_ADJUST
        adjustment += rules.RECOVERY_KCAL

    if delta_tss > rules.EXTRA_TSS_THRESHOLD:
        adjustment += delta_tss * rules.KCAL_PER_EXTRA_TSS

    return CaloricAdjustment(
        target=round_int(base_kcal + adjustment),
        adjustment=round_int(adjustment),
        cho_adjust=cho_adjust,
        pro_adjust=pro_adjust,
        fat_adjust=-(cho_adjust + pro_adjust),
    )


def generate_ai_notes(
    fatigue_score: int,
    glycogen_status: GlycogenStatus,
    recovery_need: RecoveryNeed,
    kcal_adjustment: int,
) -> tuple[str, list[str]]:
    """Explain the adaptations.

    Returns:
        Tuple of (notes, reasons) where notes joins the reasons in order
    """
    reasons: list[str] = []

    if fatigue_score > rules.FATIGUE_HIGH:
        reasons.append(f"High fatigue ({fatigue_score}/100) - load reduction recommended")

    if glycogen_status == GlycogenStatus.DEPLETED:
        reasons.append("Glycogen depleted - prioritize restoring stores with extra CHO")
    elif glycogen_status == GlycogenStatus.LOW:
        reasons.append("Low glycogen - increase carbohydrate intake")

    if recovery_need == RecoveryNeed.CRITICAL:
        reasons.append("Critical recovery needed - regenerative activity only")
    elif recovery_need == RecoveryNeed.HIGH:
        reasons.append("High recovery need - limit intensity")

    if kcal_adjustment > rules.KCAL_NOTE_THRESHOLD:
        reasons.append(f"Caloric deficit to compensate ({kcal_adjustment:+d} kcal)")

    notes = f"{ADAPTATIONS_PREFIX}{'. '.join(reasons)}" if reasons else OPTIMAL_STATE_NOTE
    return notes, reasons


def find_yesterday_delta(recent_deltas: Sequence[ActivityDelta], state_date: date) -> ActivityDelta | None:
    yesterday = state_date - timedelta(days=1)
    return next((d for d in recent_deltas if d.delta_date == yesterday), None)


def calculate_daily_state(
    athlete_id: str,
    state_date: date,
    recent_deltas: Sequence[ActivityDelta],
    metabolic_profile: MetabolicProfile | None = None,
    planned_workout: TodayWorkout | None = None,
) -> AthleteDailyState:
    """Calculate the complete daily state for an athlete.

    Deterministic: identical inputs give an identical state. The only date
    involved is state_date.

    Args:
        athlete_id: Athlete identifier
        state_date: Date the state applies to
        recent_deltas: Recent activity deltas in chronological order (typically 2-3 weeks)
        metabolic_profile: Optional bmr/daily_kcal; defaults to 2500 kcal
        planned_workout: Optional zone/tss of today's planned session

    Returns:
        AthleteDailyState with adapted targets and rationale
    """
    yesterday_delta = find_yesterday_delta(recent_deltas, state_date)

    weekly_summary = calculate_weekly_summary(recent_deltas)
    fatigue_score = calculate_fatigue_score(weekly_summary.cumulative_fatigue)

    hours_recovery = rules.RECOVERY_HOURS_AFTER_TRAINING if yesterday_delta else rules.RECOVERY_HOURS_RESTED
    if metabolic_profile:
        cho_intake = metabolic_profile.daily_kcal * rules.CHO_ENERGY_SHARE / rules.KCAL_PER_GRAM_CHO
    else:
        cho_intake = rules.DEFAULT_CHO_INTAKE_G
    glycogen = calculate_glycogen_status(
        list(recent_deltas)[-rules.GLYCOGEN_WINDOW :],
        hours_recovery,
        cho_intake,
    )

    recovery_need = calculate_recovery_need(
        fatigue_score,
        yesterday_delta.delta_tss if yesterday_delta else 0,
    )

    tss_capacity = calculate_tss_capacity(fatigue_score)
    tss_adjustment_percent = calculate_tss_adjustment_percent(tss_capacity, planned_workout)

    zones = calculate_recommended_zone(
        recovery_need,
        glycogen.status,
        planned_workout.zone if planned_workout and planned_workout.zone else DEFAULT_ZONE,
    )

    base_kcal = metabolic_profile.daily_kcal if metabolic_profile and metabolic_profile.daily_kcal else rules.DEFAULT_DAILY_KCAL
    caloric = calculate_caloric_adjustments(
        base_kcal,
        weekly_summary.total_delta_tss,
        weekly_summary.total_delta_kcal,
        glycogen.status,
        recovery_need,
    )

    notes, reasons = generate_ai_notes(fatigue_score, glycogen.status, recovery_need, caloric.adjustment)

    return AthleteDailyState(
        athlete_id=athlete_id,
        state_date=state_date,
        fatigue_score=fatigue_score,
        recovery_need=recovery_need,
        glycogen_status=glycogen.status,
        # TODO: derive from wearable hydration data once a sensor feed exists
        hydration_status=HydrationStatus.NORMAL,
        kcal_target=caloric.target,
        kcal_adjustment=caloric.adjustment,
        kcal_debt=weekly_summary.total_delta_kcal,
        cho_ratio_adjustment=caloric.cho_adjust,
        pro_ratio_adjustment=caloric.pro_adjust,
        fat_ratio_adjustment=caloric.fat_adjust,
        tss_capacity=tss_capacity,
        tss_adjustment_percent=tss_adjustment_percent,
        recommended_zone=zones.recommended,
        max_zone_today=zones.max,
        training_phase=rules.DEFAULT_TRAINING_PHASE,
        days_to_event=None,
        ai_notes=notes,
        adaptation_reasons=reasons,
        factors={
            "weekly_summary": weekly_summary.model_dump(mode="json"),
            "glycogen_level": glycogen.level,
            "yesterday_delta": yesterday_delta.model_dump(mode="json") if yesterday_delta else None,
        },
    )
