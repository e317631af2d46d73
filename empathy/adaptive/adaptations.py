"""Translate a daily state into concrete prescriptions.

Four deterministic generators (nutrition, fueling, training, recovery)
read an AthleteDailyState and produce the numbers the athlete follows
today, each with short notes explaining the changes.
"""

from pydantic import BaseModel, Field

from empathy.adaptive.rules import round_half_up, round_int
from empathy.adaptive.types import AthleteDailyState, GlycogenStatus, HydrationStatus, RecoveryNeed

# Standard endurance split (percent of energy)
BASE_CHO_PERCENT = 55
BASE_PRO_PERCENT = 20
BASE_FAT_PERCENT = 25
KCAL_PER_GRAM_FAT = 9
KCAL_PER_GRAM_CHO_PRO = 4
HYDRATION_LITERS_PER_KG = 0.035
HYDRATION_GLYCOGEN_EXTRA_LITERS = 0.5

DEFAULT_WORKOUT_DURATION_MIN = 60
DEFAULT_WORKOUT_TSS = 80
LONG_WORKOUT_MIN = 90
HIGH_INTENSITY_ZONES = {"z4", "z5"}


class NutritionProfile(BaseModel):
    bmr: float
    daily_kcal: float
    weight_kg: float


class WorkoutPlan(BaseModel):
    """Today's planned session as seen by the generators."""

    tss: float = DEFAULT_WORKOUT_TSS
    duration_min: int = DEFAULT_WORKOUT_DURATION_MIN
    zone: str = "z2"


class NutritionAdaptation(BaseModel):
    daily_kcal: int
    kcal_adjustment: int
    cho_percent: int
    pro_percent: int
    fat_percent: int
    cho_grams: int
    pro_grams: int
    fat_grams: int
    hydration_liters: float
    notes: list[str] = Field(default_factory=list)


class FuelingAdaptation(BaseModel):
    pre_workout_cho_g: int
    intra_workout_cho_g_per_hour: int
    post_workout_cho_g: int
    post_workout_pro_g: int
    caffeine_mg: int
    electrolytes_needed: bool
    notes: list[str] = Field(default_factory=list)


class TrainingAdaptation(BaseModel):
    tss_target: float
    tss_adjustment_percent: int
    max_zone: str
    recommended_zone: str
    max_duration_min: int
    intensity_cap: float = Field(..., ge=0, le=1)
    suggested_workout_type: str
    notes: list[str] = Field(default_factory=list)


class RecoveryAdaptation(BaseModel):
    recovery_priority: RecoveryNeed
    sleep_target_hours: float
    active_recovery_recommended: bool
    stretching_minutes: int
    foam_rolling_recommended: bool
    cold_therapy_recommended: bool
    notes: list[str] = Field(default_factory=list)


class AdaptationOutput(BaseModel):
    nutrition: NutritionAdaptation
    fueling: FuelingAdaptation
    training: TrainingAdaptation
    recovery: RecoveryAdaptation


def _needs_recovery(state: AthleteDailyState) -> bool:
    return state.recovery_need in {RecoveryNeed.HIGH, RecoveryNeed.CRITICAL}


def generate_nutrition_adaptation(state: AthleteDailyState, profile: NutritionProfile) -> NutritionAdaptation:
    """Macro split, grams and hydration for the day's calorie target.

    Ratio adjustments are applied to the 55/20/25 split, then normalized
    back to 100 (fat takes the rounding remainder).
    """
    notes: list[str] = []

    cho = BASE_CHO_PERCENT + state.cho_ratio_adjustment
    pro = BASE_PRO_PERCENT + state.pro_ratio_adjustment
    fat = BASE_FAT_PERCENT + state.fat_ratio_adjustment

    total = cho + pro + fat
    cho_percent = round_int(cho / total * 100)
    pro_percent = round_int(pro / total * 100)
    fat_percent = 100 - cho_percent - pro_percent

    daily_kcal = state.kcal_target
    cho_grams = round_int(daily_kcal * cho_percent / 100 / KCAL_PER_GRAM_CHO_PRO)
    pro_grams = round_int(daily_kcal * pro_percent / 100 / KCAL_PER_GRAM_CHO_PRO)
    fat_grams = round_int(daily_kcal * fat_percent / 100 / KCAL_PER_GRAM_FAT)

    hydration = profile.weight_kg * HYDRATION_LITERS_PER_KG
    if state.glycogen_status in {GlycogenStatus.DEPLETED, GlycogenStatus.LOW}:
        hydration += HYDRATION_GLYCOGEN_EXTRA_LITERS
        notes.append("Increase hydration to support glycogen restoration")

    if state.kcal_adjustment > 200:
        notes.append(f"Caloric deficit compensation: +{state.kcal_adjustment} kcal")
    if state.cho_ratio_adjustment > 5:
        notes.append("Carbohydrate priority to restore stores")
    if state.pro_ratio_adjustment > 5:
        notes.append("Protein increased for muscle recovery")

    return NutritionAdaptation(
        daily_kcal=daily_kcal,
        kcal_adjustment=state.kcal_adjustment,
        cho_percent=cho_percent,
        pro_percent=pro_percent,
        fat_percent=fat_percent,
        cho_grams=cho_grams,
        pro_grams=pro_grams,
        fat_grams=fat_grams,
        hydration_liters=round_half_up(hydration, 1),
        notes=notes,
    )


def generate_fueling_adaptation(state: AthleteDailyState, workout: WorkoutPlan | None = None) -> FuelingAdaptation:
    """Carbohydrate, protein, caffeine and electrolyte plan around the session."""
    notes: list[str] = []
    duration = workout.duration_min if workout else DEFAULT_WORKOUT_DURATION_MIN
    zone = workout.zone if workout else state.recommended_zone

    pre_cho = 30
    if state.glycogen_status == GlycogenStatus.DEPLETED:
        pre_cho = 60
        notes.append("Low glycogen: increase pre-workout CHO")
    elif state.glycogen_status == GlycogenStatus.LOW:
        pre_cho = 45

    intra_cho = 30
    if duration > LONG_WORKOUT_MIN:
        intra_cho = 60
        if zone in HIGH_INTENSITY_ZONES:
            intra_cho = 90
            notes.append("Long intense session: maximize intra-workout CHO")

    post_cho = 50
    post_pro = 25
    if _needs_recovery(state):
        post_cho = 80
        post_pro = 35
        notes.append("Recovery priority: post-workout window matters")

    caffeine = 100
    if state.fatigue_score > 70:
        caffeine = 0
        notes.append("High fatigue: skip caffeine to support recovery")

    return FuelingAdaptation(
        pre_workout_cho_g=pre_cho,
        intra_workout_cho_g_per_hour=intra_cho,
        post_workout_cho_g=post_cho,
        post_workout_pro_g=post_pro,
        caffeine_mg=caffeine,
        electrolytes_needed=duration > DEFAULT_WORKOUT_DURATION_MIN or state.hydration_status != HydrationStatus.OPTIMAL,
        notes=notes,
    )


def generate_training_adaptation(state: AthleteDailyState, workout: WorkoutPlan | None = None) -> TrainingAdaptation:
    """Cap today's session by the state's TSS capacity, duration and intensity limits."""
    notes: list[str] = []

    planned_tss = workout.tss if workout and workout.tss else DEFAULT_WORKOUT_TSS
    planned_duration = workout.duration_min if workout and workout.duration_min else DEFAULT_WORKOUT_DURATION_MIN

    tss_target = min(planned_tss, state.tss_capacity)

    max_duration = planned_duration
    if state.recovery_need == RecoveryNeed.CRITICAL:
        max_duration = 45
        notes.append("Critical recovery: limit duration to 45min")
    elif state.recovery_need == RecoveryNeed.HIGH:
        max_duration = min(planned_duration, 90)
        notes.append("High recovery need: max 90min")

    intensity_cap = 1.0
    if state.recovery_need == RecoveryNeed.CRITICAL:
        intensity_cap = 0.6
    elif state.recovery_need == RecoveryNeed.HIGH:
        intensity_cap = 0.75
    elif state.glycogen_status == GlycogenStatus.DEPLETED:
        intensity_cap = 0.7
        notes.append("Low glycogen: limit intensity")

    suggested_type = workout.zone if workout and workout.zone else "endurance"
    if state.recovery_need == RecoveryNeed.CRITICAL:
        suggested_type = "recovery"
        notes.append("Suggested: active recovery or full rest")
    elif state.recovery_need == RecoveryNeed.HIGH:
        suggested_type = "endurance"
        notes.append("Suggested: light aerobic session")

    if state.max_zone_today != state.recommended_zone:
        notes.append(f"Max zone today: {state.max_zone_today} (recommended: {state.recommended_zone})")

    return TrainingAdaptation(
        tss_target=tss_target,
        tss_adjustment_percent=state.tss_adjustment_percent,
        max_zone=state.max_zone_today,
        recommended_zone=state.recommended_zone,
        max_duration_min=max_duration,
        intensity_cap=intensity_cap,
        suggested_workout_type=suggested_type,
        notes=notes,
    )


def generate_recovery_adaptation(state: AthleteDailyState) -> RecoveryAdaptation:
    notes: list[str] = []

    sleep_target = 7.5
    if state.recovery_need == RecoveryNeed.CRITICAL:
        sleep_target = 9.0
        notes.append("Top priority: quality sleep")
    elif state.recovery_need == RecoveryNeed.HIGH:
        sleep_target = 8.5
        notes.append("Increase sleep hours")

    stretching = 10
    if _needs_recovery(state):
        stretching = 20
        notes.append("Extended stretching recommended")

    cold_therapy = state.fatigue_score > 70
    if cold_therapy:
        notes.append("Cold therapy or a cold shower can speed up recovery")

    return RecoveryAdaptation(
        recovery_priority=state.recovery_need,
        sleep_target_hours=sleep_target,
        active_recovery_recommended=state.recovery_need != RecoveryNeed.CRITICAL and state.fatigue_score < 80,
        stretching_minutes=stretching,
        foam_rolling_recommended=state.fatigue_score > 50,
        cold_therapy_recommended=cold_therapy,
        notes=notes,
    )


def generate_adaptations(
    state: AthleteDailyState,
    profile: NutritionProfile,
    workout: WorkoutPlan | None = None,
) -> AdaptationOutput:
    return AdaptationOutput(
        nutrition=generate_nutrition_adaptation(state, profile),
        fueling=generate_fueling_adaptation(state, workout),
        training=generate_training_adaptation(state, workout),
        recovery=generate_recovery_adaptation(state),
    )
