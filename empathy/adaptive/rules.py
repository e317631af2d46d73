"""Thresholds and coefficients of the adaptive engine.

Fatigue values are points on the 0-100 daily scale; glycogen values are grams.
"""

import math

# Fatigue
FATIGUE_BASE = 30
FATIGUE_ACCUMULATED_CAP = 50
FATIGUE_MAX = 100
FATIGUE_MEDIUM = 50
FATIGUE_HIGH = 70
FATIGUE_CRITICAL = 85

# Per-activity fatigue contribution
FATIGUE_PER_DELTA_TSS = 0.1
FATIGUE_INTENSITY_AMPLIFIER = 0.5
DELTA_FATIGUE_MIN = -20
DELTA_FATIGUE_MAX = 30
INTENSITY_NORMALIZER = 3

# Yesterday's extra load
YESTERDAY_HEAVY_DELTA_TSS = 30
YESTERDAY_HEAVY_LOAD_FACTOR = 20
YESTERDAY_LIGHT_LOAD_FACTOR = 10

# Glycogen reservoir
GLYCOGEN_MAX = 500
GLYCOGEN_DEPLETION_PER_TSS = 0.5
GLYCOGEN_RESTORE_PER_HOUR = 5
GLYCOGEN_CHO_ABSORPTION = 0.8
GLYCOGEN_DEPLETED_THRESHOLD = 100
GLYCOGEN_LOW_THRESHOLD = 200
GLYCOGEN_LOADED_RATIO = 0.9
GLYCOGEN_WINDOW = 3
RECOVERY_HOURS_AFTER_TRAINING = 12
RECOVERY_HOURS_RESTED = 24
DEFAULT_CHO_INTAKE_G = 300
CHO_ENERGY_SHARE = 0.5
KCAL_PER_GRAM_CHO = 4

# Training load ceiling
TSS_CAPACITY_BASE = 150
TSS_REDUCTION_PER_FATIGUE = 1.5
TSS_CAPACITY_MIN = 20
TSS_REFERENCE_MIN = 50
TSS_ADJUSTMENT_MIN = 50
TSS_ADJUSTMENT_MAX = 120
TSS_ADJUSTMENT_DEFAULT = 100

# Calories and macros
DEFAULT_DAILY_KCAL = 2500
KCAL_DEBT_THRESHOLD = 200
KCAL_DEBT_RECOVERY_RATIO = 0.5
KCAL_DEBT_RECOVERY_MAX = 400
GLYCOGEN_DEPLETED_CHO_ADJUST = 15
GLYCOGEN_DEPLETED_KCAL = 200
GLYCOGEN_LOW_CHO_ADJUST = 10
GLYCOGEN_LOW_KCAL = 100
RECOVERY_PRO_ADJUST = 10
RECOVERY_KCAL = 150
EXTRA_TSS_THRESHOLD = 30
KCAL_PER_EXTRA_TSS = 3
KCAL_NOTE_THRESHOLD = 200

# Placeholders owned by the periodization side
DEFAULT_TRAINING_PHASE = "build"


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves toward positive infinity (2.5 -> 3, -2.5 -> -2)."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
