"""Intensity zone utilities.

Zones are ordinal bands z1 (recovery) .. z7 (neuromuscular). Plans and
imports may use named aliases, which map onto the same ranks.
"""

from datetime import date

DEFAULT_ZONE = "z2"
DEFAULT_ZONE_RANK = 2

ZONE_INTENSITY: dict[str, int] = {
    "z1": 1,
    "recovery": 1,
    "recupero": 1,
    "z2": 2,
    "endurance": 2,
    "resistenza": 2,
    "z3": 3,
    "tempo": 3,
    "z4": 4,
    "threshold": 4,
    "soglia": 4,
    "z5": 5,
    "vo2max": 5,
    "z6": 6,
    "anaerobic": 6,
    "z7": 7,
    "neuromuscular": 7,
}


def zone_intensity(zone: str | None) -> int:
    """Map a zone label to its intensity rank (1..7).

    Args:
        zone: Zone label, e.g. "z4", "Threshold", "soglia"

    Returns:
        Intensity rank, or 2 for missing/unknown labels
    """
    if not zone:
        return DEFAULT_ZONE_RANK
    return ZONE_INTENSITY.get(zone.lower(), DEFAULT_ZONE_RANK)


def dominant_zone(zones_distribution: dict[str, float] | None) -> str:
    """Zone with the most time spent; "z2" when the distribution is absent or empty."""
    if not zones_distribution:
        return DEFAULT_ZONE

    max_time = 0.0
    dominant = DEFAULT_ZONE
    for zone, seconds in zones_distribution.items():
        if seconds > max_time:
            max_time = seconds
            dominant = zone

    return dominant


def monday_weekday(day: date) -> int:
    """Day of week with Monday=0 .. Sunday=6, as used by planned workouts."""
    return day.weekday()
