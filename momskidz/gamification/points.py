from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable


ACTIVITY_POINTS: dict[str, int] = {
    "feeding": 20,
    "diaper": 15,
    "sleep": 25,
}

BONUS_POINTS: dict[str, int] = {
    "early_bird": 50,
    "night_owl": 30,
    "rainy_day": 20,
    "sunny_day": 10,
    "snow_day": 30,
    "severe_weather": 40,
    "photo_attachment": 15,
    "high_quality_photo": 10,
}

# Minimum total points for levels 1..10.
LEVEL_THRESHOLDS: list[int] = [0, 100, 300, 600, 1000, 1500, 2200, 3000, 4000, 5000]
MAX_LEVEL = len(LEVEL_THRESHOLDS)


def activity_points(activity_type: str, bonuses: Iterable[str] = ()) -> int:
    """Points for one logged activity: its base value plus each distinct bonus.

    Raises ``ValueError`` for an unknown activity type or bonus name.
    """

    try:
        total = ACTIVITY_POINTS[activity_type]
    except KeyError:
        raise ValueError(f"Unknown activity type: {activity_type}") from None

    for bonus in dict.fromkeys(bonuses):
        if bonus not in BONUS_POINTS:
            raise ValueError(f"Unknown bonus: {bonus}")
        total += BONUS_POINTS[bonus]
    return total


def calculate_level(points: int) -> int:
    return min(max(bisect_right(LEVEL_THRESHOLDS, points), 1), MAX_LEVEL)


def points_to_next_level(points: int) -> int | None:
    level = calculate_level(points)
    if level >= MAX_LEVEL:
        return None
    return LEVEL_THRESHOLDS[level] - points
