"""Classic-era experience table and cumulative XP offsets."""

from __future__ import annotations

import math
from typing import Any, Optional

MAX_LEVEL = 60

# Experience required to advance from level N to N + 1, for N in 1..59.
XP_TO_NEXT_LEVEL: dict[int, int] = {
    1: 400, 2: 900, 3: 1400, 4: 2100, 5: 2800,
    6: 3600, 7: 4500, 8: 5400, 9: 6500, 10: 7600,
    11: 8800, 12: 10100, 13: 11400, 14: 12900, 15: 14400,
    16: 16000, 17: 17700, 18: 19400, 19: 21300, 20: 23200,
    21: 25200, 22: 27300, 23: 29400, 24: 31700, 25: 34000,
    26: 36400, 27: 38900, 28: 41400, 29: 44300, 30: 47400,
    31: 50800, 32: 54500, 33: 58600, 34: 62800, 35: 67100,
    36: 71600, 37: 76100, 38: 80800, 39: 85700, 40: 90700,
    41: 95800, 42: 101000, 43: 106300, 44: 111800, 45: 117500,
    46: 123200, 47: 129100, 48: 135100, 49: 141200, 50: 147500,
    51: 153900, 52: 160400, 53: 167100, 54: 173900, 55: 180800,
    56: 187900, 57: 195000, 58: 202300, 59: 209800,
}


def _build_cumulative_start() -> dict[int, int]:
    starts = {1: 0}
    for level in range(1, MAX_LEVEL):
        starts[level + 1] = starts[level] + XP_TO_NEXT_LEVEL[level]
    return starts


# Total experience earned before reaching level N, for N in 1..60.
CUMULATIVE_XP_AT_LEVEL_START: dict[int, int] = _build_cumulative_start()


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def xp_to_next(level: Any) -> Optional[int]:
    if not _is_finite_number(level):
        return None
    return XP_TO_NEXT_LEVEL.get(int(level))


def xp_meta(level: Any, experience: Any) -> dict[str, Any]:
    """Return `{"xp_to_next", "xp_percent"}` for the into-level experience."""

    if _is_finite_number(level) and level >= MAX_LEVEL:
        return {"xp_to_next": None, "xp_percent": 1}

    required = xp_to_next(level)
    if required is None or required <= 0 or not _is_finite_number(experience):
        return {"xp_to_next": required, "xp_percent": None}

    return {"xp_to_next": required, "xp_percent": min(max(experience / required, 0.0), 1.0)}


def total_experience(level: Any, experience: Any) -> Optional[float]:
    """Monotone lifetime XP: level start offset plus into-level experience.

    Into-level experience resets on level-up, so only this total is safe to
    difference across samples.
    """

    if not _is_finite_number(level) or level <= 0:
        return None
    start = CUMULATIVE_XP_AT_LEVEL_START.get(min(int(level), MAX_LEVEL))
    if start is None:
        return None
    into_level = experience if _is_finite_number(experience) else 0
    return start + into_level
