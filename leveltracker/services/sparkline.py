"""Fixed-resolution experience sparkline over a trailing window."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from leveltracker.services.experience_history import ExperiencePoint

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_WINDOW_DAYS = 7
DEFAULT_BINS = 56
FLAT_LINE_VALUE = 50


def build_sparkline(
    series: Sequence[ExperiencePoint],
    now_ms: int,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    bins: int = DEFAULT_BINS,
) -> dict[str, Any]:
    """Return `{"spark": [0..100] * bins, "gained": raw XP}` for the window.

    Each bin holds the last XP observed at or before the bin's end; bins with no
    new sample carry the previous value forward. Bins ahead of the first sample
    take the first sample's value. Fewer than two samples in the window yields
    `{"spark": None, "gained": None}`.
    """

    window_ms = window_days * DAY_MS
    start_ms = now_ms - window_ms
    points = sorted(
        (point for point in series if start_ms <= point.t <= now_ms),
        key=lambda item: item.t,
    )
    if len(points) < 2:
        return {"spark": None, "gained": None}

    bin_ms = window_ms / bins
    raw: list[Optional[float]] = []
    cursor = 0
    last_value: Optional[float] = None
    for index in range(bins):
        bin_end = start_ms + (index + 1) * bin_ms
        while cursor < len(points) and points[cursor].t <= bin_end:
            last_value = points[cursor].xp
            cursor += 1
        raw.append(last_value)

    first_defined = next(value for value in raw if value is not None)
    values = [first_defined if value is None else value for value in raw]
    gained = values[-1] - first_defined

    low = min(values)
    high = max(values)
    if high == low:
        spark = [FLAT_LINE_VALUE] * bins
    else:
        spark = [round(100 * (value - low) / (high - low)) for value in values]

    return {"spark": spark, "gained": gained}
