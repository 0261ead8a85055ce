"""Timestamped cumulative-experience samples per character."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import Any, Optional

XP_HISTORY_VERSION = 1
DEFAULT_COALESCE_MS = 60 * 1000


@dataclass(slots=True)
class ExperiencePoint:
    """Lifetime XP at epoch-millisecond instant `t`."""

    t: int
    xp: float

    def to_dict(self) -> dict[str, Any]:
        return {"t": self.t, "xp": self.xp}


def push_experience_point(
    series: list[ExperiencePoint],
    t: int,
    xp: float,
    *,
    coalesce_ms: int = DEFAULT_COALESCE_MS,
) -> list[ExperiencePoint]:
    """Append a sample, or overwrite the last one when it is within `coalesce_ms`.

    A sample older than the last point (clock skew) is inserted in time order
    instead, so the series stays sorted.
    """
    if series and t < series[-1].t:
        bisect.insort(series, ExperiencePoint(t=t, xp=xp), key=lambda item: item.t)
    elif series and t - series[-1].t < coalesce_ms:
        series[-1].t = t
        series[-1].xp = xp
    else:
        series.append(ExperiencePoint(t=t, xp=xp))
    return series


def prune_experience(series: list[ExperiencePoint], cutoff_ms: int) -> list[ExperiencePoint]:
    series[:] = [point for point in series if point.t >= cutoff_ms and math.isfinite(point.xp)]
    return series


def parse_experience_series(raw: Any) -> list[ExperiencePoint]:
    if not isinstance(raw, list):
        return []

    points: list[ExperiencePoint] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        t = item.get("t")
        xp = item.get("xp")
        if isinstance(t, bool) or not isinstance(t, (int, float)) or not math.isfinite(t):
            continue
        if isinstance(xp, bool) or not isinstance(xp, (int, float)) or not math.isfinite(xp):
            continue
        points.append(ExperiencePoint(t=int(t), xp=xp))
    return sorted(points, key=lambda item: item.t)


class ExperienceHistoryStore:
    """Identity-partitioned experience history."""

    def __init__(
        self,
        by_id: Optional[dict[str, list[ExperiencePoint]]] = None,
        *,
        coalesce_ms: int = DEFAULT_COALESCE_MS,
    ) -> None:
        self.by_id: dict[str, list[ExperiencePoint]] = by_id if by_id is not None else {}
        self.coalesce_ms = coalesce_ms

    def series(self, identity: str) -> list[ExperiencePoint]:
        return self.by_id.setdefault(identity, [])

    def record(self, identity: str, t: int, xp: float, *, cutoff_ms: int) -> list[ExperiencePoint]:
        series = push_experience_point(self.series(identity), t, xp, coalesce_ms=self.coalesce_ms)
        return prune_experience(series, cutoff_ms)

    @classmethod
    def from_document(cls, document: Any, *, coalesce_ms: int = DEFAULT_COALESCE_MS) -> "ExperienceHistoryStore":
        raw_by_id = document.get("by_id") if isinstance(document, dict) else None
        if not isinstance(raw_by_id, dict):
            return cls(coalesce_ms=coalesce_ms)
        return cls(
            {str(key): parse_experience_series(value) for key, value in raw_by_id.items()},
            coalesce_ms=coalesce_ms,
        )

    def to_document(self, updated_at: str) -> dict[str, Any]:
        return {
            "version": XP_HISTORY_VERSION,
            "updated_at": updated_at,
            "by_id": {
                identity: [point.to_dict() for point in points]
                for identity, points in self.by_id.items()
            },
        }
