"""Daily level history: one (date, level) sample per character per UTC day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

DAILY_HISTORY_VERSION = 1


@dataclass(slots=True)
class DailyLevelPoint:
    """Level observed on one calendar day (`YYYY-MM-DD`, UTC)."""

    date: str
    level: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "level": self.level}


def upsert_daily(series: list[DailyLevelPoint], day: str, level: int) -> list[DailyLevelPoint]:
    """Replace the point for `day` or append one; keeps the series sorted."""
    for point in series:
        if point.date == day:
            point.level = level
            break
    else:
        series.append(DailyLevelPoint(date=day, level=level))
    series.sort(key=lambda item: item.date)
    return series


def prune_daily(series: list[DailyLevelPoint], cutoff_date: str) -> list[DailyLevelPoint]:
    series[:] = [point for point in series if point.date >= cutoff_date]
    return series


def windowed_delta(
    series: list[DailyLevelPoint],
    window_start_date: str,
    current_level: Optional[int],
) -> Optional[int]:
    """Levels gained since the baseline at (or just before) `window_start_date`.

    The baseline is the last point on or before the window start. A character
    observed for less than the window falls back to its earliest point inside
    the window. Returns None when there is no baseline.
    """

    if not series or current_level is None:
        return None

    ordered = sorted(series, key=lambda item: item.date)
    baseline: Optional[DailyLevelPoint] = None
    for point in ordered:
        if point.date <= window_start_date:
            baseline = point
        else:
            break

    if baseline is None:
        baseline = next((point for point in ordered if point.date >= window_start_date), None)
    if baseline is None:
        return None

    return current_level - baseline.level


def day_key(day: date) -> str:
    return day.isoformat()


def window_start_key(today: date, days: int) -> str:
    return day_key(today - timedelta(days=days))


def parse_daily_series(raw: Any) -> list[DailyLevelPoint]:
    """Load stored points, dropping malformed entries and duplicate dates."""
    if not isinstance(raw, list):
        return []

    by_date: dict[str, DailyLevelPoint] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        raw_date = item.get("date")
        raw_level = item.get("level")
        if not isinstance(raw_date, str) or isinstance(raw_level, bool) or not isinstance(raw_level, int):
            continue
        try:
            normalized = date_parser.isoparse(raw_date).date().isoformat()
        except (TypeError, ValueError):
            continue
        by_date[normalized] = DailyLevelPoint(date=normalized, level=raw_level)

    return sorted(by_date.values(), key=lambda item: item.date)


class DailyHistoryStore:
    """Identity-partitioned daily level history."""

    def __init__(self, by_id: Optional[dict[str, list[DailyLevelPoint]]] = None) -> None:
        self.by_id: dict[str, list[DailyLevelPoint]] = by_id if by_id is not None else {}

    def series(self, identity: str) -> list[DailyLevelPoint]:
        return self.by_id.setdefault(identity, [])

    def record(self, identity: str, day: str, level: int, *, cutoff_date: str) -> list[DailyLevelPoint]:
        """Upsert today's level and prune this identity's series only."""
        series = upsert_daily(self.series(identity), day, level)
        return prune_daily(series, cutoff_date)

    @classmethod
    def from_document(cls, document: Any) -> "DailyHistoryStore":
        raw_by_id = document.get("by_id") if isinstance(document, dict) else None
        if not isinstance(raw_by_id, dict):
            return cls()
        return cls({str(key): parse_daily_series(value) for key, value in raw_by_id.items()})

    def to_document(self, updated_at: str) -> dict[str, Any]:
        return {
            "version": DAILY_HISTORY_VERSION,
            "updated_at": updated_at,
            "by_id": {
                identity: [point.to_dict() for point in points]
                for identity, points in self.by_id.items()
            },
        }
