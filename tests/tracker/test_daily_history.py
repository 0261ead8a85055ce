from __future__ import annotations

from datetime import date

from leveltracker.services.daily_history import (
    DailyHistoryStore,
    DailyLevelPoint,
    parse_daily_series,
    prune_daily,
    upsert_daily,
    window_start_key,
    windowed_delta,
)


def _series(*pairs: tuple[str, int]) -> list[DailyLevelPoint]:
    return [DailyLevelPoint(date=day, level=level) for day, level in pairs]


def test_windowed_delta_uses_last_point_before_window_start() -> None:
    series = _series(("2024-01-01", 10), ("2024-01-10", 15))

    assert windowed_delta(series, "2024-01-05", 20) == 10


def test_windowed_delta_falls_back_to_first_point_inside_window() -> None:
    series = _series(("2024-01-06", 12), ("2024-01-08", 14))

    assert windowed_delta(series, "2024-01-05", 15) == 3


def test_windowed_delta_prefers_exact_window_start() -> None:
    series = _series(("2024-01-01", 8), ("2024-01-05", 11), ("2024-01-09", 13))

    assert windowed_delta(series, "2024-01-05", 14) == 3


def test_windowed_delta_unknown_without_history() -> None:
    assert windowed_delta([], "2024-01-05", 20) is None
    assert windowed_delta(_series(("2024-01-01", 3)), "2024-01-05", None) is None


def test_upsert_daily_is_last_write_wins() -> None:
    series = _series(("2024-01-02", 5))

    upsert_daily(series, "2024-01-01", 4)
    upsert_daily(series, "2024-01-03", 6)
    upsert_daily(series, "2024-01-03", 7)
    upsert_daily(series, "2024-01-03", 7)

    assert [(point.date, point.level) for point in series] == [
        ("2024-01-01", 4),
        ("2024-01-02", 5),
        ("2024-01-03", 7),
    ]


def test_prune_daily_drops_only_points_before_cutoff() -> None:
    series = _series(("2024-01-01", 1), ("2024-01-02", 2), ("2024-01-03", 3))

    prune_daily(series, "2024-01-02")
    assert [point.date for point in series] == ["2024-01-02", "2024-01-03"]

    prune_daily(series, "2023-12-01")
    assert [point.date for point in series] == ["2024-01-02", "2024-01-03"]


def test_window_start_key_counts_back_calendar_days() -> None:
    assert window_start_key(date(2024, 3, 3), 7) == "2024-02-25"


def test_parse_daily_series_drops_malformed_and_duplicate_dates() -> None:
    parsed = parse_daily_series(
        [
            {"date": "2024-01-03", "level": 9},
            {"date": "not-a-date", "level": 1},
            {"date": "2024-01-01", "level": "7"},
            {"date": "2024-01-02", "level": 8},
            {"date": "2024-01-03", "level": 10},
            "junk",
        ]
    )

    assert [(point.date, point.level) for point in parsed] == [("2024-01-02", 8), ("2024-01-03", 10)]


def test_store_document_round_trip_keeps_layout() -> None:
    store = DailyHistoryStore.from_document(
        {"version": 1, "updated_at": "2024-01-01T00:00:00.000Z", "by_id": {"stitches:bob": [{"date": "2024-01-01", "level": 3}]}}
    )
    store.record("stitches:bob", "2024-01-02", 4, cutoff_date="2023-10-01")

    document = store.to_document("2024-01-02T00:00:00.000Z")

    assert document == {
        "version": 1,
        "updated_at": "2024-01-02T00:00:00.000Z",
        "by_id": {"stitches:bob": [{"date": "2024-01-01", "level": 3}, {"date": "2024-01-02", "level": 4}]},
    }


def test_store_from_missing_document_is_empty() -> None:
    assert DailyHistoryStore.from_document(None).by_id == {}
    assert DailyHistoryStore.from_document({"by_id": []}).by_id == {}


def test_store_keeps_callers_empty_mapping() -> None:
    backing: dict[str, list[DailyLevelPoint]] = {}
    store = DailyHistoryStore(backing)

    store.record("stitches:bob", "2024-01-02", 4, cutoff_date="2023-10-01")

    assert backing == {"stitches:bob": [DailyLevelPoint(date="2024-01-02", level=4)]}
