"""Periodic level update: load inputs, assemble the snapshot, persist outputs."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from leveltracker.config.settings import settings
from leveltracker.config.tracker_config import TrackerConfig, load_tracker_config
from leveltracker.crawlers.client import BattleNetClient
from leveltracker.orchestrator import SnapshotOrchestrator, utc_now
from leveltracker.services.daily_history import DailyHistoryStore
from leveltracker.services.experience_history import ExperienceHistoryStore
from leveltracker.services.history_io import isoformat_utc, load_document, write_document


def load_stores(
    *,
    daily_path: str | Path,
    xp_path: str | Path,
    coalesce_seconds: int | None = None,
) -> tuple[DailyHistoryStore, ExperienceHistoryStore]:
    """Load both stores, empty when their files are absent."""
    coalesce_ms = (coalesce_seconds or settings.XP_COALESCE_SECONDS) * 1000
    daily_store = DailyHistoryStore.from_document(load_document(daily_path))
    xp_store = ExperienceHistoryStore.from_document(load_document(xp_path), coalesce_ms=coalesce_ms)
    return daily_store, xp_store


async def run_level_update(
    *,
    config: TrackerConfig | None = None,
    client_factory: Callable[[TrackerConfig], Any] | None = None,
    config_path: str | Path | None = None,
    snapshot_path: str | Path | None = None,
    daily_history_path: str | Path | None = None,
    xp_history_path: str | Path | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> dict[str, Any]:
    """Run one full update and return the snapshot that was written.

    Configuration, credential and history-read failures raise before any
    profile is fetched.
    """
    tracker_config = config or load_tracker_config(config_path or settings.TRACKER_CONFIG_PATH)
    daily_path = daily_history_path or settings.DAILY_HISTORY_PATH
    xp_path = xp_history_path or settings.XP_HISTORY_PATH
    daily_store, xp_store = load_stores(daily_path=daily_path, xp_path=xp_path)

    factory = client_factory or _default_client_factory
    async with factory(tracker_config) as client:
        await client.authenticate()
        orchestrator = SnapshotOrchestrator(
            config=tracker_config,
            client=client,
            daily_store=daily_store,
            xp_store=xp_store,
            clock=clock,
        )
        snapshot = await orchestrator.run()

    updated_at = isoformat_utc(clock())
    write_document(daily_path, daily_store.to_document(updated_at))
    write_document(xp_path, xp_store.to_document(updated_at))
    write_document(snapshot_path or settings.SNAPSHOT_PATH, snapshot)
    return snapshot


def _default_client_factory(config: TrackerConfig) -> BattleNetClient:
    return BattleNetClient(region=config.region, locale=config.locale)
