"""Snapshot assembly: fan out one profile lookup per character, derive metrics."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from leveltracker.config.settings import settings
from leveltracker.config.tracker_config import CharacterRef, TrackerConfig
from leveltracker.crawlers.client import sanitize_for_log, sanitize_log_extra
from leveltracker.crawlers.profile_fetcher import FETCH_ERROR_STATUS, fetch_profile
from leveltracker.models.profile import CharacterProfile
from leveltracker.models.result import FetchError, ResultRecord
from leveltracker.services.daily_history import DailyHistoryStore, day_key, window_start_key, windowed_delta
from leveltracker.services.experience_history import ExperienceHistoryStore
from leveltracker.services.history_io import epoch_ms, isoformat_utc
from leveltracker.services.level_table import total_experience, xp_meta
from leveltracker.services.sparkline import build_sparkline

logger = logging.getLogger(__name__)

IDENTITY_SEPARATOR = ":"


def character_identity(realm: str, name: str) -> str:
    """Stable store key: lower-cased realm slug and character name."""
    return f"{realm.strip().lower()}{IDENTITY_SEPARATOR}{name.strip().lower()}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class RunClock:
    """Every character in one run is measured against the same instant."""

    now: datetime
    today: str
    now_ms: int
    delta_window_start: str
    daily_cutoff: str
    xp_cutoff_ms: int

    @classmethod
    def at(
        cls,
        moment: datetime,
        *,
        delta_window_days: int,
        daily_retention_days: int,
        xp_retention_days: int,
    ) -> "RunClock":
        moment = moment.astimezone(timezone.utc)
        today = moment.date()
        now_ms = epoch_ms(moment)
        return cls(
            now=moment,
            today=day_key(today),
            now_ms=now_ms,
            delta_window_start=window_start_key(today, delta_window_days),
            daily_cutoff=window_start_key(today, daily_retention_days),
            xp_cutoff_ms=now_ms - int(timedelta(days=xp_retention_days).total_seconds() * 1000),
        )


class SnapshotOrchestrator:
    """Builds one snapshot from live profiles and the two history stores.

    The stores are mutated in place, and only under the identity of a
    character whose lookup succeeded. Loading and persisting them is the
    caller's job.
    """

    def __init__(
        self,
        *,
        config: TrackerConfig,
        client: Any,
        daily_store: DailyHistoryStore,
        xp_store: ExperienceHistoryStore,
        clock: Callable[[], datetime] = utc_now,
        delta_window_days: int | None = None,
        daily_retention_days: int | None = None,
        xp_retention_days: int | None = None,
        sparkline_window_days: int | None = None,
        sparkline_bins: int | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._daily_store = daily_store
        self._xp_store = xp_store
        self._clock = clock
        self._delta_window_days = delta_window_days or settings.LEVEL_DELTA_WINDOW_DAYS
        self._daily_retention_days = daily_retention_days or settings.DAILY_RETENTION_DAYS
        self._xp_retention_days = xp_retention_days or settings.XP_RETENTION_DAYS
        self._sparkline_window_days = sparkline_window_days or settings.SPARKLINE_WINDOW_DAYS
        self._sparkline_bins = sparkline_bins or settings.SPARKLINE_BINS

    async def run(self) -> dict[str, Any]:
        clock = RunClock.at(
            self._clock(),
            delta_window_days=self._delta_window_days,
            daily_retention_days=self._daily_retention_days,
            xp_retention_days=self._xp_retention_days,
        )
        logger.info(
            "Level snapshot run started",
            extra=sanitize_log_extra(region=self._config.region, characters=len(self._config.characters)),
        )

        # Duplicate config entries share one lookup so no identity is written twice.
        tasks: dict[str, asyncio.Task[ResultRecord]] = {}
        identities: list[str] = []
        for ref in self._config.characters:
            identity = character_identity(ref.realm, ref.name)
            identities.append(identity)
            if identity not in tasks:
                tasks[identity] = asyncio.ensure_future(self._process_character(ref, identity, clock))

        await asyncio.gather(*tasks.values())
        results = [tasks[identity].result() for identity in identities]

        failed = [record.id for record in results if not record.ok]
        logger.info(
            "Level snapshot run completed",
            extra=sanitize_log_extra(results=len(results), failed=failed),
        )
        return {
            "generated_at": isoformat_utc(clock.now),
            "region": self._config.region,
            "results": [record.to_dict() for record in results],
        }

    async def _process_character(self, ref: CharacterRef, identity: str, clock: RunClock) -> ResultRecord:
        try:
            outcome = await fetch_profile(self._client, ref.realm, ref.name, self._config.namespaces)
        except Exception as exc:
            sanitized_error = sanitize_for_log(str(exc), key="error")
            logger.exception(
                "Character lookup raised exception",
                extra=sanitize_log_extra(identity=identity, error=sanitized_error),
            )
            return ResultRecord.failed(
                id=identity,
                name=ref.name,
                realm=ref.realm,
                error=FetchError(status=FETCH_ERROR_STATUS, detail=sanitized_error),
            )

        if not outcome.ok:
            return ResultRecord.failed(
                id=identity,
                name=ref.name,
                realm=ref.realm,
                error=FetchError(status=outcome.status, detail=outcome.detail or ""),
            )

        profile = CharacterProfile.parse_payload(outcome.data)
        return self._derive_record(ref, identity, profile, outcome.namespace, clock)

    def _derive_record(
        self,
        ref: CharacterRef,
        identity: str,
        profile: CharacterProfile,
        namespace: str | None,
        clock: RunClock,
    ) -> ResultRecord:
        level = profile.level
        experience = profile.experience

        if level is not None:
            self._daily_store.record(identity, clock.today, level, cutoff_date=clock.daily_cutoff)

        lifetime_xp = total_experience(level, experience)
        if lifetime_xp is not None:
            self._xp_store.record(identity, clock.now_ms, lifetime_xp, cutoff_ms=clock.xp_cutoff_ms)

        level_delta = windowed_delta(self._daily_store.by_id.get(identity, []), clock.delta_window_start, level)
        spark = build_sparkline(
            self._xp_store.by_id.get(identity, []),
            clock.now_ms,
            window_days=self._sparkline_window_days,
            bins=self._sparkline_bins,
        )
        meta = xp_meta(level, experience)

        return ResultRecord(
            id=identity,
            name=profile.name or ref.name,
            realm=profile.realm_name or ref.realm,
            ok=True,
            level=level,
            level_delta_7d=level_delta,
            xp=experience,
            xp_to_next=meta["xp_to_next"],
            xp_percent=meta["xp_percent"],
            xp_spark_7d=spark["spark"],
            xp_gained_7d=spark["gained"],
            character_class=profile.class_name,
            race=profile.race_name,
            namespace_used=namespace,
        )
