"""Daily Aggregator: raw signal events to per-day records.

For each user and local day, reads the day's raw events once and writes
HealthEcho, RhythmMap, DeviceSignal, ShadowCognition and ObscuraPatterns.
HealthEcho is written before RhythmMap so the rhythm-score trigger can use
the day's wellness index. Groups without input events are skipped.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from lifelog.domains.mindstate.domain_logic import aggregation as agg
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.base import (
    JobContext,
    JobResult,
    day_window,
    for_each_user,
    write_daily_record,
)

logger = logging.getLogger(__name__)

GROUPS = ("health", "device", "shadow", "obscura")


class DailyAggregator:
    """Usage::

        aggregator = DailyAggregator(ctx)
        await aggregator.run()                      # yesterday, all groups
        await aggregator.run(date(2026, 3, 1), groups=("device",))
    """

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def fetch_events(self, user_id: str, day: date) -> list[dict[str, Any]]:
        start_ms, end_ms = day_window(day, self._ctx.tz)
        return self._ctx.store.query(
            m.SIGNAL_EVENTS,
            where=[
                ("userId", "==", user_id),
                ("timestamp", ">=", start_ms),
                ("timestamp", "<", end_ms),
            ],
            order_by="timestamp",
        )

    async def aggregate_user(
        self,
        user_id: str,
        day: date,
        groups: tuple[str, ...] = GROUPS,
    ) -> list[str]:
        """Aggregate one user's day. Returns the collections written."""
        events = self.fetch_events(user_id, day)
        if not events:
            return []

        by_type = agg.partition_events(events)
        day_key = day.isoformat()
        written: list[str] = []

        async def _write(collection: str, record: Any) -> None:
            if record is None:
                return
            await write_daily_record(self._ctx, collection, user_id, day_key, record.to_document())
            written.append(collection)

        if "health" in groups:
            rhythm = agg.compute_rhythm_map(by_type)
            if rhythm is not None:
                await _write(m.HEALTH_ECHO, agg.compute_health_echo(by_type, rhythm))
                await _write(m.RHYTHM_MAP, rhythm)

        if "device" in groups:
            await _write(m.DEVICE_SIGNALS, agg.compute_device_signal(by_type))

        if "shadow" in groups:
            await _write(
                m.SHADOW_COGNITION,
                agg.compute_shadow_cognition(events, by_type, self._ctx.tz),
            )

        if "obscura" in groups:
            await _write(m.OBSCURA_PATTERNS, agg.compute_obscura_patterns(by_type))

        if written:
            logger.info("Aggregated %s for user %s on %s", ", ".join(written), user_id, day_key)
        return written

    async def run(
        self,
        day: date | None = None,
        groups: tuple[str, ...] = GROUPS,
    ) -> JobResult:
        day = day or self._ctx.yesterday()
        unknown = set(groups) - set(GROUPS)
        if unknown:
            raise ValueError(f"Unknown aggregation groups: {sorted(unknown)}")

        async def _task(user: dict[str, Any]) -> bool:
            return bool(await self.aggregate_user(user["id"], day, groups))

        name = "daily_aggregator" if groups == GROUPS else f"daily_aggregator[{','.join(groups)}]"
        return await for_each_user(self._ctx, name, _task)

    async def run_health(self, day: date | None = None) -> JobResult:
        return await self.run(day, ("health",))

    async def run_device_signals(self, day: date | None = None) -> JobResult:
        return await self.run(day, ("device",))

    async def run_shadow_cognition(self, day: date | None = None) -> JobResult:
        return await self.run(day, ("shadow",))

    async def run_obscura_patterns(self, day: date | None = None) -> JobResult:
        return await self.run(day, ("obscura",))
