"""Periodic engagement jobs: passive insights and overlay cleanup."""

from __future__ import annotations

import logging
import time
from typing import Any

from lifelog.domains.mindstate.domain_logic import aggregation as agg
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.narrative import engagement_pattern
from lifelog.domains.mindstate.jobs.base import JobContext, JobResult, create_record, for_each_user

logger = logging.getLogger(__name__)

RECENT_WINDOW_MS = 6 * 60 * 60 * 1000


class EngagementJobs:
    """Passive insight generation for opted-in users and overlay expiry."""

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def _recent_counts(self, user_id: str, since_ms: int) -> tuple[int, int]:
        recent = self._ctx.store.query(
            m.SIGNAL_EVENTS,
            where=[("userId", "==", user_id), ("timestamp", ">=", since_ms)],
        )
        voice = sum(1 for e in recent if e.get("eventType") == m.VOICE)
        device = sum(1 for e in recent if e.get("eventType") in agg.DEVICE_EVENT_TYPES)
        return voice, device

    async def passive_insight_for_user(self, user_id: str) -> dict[str, Any] | None:
        latest = self._ctx.store.query(
            m.COGNITIVE_MIRROR,
            where=[("userId", "==", user_id)],
            order_by="date",
            descending=True,
            limit=1,
        )
        if not latest:
            return None

        now = self._ctx.now_ms()
        voice_count, device_count = self._recent_counts(user_id, now - RECENT_WINDOW_MS)
        pattern = engagement_pattern(latest[0], voice_count, device_count)
        if pattern is None:
            return None

        insight = await create_record(self._ctx, m.PASSIVE_INSIGHTS, user_id, {
            "type": pattern.type,
            "trigger": pattern.trigger,
            "suggestion": pattern.suggestion,
            "urgency": pattern.urgency,
            "deliveryMethod": pattern.delivery_method,
            "scheduledFor": now + pattern.delay_minutes * 60 * 1000,
            "consumed": False,
        })
        logger.info("Passive insight %s scheduled for user %s", pattern.type, user_id)
        return insight

    async def run_passive_insights(self) -> JobResult:
        async def _task(user: dict[str, Any]) -> bool:
            return await self.passive_insight_for_user(user["id"]) is not None

        return await for_each_user(
            self._ctx,
            "passive_insights",
            _task,
            where=[("settings.passiveInsightsEnabled", "==", True)],
        )

    async def cleanup_expired_overlays(self) -> JobResult:
        """Delete every overlay whose ``expiresAt`` has passed."""
        result = JobResult("overlay_cleanup")
        start = time.monotonic()
        store = self._ctx.store

        expired = store.query(
            m.ACTIVE_OVERLAYS,
            where=[("expiresAt", "<", self._ctx.now_ms())],
        )
        if expired:
            batch = store.batch()
            for doc in expired:
                batch.delete(m.ACTIVE_OVERLAYS, doc["id"])
            result.processed = batch.commit()
            logger.info("Cleaned up %d expired overlays", result.processed)

        result.duration_ms = round((time.monotonic() - start) * 1000, 2)
        if self._ctx.audit is not None:
            self._ctx.audit.log_job_run(
                result.name,
                processed=result.processed,
                failed=0,
                duration_ms=result.duration_ms,
            )
        return result
