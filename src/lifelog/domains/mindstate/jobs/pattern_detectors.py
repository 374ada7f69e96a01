"""Pattern detector triggers and the weekly life-event job.

Triggers (document-created handlers):

* ``rhythmMap``: rhythm score
* ``cognitiveMirror``: behavioural recovery, mood-shift passive insight and
  the automatic aura refresh

Scheduled:

* weekly life-event detection over four weeks of mirrors
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from lifelog.core.events.triggers import TriggerBus
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic import patterns
from lifelog.domains.mindstate.domain_logic.narrative import mood_shift_suggestion
from lifelog.domains.mindstate.domain_logic.templates import text
from lifelog.domains.mindstate.domain_logic.visuals import (
    AUTO_AURA_ANIMATION_MS,
    AUTO_AURA_TTL_MS,
    aura_properties,
)
from lifelog.domains.mindstate.jobs.base import (
    JobContext,
    JobResult,
    create_record,
    for_each_user,
    write_daily_record,
)
from lifelog.domains.mindstate.jobs.notifications import queue_notification

logger = logging.getLogger(__name__)

MOOD_SHIFT_DELAY_MS = 30 * 60 * 1000


class PatternDetectors:
    """Usage::

        detectors = PatternDetectors(ctx)
        detectors.register(bus)
        await detectors.run_life_events()
    """

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def register(self, bus: TriggerBus) -> None:
        bus.register(m.RHYTHM_MAP, self.on_rhythm_map_created)
        bus.register(m.COGNITIVE_MIRROR, self.on_mirror_recovery)
        bus.register(m.COGNITIVE_MIRROR, self.on_mirror_mood_shift)
        bus.register(m.COGNITIVE_MIRROR, self.on_mirror_aura_refresh)

    def _previous_mirrors(self, doc: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        return self._ctx.store.query(
            m.COGNITIVE_MIRROR,
            where=[("userId", "==", doc["userId"]), ("date", "<", doc["date"])],
            order_by="date",
            descending=True,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Rhythm score
    # ------------------------------------------------------------------

    async def on_rhythm_map_created(self, doc: dict[str, Any]) -> dict[str, Any]:
        user_id, day = doc["userId"], doc["date"]
        echo = self._ctx.store.get(m.HEALTH_ECHO, m.daily_key(user_id, day))
        wellness = echo.get("wellnessIndex") if echo else None

        score = patterns.compute_rhythm_score(doc, wellness)
        logger.info(
            "Rhythm score for user %s on %s: %s (%d)",
            user_id, day, score.classification, score.score,
        )
        return await write_daily_record(
            self._ctx, m.RHYTHM_SCORES, user_id, day, score.to_document()
        )

    # ------------------------------------------------------------------
    # Behavioural recovery
    # ------------------------------------------------------------------

    async def on_mirror_recovery(self, doc: dict[str, Any]) -> dict[str, Any] | None:
        user_id, day = doc["userId"], doc["date"]
        key = m.daily_key(user_id, day)
        if self._ctx.store.exists(m.RECOVERY_ENGINE, key):
            return None

        since = (date.fromisoformat(day) - timedelta(days=7)).isoformat()
        window = self._ctx.store.query(
            m.COGNITIVE_MIRROR,
            where=[("userId", "==", user_id), ("date", ">=", since), ("date", "<=", day)],
            order_by="date",
        )
        recovery = patterns.detect_recovery(window)
        if recovery is None:
            return None

        logger.info(
            "Recovery detected for user %s: %s improvement of %d",
            user_id, recovery.recovery_type, recovery.improvement_score,
        )
        return await write_daily_record(
            self._ctx, m.RECOVERY_ENGINE, user_id, day, recovery.to_document()
        )

    # ------------------------------------------------------------------
    # Single-day changes
    # ------------------------------------------------------------------

    async def on_mirror_mood_shift(self, doc: dict[str, Any]) -> dict[str, Any] | None:
        shift = patterns.detect_mood_shift(self._previous_mirrors(doc, 3), doc)
        if shift is None:
            return None

        insight = await create_record(self._ctx, m.PASSIVE_INSIGHTS, doc["userId"], {
            "type": "mood_shift_awareness",
            "trigger": shift.shift_type,
            "suggestion": mood_shift_suggestion(shift),
            "urgency": shift.urgency,
            "deliveryMethod": "gentle_notification",
            "scheduledFor": self._ctx.now_ms() + MOOD_SHIFT_DELAY_MS,
            "consumed": False,
        })
        logger.info("Mood shift insight for user %s: %s", doc["userId"], shift.shift_type)
        return insight

    async def on_mirror_aura_refresh(self, doc: dict[str, Any]) -> dict[str, Any] | None:
        previous = self._previous_mirrors(doc, 1)
        if not previous:
            return None
        reason = patterns.visual_shift_reason(previous[0], doc)
        if reason is None:
            return None

        now = self._ctx.now_ms()
        overlay = await create_record(self._ctx, m.ACTIVE_OVERLAYS, doc["userId"], {
            "type": "auto_aura_update",
            "properties": aura_properties(
                doc.get("moodScore", 50),
                doc.get("stressIndex", 50),
                doc.get("energyLevel") or 50,
            ),
            "triggerReason": reason,
            "animationDuration": AUTO_AURA_ANIMATION_MS,
            "expiresAt": now + AUTO_AURA_TTL_MS,
        })
        logger.info("Auto-updated aura for user %s due to %s", doc["userId"], reason)
        return overlay

    # ------------------------------------------------------------------
    # Life events
    # ------------------------------------------------------------------

    async def detect_life_event_for_user(
        self, user_id: str, today: date
    ) -> dict[str, Any] | None:
        day_key = today.isoformat()
        if self._ctx.store.exists(m.LIFE_EVENTS, m.daily_key(user_id, day_key)):
            return None

        since = (today - timedelta(days=patterns.LIFE_EVENT_WINDOW_DAYS)).isoformat()
        mirrors = self._ctx.store.query(
            m.COGNITIVE_MIRROR,
            where=[("userId", "==", user_id), ("date", ">=", since)],
            order_by="date",
        )
        event = patterns.detect_life_event(mirrors)
        if event is None:
            return None

        doc = event.to_document(day_key)
        doc["date"] = day_key
        record = await write_daily_record(self._ctx, m.LIFE_EVENTS, user_id, day_key, doc)
        logger.info(
            "Life event for user %s: %s (significance %.1f)",
            user_id, event.event_type, event.significance,
        )
        await queue_notification(
            self._ctx,
            user_id,
            "life_event",
            text("notifications.life_event_body", description=event.description),
            metadata={"lifeEventId": record["id"], "eventType": event.event_type},
        )
        return record

    async def run_life_events(self, today: date | None = None) -> JobResult:
        today = today or self._ctx.today()

        async def _task(user: dict[str, Any]) -> bool:
            return await self.detect_life_event_for_user(user["id"], today) is not None

        return await for_each_user(self._ctx, "life_events", _task)
