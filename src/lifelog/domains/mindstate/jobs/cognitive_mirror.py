"""Cognitive Mirror Builder job."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.mirror import CompositeScorer, build_mirror
from lifelog.domains.mindstate.domain_logic.sentiment import (
    KeywordSentimentScorer,
    SentimentScorer,
)
from lifelog.domains.mindstate.jobs.base import (
    JobContext,
    JobResult,
    day_window,
    for_each_user,
    write_daily_record,
)

logger = logging.getLogger(__name__)


def voice_sentiment(event: dict[str, Any], scorer: SentimentScorer) -> float:
    """Stored sentiment of a voice event, scoring the transcript if absent."""
    payload = event.get("payload") or {}
    stored = payload.get("sentimentScore")
    if stored is not None:
        return float(stored)
    return scorer.score(payload.get("transcript") or "").score


class CognitiveMirrorBuilder:
    """Builds one CognitiveMirror per user per day.

    A user is skipped only when the day has no voice events and no
    DeviceSignal, ShadowCognition or RhythmMap record. The four inputs are
    fetched together through the ``fetch_*`` coroutines.
    """

    def __init__(
        self,
        ctx: JobContext,
        sentiment_scorer: SentimentScorer | None = None,
        composite_scorer: CompositeScorer | None = None,
    ) -> None:
        self._ctx = ctx
        self._sentiment = sentiment_scorer or KeywordSentimentScorer()
        self._composite = composite_scorer

    async def fetch_voice_events(self, user_id: str, day: date) -> list[dict[str, Any]]:
        start_ms, end_ms = day_window(day, self._ctx.tz)
        return self._ctx.store.query(
            m.SIGNAL_EVENTS,
            where=[
                ("userId", "==", user_id),
                ("eventType", "==", m.VOICE),
                ("timestamp", ">=", start_ms),
                ("timestamp", "<", end_ms),
            ],
        )

    async def fetch_daily(self, collection: str, key: str) -> dict[str, Any] | None:
        return self._ctx.store.get(collection, key)

    async def build_for_user(self, user_id: str, day: date) -> dict[str, Any] | None:
        day_key = day.isoformat()
        key = m.daily_key(user_id, day_key)
        voice, device, shadow, rhythm = await asyncio.gather(
            self.fetch_voice_events(user_id, day),
            self.fetch_daily(m.DEVICE_SIGNALS, key),
            self.fetch_daily(m.SHADOW_COGNITION, key),
            self.fetch_daily(m.RHYTHM_MAP, key),
        )

        if not voice and device is None and shadow is None and rhythm is None:
            return None

        sentiments = [voice_sentiment(e, self._sentiment) for e in voice]
        mirror = build_mirror(sentiments, device, shadow, rhythm, self._composite)
        doc = await write_daily_record(
            self._ctx, m.COGNITIVE_MIRROR, user_id, day_key, mirror.to_document()
        )
        logger.info(
            "Cognitive mirror for user %s on %s: mood %d, stress %d",
            user_id, day_key, mirror.mood_score, mirror.stress_index,
        )
        return doc

    async def run(self, day: date | None = None) -> JobResult:
        day = day or self._ctx.yesterday()

        async def _task(user: dict[str, Any]) -> bool:
            return await self.build_for_user(user["id"], day) is not None

        return await for_each_user(self._ctx, "cognitive_mirror", _task)
