"""Location tagging: attach the recent dominant emotion to a GPS event."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.base import JobContext, create_record

logger = logging.getLogger(__name__)

EMOTION_WINDOW_MS = 30 * 60 * 1000
EMOTION_SAMPLE = 5


def dominant_emotion(voice_events: list[dict[str, Any]]) -> str:
    """Most frequent ``payload.emotion`` among the events, ``neutral`` if none."""
    emotions = [
        (e.get("payload") or {}).get("emotion") for e in voice_events
    ]
    counts = Counter(e for e in emotions if e)
    if not counts:
        return "neutral"
    return counts.most_common(1)[0][0]


class LocationTagger:
    """Trigger on ``signalEvents``: tags location events with emotional context."""

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    async def on_signal_event(self, doc: dict[str, Any]) -> dict[str, Any] | None:
        if doc.get("eventType") != m.LOCATION:
            return None

        user_id = doc["userId"]
        recent = self._ctx.store.query(
            m.SIGNAL_EVENTS,
            where=[
                ("userId", "==", user_id),
                ("eventType", "==", m.VOICE),
                ("timestamp", ">=", self._ctx.now_ms() - EMOTION_WINDOW_MS),
            ],
            order_by="timestamp",
            descending=True,
            limit=EMOTION_SAMPLE,
        )
        payload = doc.get("payload") or {}
        coords = payload.get("coords") or {}
        record = await create_record(self._ctx, m.LOCATION_EVENTS, user_id, {
            "signalEventId": doc.get("id"),
            "locationName": payload.get("placeId") or "Unknown Location",
            "lat": coords.get("lat"),
            "lng": coords.get("lng"),
            "accuracy": coords.get("accuracy"),
            "taggedEmotion": dominant_emotion(recent),
            "timestamp": doc.get("timestamp"),
            "visitType": payload.get("visitType"),
        })
        logger.info(
            "Location event for user %s at %s tagged %s",
            user_id, record["locationName"], record["taggedEmotion"],
        )
        return record
