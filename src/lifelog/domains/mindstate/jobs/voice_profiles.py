"""Voice profiles: per-speaker familiarity and tone history from voice events."""

from __future__ import annotations

import logging
from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.base import JobContext

logger = logging.getLogger(__name__)

MAX_FAMILIARITY = 100
TONE_HISTORY = 10


def profile_key(user_id: str, speaker: str) -> str:
    return f"{user_id}_{speaker}"


class VoiceProfileTracker:
    """Trigger on ``signalEvents``: updates the speaker's profile per voice event.

    ``conversationCount`` goes through the store's atomic increment; the
    other fields are merged afterwards. Voice events without a
    ``speakerLabel`` are ignored.
    """

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    async def on_signal_event(self, doc: dict[str, Any]) -> dict[str, Any] | None:
        if doc.get("eventType") != m.VOICE:
            return None
        payload = doc.get("payload") or {}
        speaker = payload.get("speakerLabel")
        if not speaker:
            return None

        store = self._ctx.store
        user_id = doc["userId"]
        key = profile_key(user_id, speaker)
        now = self._ctx.now_ms()
        emotion = payload.get("emotion")
        tone = {"date": now, "dominantTone": emotion}

        existing = store.get(m.VOICE_PROFILES, key)
        count = store.increment(m.VOICE_PROFILES, key, "conversationCount")

        if existing is None:
            fields: dict[str, Any] = {
                "userId": user_id,
                "speakerName": speaker,
                "voicePrintHash": f"hash_{speaker}_{now}",
                "relationshipType": "unknown",
                "familiarityScore": 1,
                "toneEvolution": [tone],
                "createdAt": now,
            }
        else:
            fields = {
                "familiarityScore": min(
                    MAX_FAMILIARITY, (existing.get("familiarityScore") or 0) + 1
                ),
                "toneEvolution": [
                    *(existing.get("toneEvolution") or []), tone
                ][-TONE_HISTORY:],
            }
        fields["emotionalTrend"] = emotion
        fields["lastInteraction"] = now
        store.update(m.VOICE_PROFILES, key, fields)

        logger.info(
            "Voice profile %s for user %s: %d conversation(s)", speaker, user_id, int(count)
        )
        return store.get(m.VOICE_PROFILES, key)
