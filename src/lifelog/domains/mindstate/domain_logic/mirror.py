"""Cognitive Mirror composition.

Combines a day's voice sentiment, device activity, shadow-cognition friction
and rhythm state into one composite record.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.numeric import clamp, round_half_up
from lifelog.domains.mindstate.domain_logic.templates import text

BASELINE_MOOD = 50.0
BASELINE_STRESS = 30.0


@runtime_checkable
class CompositeScorer(Protocol):
    """Maps daily aggregates to mood and stress on a 0-100 scale."""

    def mood(self, sentiments: list[float]) -> float:
        ...

    def stress(
        self,
        notification_count: float,
        screen_time_minutes: float,
        friction_taps: float,
    ) -> float:
        ...


class HeuristicCompositeScorer:
    """Linear heuristics around fixed baselines.

    * mood: ``50 + mean(sentiment) * 50``, clamped to [0, 100]
    * stress: ``30`` plus three independently capped terms, capped at 100
    """

    def mood(self, sentiments: list[float]) -> float:
        if not sentiments:
            return BASELINE_MOOD
        avg = sum(sentiments) / len(sentiments)
        return clamp(BASELINE_MOOD + avg * 50, 0, 100)

    def stress(
        self,
        notification_count: float,
        screen_time_minutes: float,
        friction_taps: float,
    ) -> float:
        notification_term = min(40.0, notification_count * 2)
        screen_term = min(30.0, screen_time_minutes / 10)
        friction_term = min(30.0, friction_taps * 3)
        return clamp(BASELINE_STRESS + notification_term + screen_term + friction_term, 0, 100)


def highlight_insights(mood: float, stress: float, rhythm_state: str | None) -> list[str]:
    """At most one insight per band, in mood, stress, rhythm order."""
    insights: list[str] = []

    if mood > 70:
        insights.append(text("mirror.mood_high"))
    elif mood < 30:
        insights.append(text("mirror.mood_low"))

    if stress > 70:
        insights.append(text("mirror.stress_high"))
    elif stress < 30:
        insights.append(text("mirror.stress_low"))

    if rhythm_state == m.STABLE:
        insights.append(text("mirror.rhythm_stable"))
    elif rhythm_state == m.OFF_RHYTHM:
        insights.append(text("mirror.rhythm_off"))

    return insights


def build_mirror(
    sentiments: list[float],
    device: dict[str, Any] | None,
    shadow: dict[str, Any] | None,
    rhythm: dict[str, Any] | None,
    scorer: CompositeScorer | None = None,
) -> m.CognitiveMirror:
    """Compose one day's CognitiveMirror.

    Args:
        sentiments: One score in [-1, 1] per voice event of the day.
        device: The day's DeviceSignal document, if any.
        shadow: The day's ShadowCognition document, if any.
        rhythm: The day's RhythmMap document, if any.
        scorer: Mood/stress model; the linear heuristic by default.
    """
    scorer = scorer or HeuristicCompositeScorer()
    device = device or {}
    shadow = shadow or {}

    mood = scorer.mood(sentiments)
    stress = scorer.stress(
        device.get("notificationCount") or 0,
        device.get("screenTimeMinutes") or 0,
        shadow.get("frictionTaps") or 0,
    )
    stress_index = round_half_up(stress)
    energy = 100 - stress_index

    return m.CognitiveMirror(
        mood_score=round_half_up(mood),
        stress_index=stress_index,
        energy_level=energy,
        social_connection=min(100, len(sentiments) * 10),
        purpose_alignment=round_half_up((mood + (100 - stress)) / 2),
        highlight_insights=highlight_insights(
            mood, stress, (rhythm or {}).get("rhythmState")
        ),
        voice_event_count=len(sentiments),
    )
