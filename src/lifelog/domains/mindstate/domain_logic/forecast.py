"""Next-day mood forecast from CognitiveMirror history."""

from __future__ import annotations

from datetime import date
from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.numeric import clamp, mean
from lifelog.domains.mindstate.domain_logic.templates import text

MIN_HISTORY = 7
HISTORY_DAYS = 30
TREND_WINDOW = 7
SEASONAL_SAMPLES = 4
TREND_THRESHOLD = 5.0


def mood_slope(recent_desc: list[dict[str, Any]]) -> float:
    """Average daily mood change across the trend window (newest first)."""
    first = recent_desc[0].get("moodScore", 50)
    last = recent_desc[TREND_WINDOW - 1].get("moodScore", 50)
    return (first - last) / (TREND_WINDOW - 1)


def seasonal_estimate(
    history_desc: list[dict[str, Any]],
    target: date,
) -> tuple[str, float]:
    """Classify the target weekday's mood from past same-weekday records.

    Returns:
        ``(predicted_mood, confidence)``; stable/0.6 without enough samples.
    """
    same_day = [
        h for h in history_desc
        if date.fromisoformat(h["date"]).weekday() == target.weekday()
    ]
    if len(same_day) > 2:
        avg = mean([h.get("moodScore", 50) for h in same_day[:SEASONAL_SAMPLES]])
        if avg > 70:
            return m.POSITIVE, 0.75
        if avg < 40:
            return m.CHALLENGING, 0.7
    return m.STABLE_MOOD, 0.6


def apply_trend(predicted: str, confidence: float, slope: float) -> tuple[str, float]:
    if slope > TREND_THRESHOLD:
        predicted = m.STABLE_MOOD if predicted == m.CHALLENGING else m.POSITIVE
        confidence += 0.1
    elif slope < -TREND_THRESHOLD:
        predicted = m.STABLE_MOOD if predicted == m.POSITIVE else m.CHALLENGING
        confidence += 0.1
    return predicted, round(clamp(confidence, 0.0, 1.0), 2)


def forecast_from_history(
    history_desc: list[dict[str, Any]],
    target: date,
) -> m.EmotionForecast | None:
    """Predict ``target``'s mood from mirrors ordered newest first.

    Returns ``None`` with fewer than seven records.
    """
    if len(history_desc) < MIN_HISTORY:
        return None

    recent = history_desc[:TREND_WINDOW]
    avg_recent_stress = mean([h.get("stressIndex", 50) for h in recent])
    slope = mood_slope(recent)

    predicted, confidence = seasonal_estimate(history_desc, target)
    predicted, confidence = apply_trend(predicted, confidence, slope)

    factors: list[str] = []
    if avg_recent_stress > 60:
        factors.append(text("forecast.factors.elevated_stress"))
    if slope > TREND_THRESHOLD:
        factors.append(text("forecast.factors.improving_trend"))
    elif slope < -TREND_THRESHOLD:
        factors.append(text("forecast.factors.declining_trend"))

    actions = list(text("forecast.actions").get(predicted, []))

    return m.EmotionForecast(
        date=target.isoformat(),
        predicted_mood=predicted,
        confidence=confidence,
        influencing_factors=factors,
        recommended_actions=actions,
    )
