"""Template-driven narrative text.

Narrator insights, period comparisons, mood-shift suggestions and the
engagement patterns behind passive insights. Strings come from the YAML
text catalog.
"""

from __future__ import annotations

from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.numeric import mean
from lifelog.domains.mindstate.domain_logic.templates import text

TREND_THRESHOLD = 5.0
COMPARISON_THRESHOLD = 10.0


def mood_trend(mirrors_desc: list[dict[str, Any]]) -> str:
    """'improving' / 'declining' / 'stable' from newest-first mirrors."""
    if len(mirrors_desc) < 2:
        return "stable"
    scores = [r.get("moodScore", 50) for r in mirrors_desc]
    slope = (scores[0] - scores[-1]) / (len(scores) - 1)
    if slope > TREND_THRESHOLD:
        return "improving"
    if slope < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def narrator_insights(
    mirrors_desc: list[dict[str, Any]],
    forecasts_asc: list[dict[str, Any]],
    voice_event_count: int,
) -> dict[str, Any]:
    """Compose the narrator's message, tone and suggestions.

    Args:
        mirrors_desc: Recent mirrors, newest first.
        forecasts_asc: Upcoming forecasts, soonest first.
        voice_event_count: Voice events in the trailing week.
    """
    if not mirrors_desc:
        return {
            "message": text("narrator.no_data.message"),
            "tone": text("narrator.no_data.tone"),
            "suggestions": [text("narrator.no_data.suggestion")],
        }

    message = ""
    tone = "empathetic"
    suggestions: list[str] = []

    if len(mirrors_desc) >= 3:
        trend = mood_trend(mirrors_desc[:3])
        if trend == "improving":
            message = text("narrator.improving")
            tone = "positive"
        elif trend == "declining":
            message = text("narrator.declining")
            tone = "supportive"
            suggestions.append(text("narrator.declining_suggestion"))

    if forecasts_asc:
        predicted = forecasts_asc[0].get("predictedMood")
        if predicted == m.CHALLENGING:
            message += text("narrator.forecast_challenging")
            suggestions.append(text("narrator.forecast_challenging_suggestion"))
        elif predicted == m.POSITIVE:
            message += text("narrator.forecast_positive")
            suggestions.append(text("narrator.forecast_positive_suggestion"))

    if voice_event_count == 0:
        suggestions.append(text("narrator.voice_silence"))

    return {
        "message": message.strip() or text("narrator.fallback"),
        "tone": tone,
        "suggestions": suggestions,
    }


def period_average(mirrors: list[dict[str, Any]]) -> dict[str, float]:
    return {
        "moodScore": mean([r.get("moodScore") or 0 for r in mirrors]),
        "stressIndex": mean([r.get("stressIndex") or 0 for r in mirrors]),
        "energyLevel": mean([r.get("energyLevel") or 0 for r in mirrors]),
        "count": len(mirrors),
    }


def compare_periods(
    period1: list[dict[str, Any]],
    period2: list[dict[str, Any]],
) -> dict[str, Any]:
    """Average both periods and describe mood/stress changes above 10 points."""
    avg1 = period_average(period1)
    avg2 = period_average(period2)
    differences = {
        "moodChange": avg2["moodScore"] - avg1["moodScore"],
        "stressChange": avg2["stressIndex"] - avg1["stressIndex"],
        "energyChange": avg2["energyLevel"] - avg1["energyLevel"],
    }

    insights: list[dict[str, Any]] = []
    mood_change = differences["moodChange"]
    if abs(mood_change) > COMPARISON_THRESHOLD:
        key = "comparison.mood_up" if mood_change > 0 else "comparison.mood_down"
        insights.append({
            "type": "mood",
            "change": mood_change,
            "description": text(key, value=abs(mood_change)),
        })
    stress_change = differences["stressChange"]
    if abs(stress_change) > COMPARISON_THRESHOLD:
        key = "comparison.stress_up" if stress_change > 0 else "comparison.stress_down"
        insights.append({
            "type": "stress",
            "change": stress_change,
            "description": text(key, value=abs(stress_change)),
        })

    return {
        "period1": avg1,
        "period2": avg2,
        "differences": differences,
        "insights": insights,
    }


def mood_shift_suggestion(shift: m.MoodShift) -> str:
    if shift.shift_type == "mood_improvement":
        return text("mood_shift.mood_improvement")
    if shift.shift_type == "mood_decline":
        return text("mood_shift.mood_decline")
    return text("mood_shift.fallback")


def engagement_pattern(
    latest_mirror: dict[str, Any] | None,
    recent_voice_count: int,
    recent_device_event_count: int,
) -> m.EngagementPattern | None:
    """Pick a gentle nudge from recent activity, if any applies.

    Low mood without recent voice activity wins over high stress with heavy
    device use.
    """
    if latest_mirror is None:
        return None

    if latest_mirror.get("moodScore", 50) < 40 and recent_voice_count == 0:
        return m.EngagementPattern(
            type="low_mood_silence",
            trigger="prolonged_low_mood_without_expression",
            suggestion=text("engagement.low_mood_silence"),
            urgency="medium",
            delivery_method="gentle_notification",
            delay_minutes=20,
        )

    if latest_mirror.get("stressIndex", 50) > 70 and recent_device_event_count > 10:
        return m.EngagementPattern(
            type="stress_overactivity",
            trigger="high_stress_with_device_overuse",
            suggestion=text("engagement.stress_overactivity"),
            urgency="low",
            delivery_method="subtle_notification",
            delay_minutes=45,
        )

    return None


def notification_title(notification_type: str) -> str:
    return text("notifications.titles").get(notification_type) or text("notifications.default_title")


def notification_click_action(notification_type: str) -> str:
    return text("notifications.click_actions").get(notification_type, "/")
