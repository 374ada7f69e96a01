"""Pattern detectors over daily records.

Rhythm scoring, behavioural recovery, multi-week life events, and the
single-day mood-shift checks that drive passive insights and aura updates.
All functions are pure; the jobs module handles storage.
"""

from __future__ import annotations

from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.numeric import clamp, mean, round_half_up

# ---------------------------------------------------------------------------
# Rhythm score
# ---------------------------------------------------------------------------


def compute_rhythm_score(
    rhythm: dict[str, Any],
    wellness_index: float | None = None,
) -> m.RhythmScore:
    """Weighted rhythm score around a 50 baseline.

    Sleep weighs 40%, movement and wellness 30% each. Without a wellness
    index its term contributes nothing. Score thresholds override the raw
    rhythm state.
    """
    sleep_hours = rhythm.get("sleepHours", 8)
    movement = rhythm.get("movementScore", 0)
    sleep_score = min(100.0, sleep_hours * 12.5)

    score = 50.0
    score += (sleep_score - 50) * 0.4
    score += (movement - 50) * 0.3
    if wellness_index is not None:
        score += (wellness_index - 50) * 0.3
    score = clamp(score, 0, 100)

    if score > 75:
        classification = m.STABLE
    elif score < 40:
        classification = m.OFF_RHYTHM
    elif movement > 80 and sleep_hours < 7:
        classification = m.OVERSTIMULATED
    else:
        classification = rhythm.get("rhythmState", m.STABLE)

    if score > 60:
        trend = "improving"
    elif score < 40:
        trend = "declining"
    else:
        trend = "stable"

    return m.RhythmScore(
        score=round_half_up(score),
        classification=classification,
        rhythm_factors={"sleep": sleep_score, "movement": movement, "consistency": 50},
        stability_trend=trend,
    )


# ---------------------------------------------------------------------------
# Behavioural recovery
# ---------------------------------------------------------------------------

RECOVERY_MIN_RECORDS = 3
RECOVERY_MIN_IMPROVEMENT = 30
RECOVERY_MAX_TROUGH = 20


def _combined(record: dict[str, Any]) -> float:
    return record.get("moodScore", 0) - record.get("stressIndex", 0)


def detect_recovery(mirrors_asc: list[dict[str, Any]]) -> m.Recovery | None:
    """Detect a rebound from the window's trough to its last record.

    ``mirrors_asc`` holds the trailing seven days of mirrors, oldest first,
    ending with the record just created. The trough is the first record with
    the lowest ``mood - stress``; a recovery needs an improvement above 30
    and a trough below 20.
    """
    if len(mirrors_asc) < RECOVERY_MIN_RECORDS:
        return None

    scores = [_combined(r) for r in mirrors_asc]
    trough_idx = min(range(len(scores)), key=lambda i: scores[i])
    last_idx = len(scores) - 1
    if trough_idx == last_idx:
        return None

    trough = scores[trough_idx]
    improvement = scores[last_idx] - trough
    if not (improvement > RECOVERY_MIN_IMPROVEMENT and trough < RECOVERY_MAX_TROUGH):
        return None

    low, current = mirrors_asc[trough_idx], mirrors_asc[last_idx]
    mood_improvement = current.get("moodScore", 0) - low.get("moodScore", 0)
    stress_reduction = low.get("stressIndex", 0) - current.get("stressIndex", 0)
    if mood_improvement > stress_reduction:
        recovery_type, trigger = "emotional", "mood_rebound"
    else:
        recovery_type, trigger = "stress_relief", "stress_reduction"

    return m.Recovery(
        start_date=low.get("date", ""),
        improvement_score=round_half_up(improvement),
        recovery_type=recovery_type,
        trigger_event=trigger,
        duration_days=last_idx - trough_idx,
    )


# ---------------------------------------------------------------------------
# Life events
# ---------------------------------------------------------------------------

LIFE_EVENT_MIN_RECORDS = 14
LIFE_EVENT_WINDOW_DAYS = 28


def classify_life_event(mood_shift: float, stress_shift: float) -> str | None:
    """Categorise a multi-week shift, or ``None`` if it is not significant.

    Categories are checked in a fixed priority order; the first match wins.
    """
    if not (abs(mood_shift) > 25 or abs(stress_shift) > 20):
        return None
    if mood_shift > 25 and stress_shift < -15:
        return m.POSITIVE_LIFE_CHANGE
    if mood_shift < -25 and stress_shift > 15:
        return m.CHALLENGING_LIFE_EVENT
    if abs(stress_shift) > 25:
        return m.MAJOR_STRESS_SHIFT
    if abs(mood_shift) > 30:
        return m.SIGNIFICANT_MOOD_CHANGE
    return m.UNKNOWN_TRANSITION


def detect_life_event(mirrors_asc: list[dict[str, Any]]) -> m.LifeEvent | None:
    """Compare first-half and second-half averages of four weeks of mirrors."""
    if len(mirrors_asc) < LIFE_EVENT_MIN_RECORDS:
        return None

    half = len(mirrors_asc) // 2
    first, second = mirrors_asc[:half], mirrors_asc[half:]
    mood_shift = (
        mean([r.get("moodScore", 0) for r in second])
        - mean([r.get("moodScore", 0) for r in first])
    )
    stress_shift = (
        mean([r.get("stressIndex", 0) for r in second])
        - mean([r.get("stressIndex", 0) for r in first])
    )

    event_type = classify_life_event(mood_shift, stress_shift)
    if event_type is None:
        return None
    return m.LifeEvent(
        event_type=event_type,
        significance=max(abs(mood_shift), abs(stress_shift)),
        mood_shift=mood_shift,
        stress_shift=stress_shift,
    )


# ---------------------------------------------------------------------------
# Single-day mood change
# ---------------------------------------------------------------------------

MOOD_SHIFT_THRESHOLD = 20
MOOD_SHIFT_MEDIUM = 30
AURA_MOOD_THRESHOLD = 15
AURA_STRESS_THRESHOLD = 20


def detect_mood_shift(
    previous_desc: list[dict[str, Any]],
    current: dict[str, Any],
) -> m.MoodShift | None:
    """Compare today's mood with the mean of up to three previous days."""
    if not previous_desc:
        return None
    baseline = mean([r.get("moodScore", 50) for r in previous_desc])
    change = current.get("moodScore", 50) - baseline
    if abs(change) <= MOOD_SHIFT_THRESHOLD:
        return None
    return m.MoodShift(
        shift_type="mood_improvement" if change > 0 else "mood_decline",
        magnitude=abs(change),
        urgency="medium" if abs(change) > MOOD_SHIFT_MEDIUM else "low",
    )


def visual_shift_reason(previous: dict[str, Any], current: dict[str, Any]) -> str | None:
    """Why the aura should refresh after a new mirror, or ``None``."""
    mood_change = abs(current.get("moodScore", 50) - previous.get("moodScore", 50))
    stress_change = abs(current.get("stressIndex", 50) - previous.get("stressIndex", 50))
    if mood_change > AURA_MOOD_THRESHOLD:
        return "mood_change"
    if stress_change > AURA_STRESS_THRESHOLD:
        return "stress_change"
    return None
