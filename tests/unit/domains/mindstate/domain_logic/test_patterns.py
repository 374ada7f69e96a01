"""Tests for rhythm scoring, recovery, life events and mood shifts."""

from __future__ import annotations

import pytest

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.patterns import (
    classify_life_event,
    compute_rhythm_score,
    detect_life_event,
    detect_mood_shift,
    detect_recovery,
    visual_shift_reason,
)


def _mirror(day: str, mood: float, stress: float) -> dict:
    return {"date": day, "moodScore": mood, "stressIndex": stress}


class TestRhythmScore:
    def test_stable_with_wellness(self):
        score = compute_rhythm_score(
            {"sleepHours": 8, "movementScore": 50, "rhythmState": m.OFF_RHYTHM}, 75
        )
        assert score.score == 78
        assert score.classification == m.STABLE
        assert score.stability_trend == "improving"
        assert score.rhythm_factors == {"sleep": 100, "movement": 50, "consistency": 50}

    def test_off_rhythm_without_wellness(self):
        score = compute_rhythm_score({"sleepHours": 4, "movementScore": 10})
        assert score.score == 38
        assert score.classification == m.OFF_RHYTHM
        assert score.stability_trend == "declining"

    def test_overstimulated(self):
        score = compute_rhythm_score({"sleepHours": 6.5, "movementScore": 90})
        assert score.score == 75  # 74.5 rounds half up
        assert score.classification == m.OVERSTIMULATED

    def test_mid_range_keeps_rhythm_state(self):
        score = compute_rhythm_score(
            {"sleepHours": 8, "movementScore": 20, "rhythmState": m.OFF_RHYTHM}
        )
        assert score.score == 61
        assert score.classification == m.OFF_RHYTHM
        assert score.stability_trend == "improving"

    def test_clamped(self):
        score = compute_rhythm_score({"sleepHours": 12, "movementScore": 100}, 100)
        assert score.score == 100


class TestRecovery:
    def test_detected_at_boundary(self):
        window = [
            _mirror("2026-03-04", 50, 31),  # 19
            _mirror("2026-03-05", 60, 20),
            _mirror("2026-03-06", 70, 20),  # 50
        ]
        recovery = detect_recovery(window)
        assert recovery.improvement_score == 31
        assert recovery.start_date == "2026-03-04"
        assert recovery.duration_days == 2
        assert recovery.recovery_type == "emotional"
        assert recovery.trigger_event == "mood_rebound"

    def test_trough_not_low_enough(self):
        window = [
            _mirror("2026-03-04", 52, 31),  # 21
            _mirror("2026-03-05", 60, 20),
            _mirror("2026-03-06", 72, 20),  # 52
        ]
        assert detect_recovery(window) is None

    def test_improvement_must_exceed_thirty(self):
        window = [
            _mirror("2026-03-04", 40, 30),  # 10
            _mirror("2026-03-05", 50, 20),
            _mirror("2026-03-06", 60, 20),  # 40
        ]
        assert detect_recovery(window) is None

    def test_stress_relief(self):
        window = [
            _mirror("2026-03-04", 40, 80),  # -40
            _mirror("2026-03-05", 40, 60),
            _mirror("2026-03-06", 45, 20),  # 25
        ]
        recovery = detect_recovery(window)
        assert recovery.recovery_type == "stress_relief"
        assert recovery.trigger_event == "stress_reduction"

    def test_trough_is_latest(self):
        window = [_mirror("a", 80, 10), _mirror("b", 70, 10), _mirror("c", 0, 90)]
        assert detect_recovery(window) is None

    def test_needs_three_records(self):
        assert detect_recovery([_mirror("a", 0, 90), _mirror("b", 90, 0)]) is None

    def test_first_trough_wins_ties(self):
        window = [
            _mirror("2026-03-01", 10, 10),
            _mirror("2026-03-02", 10, 10),
            _mirror("2026-03-03", 80, 10),
        ]
        recovery = detect_recovery(window)
        assert recovery.start_date == "2026-03-01"
        assert recovery.duration_days == 2


class TestLifeEvents:
    @pytest.mark.parametrize("mood,stress,expected", [
        (26, -16, m.POSITIVE_LIFE_CHANGE),
        (-26, 16, m.CHALLENGING_LIFE_EVENT),
        (26, 26, m.MAJOR_STRESS_SHIFT),
        (0, -26, m.MAJOR_STRESS_SHIFT),
        (31, 0, m.SIGNIFICANT_MOOD_CHANGE),
        (-31, 10, m.SIGNIFICANT_MOOD_CHANGE),
        (26, 16, m.UNKNOWN_TRANSITION),
        (26, -15, m.UNKNOWN_TRANSITION),
        (0, 21, m.UNKNOWN_TRANSITION),
        (25, 20, None),
        (-25, -20, None),
    ])
    def test_classification(self, mood, stress, expected):
        assert classify_life_event(mood, stress) == expected

    def test_detect_from_halves(self):
        mirrors = [_mirror(f"d{i}", 40, 50) for i in range(7)]
        mirrors += [_mirror(f"d{i}", 70, 30) for i in range(7, 14)]
        event = detect_life_event(mirrors)

        assert event.event_type == m.POSITIVE_LIFE_CHANGE
        assert event.significance == 30
        assert event.description == "Detected positive life change with 30.0 point shift"
        doc = event.to_document("2026-03-10")
        assert doc["correlatedChanges"] == {"moodShift": 30, "stressShift": -20}
        assert doc["detectedOn"] == "2026-03-10"
        assert doc["metricsInvolved"] == ["mood", "stress"]

    def test_odd_count_puts_extra_record_in_second_half(self):
        mirrors = [_mirror(f"d{i}", 50, 50) for i in range(7)]
        mirrors += [_mirror(f"d{i}", 90, 50) for i in range(7, 15)]
        event = detect_life_event(mirrors)
        assert event.mood_shift == 40
        assert event.event_type == m.SIGNIFICANT_MOOD_CHANGE

    def test_needs_two_weeks(self):
        mirrors = [_mirror(f"d{i}", 0 if i < 7 else 100, 50) for i in range(13)]
        assert detect_life_event(mirrors) is None

    def test_no_significant_shift(self):
        mirrors = [_mirror(f"d{i}", 50, 50) for i in range(20)]
        assert detect_life_event(mirrors) is None


class TestMoodShift:
    @pytest.mark.parametrize("current,shift_type,urgency", [
        (71, "mood_improvement", "low"),
        (81, "mood_improvement", "medium"),
        (29, "mood_decline", "low"),
        (20, "mood_decline", "low"),
        (19, "mood_decline", "medium"),
    ])
    def test_detected(self, current, shift_type, urgency):
        previous = [{"moodScore": 50}] * 3
        shift = detect_mood_shift(previous, {"moodScore": current})
        assert shift.shift_type == shift_type
        assert shift.urgency == urgency
        assert shift.magnitude == abs(current - 50)

    def test_within_threshold(self):
        assert detect_mood_shift([{"moodScore": 50}], {"moodScore": 70}) is None

    def test_no_history(self):
        assert detect_mood_shift([], {"moodScore": 100}) is None


class TestVisualShift:
    def test_mood_change_first(self):
        assert visual_shift_reason(
            {"moodScore": 50, "stressIndex": 20}, {"moodScore": 66, "stressIndex": 80}
        ) == "mood_change"

    def test_stress_change(self):
        assert visual_shift_reason(
            {"moodScore": 50, "stressIndex": 20}, {"moodScore": 65, "stressIndex": 41}
        ) == "stress_change"

    def test_no_change(self):
        assert visual_shift_reason(
            {"moodScore": 50, "stressIndex": 20}, {"moodScore": 35, "stressIndex": 40}
        ) is None
