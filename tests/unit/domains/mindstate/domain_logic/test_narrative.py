"""Tests for narrator text, period comparison and engagement patterns."""

from __future__ import annotations

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.narrative import (
    compare_periods,
    engagement_pattern,
    mood_shift_suggestion,
    mood_trend,
    narrator_insights,
    notification_click_action,
    notification_title,
)
from lifelog.domains.mindstate.domain_logic.templates import text


def _moods(*scores: float) -> list[dict]:
    return [{"moodScore": s, "stressIndex": 40, "energyLevel": 60} for s in scores]


class TestMoodTrend:
    def test_improving(self):
        assert mood_trend(_moods(70, 60, 55)) == "improving"

    def test_declining(self):
        assert mood_trend(_moods(40, 50, 60)) == "declining"

    def test_stable_at_threshold(self):
        assert mood_trend(_moods(60, 55, 50)) == "stable"

    def test_single_record(self):
        assert mood_trend(_moods(90)) == "stable"


class TestNarratorInsights:
    def test_no_data(self):
        result = narrator_insights([], [], 3)
        assert result["message"] == text("narrator.no_data.message")
        assert result["tone"] == "encouraging"
        assert result["suggestions"] == [text("narrator.no_data.suggestion")]

    def test_improving_with_positive_forecast(self):
        result = narrator_insights(_moods(80, 60, 50), [{"predictedMood": m.POSITIVE}], 4)
        assert result["tone"] == "positive"
        assert result["message"] == (
            text("narrator.improving") + text("narrator.forecast_positive")
        ).strip()
        assert result["suggestions"] == [text("narrator.forecast_positive_suggestion")]

    def test_declining_with_challenging_forecast_and_silence(self):
        result = narrator_insights(_moods(30, 45, 60), [{"predictedMood": m.CHALLENGING}], 0)
        assert result["tone"] == "supportive"
        assert result["message"].startswith(text("narrator.declining").strip())
        assert result["suggestions"] == [
            text("narrator.declining_suggestion"),
            text("narrator.forecast_challenging_suggestion"),
            text("narrator.voice_silence"),
        ]

    def test_trend_needs_three_records(self):
        result = narrator_insights(_moods(90, 10), [], 2)
        assert result["tone"] == "empathetic"
        assert result["message"] == text("narrator.fallback")
        assert result["suggestions"] == []

    def test_only_first_forecast_counts(self):
        result = narrator_insights(
            _moods(50, 50, 50),
            [{"predictedMood": m.STABLE_MOOD}, {"predictedMood": m.POSITIVE}],
            1,
        )
        assert result["message"] == text("narrator.fallback")


class TestComparePeriods:
    def test_differences_and_insights(self):
        period1 = [{"moodScore": 40, "stressIndex": 70, "energyLevel": 30}] * 2
        period2 = [{"moodScore": 60, "stressIndex": 65, "energyLevel": 35}]
        result = compare_periods(period1, period2)

        assert result["period1"]["count"] == 2
        assert result["differences"] == {
            "moodChange": 20,
            "stressChange": -5,
            "energyChange": 5,
        }
        assert result["insights"] == [{
            "type": "mood",
            "change": 20,
            "description": "Your mood improved by 20.0 points",
        }]

    def test_stress_increase(self):
        result = compare_periods(
            [{"moodScore": 50, "stressIndex": 20}],
            [{"moodScore": 45, "stressIndex": 35.5}],
        )
        assert [i["description"] for i in result["insights"]] == [
            "Your stress levels increased by 15.5 points",
        ]

    def test_empty_periods(self):
        result = compare_periods([], [])
        assert result["period1"] == {"moodScore": 0, "stressIndex": 0, "energyLevel": 0, "count": 0}
        assert result["insights"] == []


class TestEngagementPattern:
    def test_low_mood_silence(self):
        pattern = engagement_pattern({"moodScore": 39, "stressIndex": 90}, 0, 50)
        assert pattern.type == "low_mood_silence"
        assert pattern.delay_minutes == 20
        assert pattern.urgency == "medium"

    def test_stress_overactivity(self):
        pattern = engagement_pattern({"moodScore": 39, "stressIndex": 71}, 1, 11)
        assert pattern.type == "stress_overactivity"
        assert pattern.delivery_method == "subtle_notification"
        assert pattern.delay_minutes == 45

    def test_quiet_device_use(self):
        assert engagement_pattern({"moodScore": 60, "stressIndex": 90}, 0, 10) is None

    def test_no_mirror(self):
        assert engagement_pattern(None, 0, 100) is None


class TestTextHelpers:
    def test_mood_shift_suggestions(self):
        improving = m.MoodShift("mood_improvement", 25, "low")
        declining = m.MoodShift("mood_decline", 25, "low")
        assert mood_shift_suggestion(improving) == text("mood_shift.mood_improvement")
        assert mood_shift_suggestion(declining) == text("mood_shift.mood_decline")
        assert mood_shift_suggestion(m.MoodShift("other", 1, "low")) == text("mood_shift.fallback")

    def test_notification_title(self):
        assert notification_title("milestone") == "Milestone Achieved!"
        assert notification_title("unknown") == "Lifelog Notification"

    def test_click_action(self):
        assert notification_click_action("insight") == "/insights"
        assert notification_click_action("system") == "/"
