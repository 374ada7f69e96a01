"""Tests for Cognitive Mirror composition."""

from __future__ import annotations

import pytest

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.mirror import (
    CompositeScorer,
    HeuristicCompositeScorer,
    build_mirror,
    highlight_insights,
)
from lifelog.domains.mindstate.domain_logic.templates import text


class TestHeuristicScorer:
    def test_satisfies_protocol(self):
        assert isinstance(HeuristicCompositeScorer(), CompositeScorer)

    def test_mood_baseline_without_voice(self):
        assert HeuristicCompositeScorer().mood([]) == 50

    def test_mood_clamped(self):
        scorer = HeuristicCompositeScorer()
        assert scorer.mood([1.0, 1.0]) == 100
        assert scorer.mood([-1.0]) == 0
        assert scorer.mood([0.5, -0.1]) == pytest.approx(60)

    def test_stress_baseline(self):
        assert HeuristicCompositeScorer().stress(0, 0, 0) == 30

    def test_stress_terms_are_capped(self):
        scorer = HeuristicCompositeScorer()
        assert scorer.stress(100, 0, 0) == 70           # notification term caps at 40
        assert scorer.stress(0, 1000, 0) == 60          # screen term caps at 30
        assert scorer.stress(0, 0, 50) == 60            # friction term caps at 30
        assert scorer.stress(100, 1000, 50) == 100

    def test_stress_partial_terms(self):
        assert HeuristicCompositeScorer().stress(5, 120, 2) == 30 + 10 + 12 + 6


class TestHighlightInsights:
    def test_one_per_band(self):
        insights = highlight_insights(80, 80, m.STABLE)
        assert insights == [
            text("mirror.mood_high"),
            text("mirror.stress_high"),
            text("mirror.rhythm_stable"),
        ]

    def test_low_bands(self):
        insights = highlight_insights(20, 20, m.OFF_RHYTHM)
        assert insights == [
            text("mirror.mood_low"),
            text("mirror.stress_low"),
            text("mirror.rhythm_off"),
        ]

    def test_boundaries_are_exclusive(self):
        assert highlight_insights(70, 30, m.OVERSTIMULATED) == []
        assert highlight_insights(30, 70, None) == []


class TestBuildMirror:
    def test_positive_day_without_device_data(self):
        mirror = build_mirror([1.0] * 10, None, None, None)
        assert mirror.mood_score == 100
        assert mirror.stress_index == 30
        assert mirror.energy_level == 70
        assert mirror.social_connection == 100
        assert mirror.purpose_alignment == 85
        assert mirror.voice_event_count == 10
        assert mirror.highlight_insights == [text("mirror.mood_high")]

    def test_saturated_stress(self):
        mirror = build_mirror(
            [],
            {"notificationCount": 40, "screenTimeMinutes": 600},
            {"frictionTaps": 20},
            {"rhythmState": m.OFF_RHYTHM},
        )
        assert mirror.mood_score == 50
        assert mirror.stress_index == 100
        assert mirror.energy_level == 0
        assert mirror.social_connection == 0
        assert mirror.purpose_alignment == 25
        assert text("mirror.rhythm_off") in mirror.highlight_insights

    def test_energy_complements_rounded_stress(self):
        mirror = build_mirror([], {"notificationCount": 0, "screenTimeMinutes": 25}, None, None)
        # stress 32.5 rounds half up to 33
        assert mirror.stress_index == 33
        assert mirror.energy_level == 67

    def test_social_connection_capped(self):
        assert build_mirror([0.0] * 25, None, None, None).social_connection == 100

    def test_custom_scorer(self):
        class Fixed:
            def mood(self, sentiments):
                return 42.4

            def stress(self, notification_count, screen_time_minutes, friction_taps):
                return 10.5

        mirror = build_mirror([0.3], None, None, None, scorer=Fixed())
        assert mirror.mood_score == 42
        assert mirror.stress_index == 11
        assert mirror.energy_level == 89

    def test_document_shape(self):
        doc = build_mirror([0.2], None, None, None).to_document()
        assert set(doc) == {
            "moodScore", "stressIndex", "energyLevel", "socialConnection",
            "purposeAlignment", "highlightInsights", "voiceEventCount",
        }
