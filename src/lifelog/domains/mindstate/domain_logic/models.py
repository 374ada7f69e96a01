"""Mind-state record models and domain constants.

Records are stored as camelCase JSON documents; each dataclass here renders
its stored shape with ``to_document()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lifelog.domains.mindstate.domain_logic.numeric import round_half_up


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

SIGNAL_EVENTS = "signalEvents"
RHYTHM_MAP = "rhythmMap"
HEALTH_ECHO = "healthEcho"
DEVICE_SIGNALS = "deviceSignals"
SHADOW_COGNITION = "shadowCognition"
OBSCURA_PATTERNS = "obscuraPatterns"
COGNITIVE_MIRROR = "cognitiveMirror"
EMOTION_FORECAST = "emotionForecast"
RHYTHM_SCORES = "rhythmScores"
RECOVERY_ENGINE = "recoveryEngine"
LIFE_EVENTS = "lifeEvents"
PASSIVE_INSIGHTS = "passiveInsights"
ACTIVE_OVERLAYS = "activeOverlays"
NARRATOR_INSIGHTS = "narratorInsights"
LOCATION_EVENTS = "locationEvents"
VOICE_PROFILES = "voiceProfiles"
USERS = "users"
DEVICE_TOKENS = "deviceTokens"
NOTIFICATION_QUEUE = "notificationQueue"
NOTIFICATIONS = "notifications"

# ---------------------------------------------------------------------------
# Raw signal event types
# ---------------------------------------------------------------------------

MOTION_EVENT = "motion_event"
NOTIFICATION_RECEIVED = "notification_received"
SCREEN_ON = "screen_on"
APP_OPENED = "app_opened"
SLEEP_START = "sleep_start"
SLEEP_END = "sleep_end"
HEART_RATE = "heart_rate"
CAMERA_CAPTURE = "camera_capture"
VOICE = "voice"
LOCATION = "location"

EVENT_TYPES = frozenset({
    MOTION_EVENT,
    NOTIFICATION_RECEIVED,
    SCREEN_ON,
    APP_OPENED,
    SLEEP_START,
    SLEEP_END,
    HEART_RATE,
    CAMERA_CAPTURE,
    VOICE,
    LOCATION,
})

# Rhythm states
STABLE = "Stable"
OFF_RHYTHM = "Off-Rhythm"
OVERSTIMULATED = "Overstimulated"

# Forecast moods
POSITIVE = "positive"
STABLE_MOOD = "stable"
CHALLENGING = "challenging"

# Life event categories, in classification priority order
POSITIVE_LIFE_CHANGE = "positive_life_change"
CHALLENGING_LIFE_EVENT = "challenging_life_event"
MAJOR_STRESS_SHIFT = "major_stress_shift"
SIGNIFICANT_MOOD_CHANGE = "significant_mood_change"
UNKNOWN_TRANSITION = "unknown_transition"


def daily_key(user_id: str, date: str) -> str:
    """Deterministic id for a per-user, per-day record."""
    return f"{user_id}_{date}"


# ---------------------------------------------------------------------------
# Daily aggregates
# ---------------------------------------------------------------------------

@dataclass
class RhythmMap:
    sleep_hours: float
    movement_score: float
    rhythm_state: str
    bed_time: int | None = None     # epoch ms of sleep_start, if any
    wake_time: int | None = None    # epoch ms of sleep_end, if any
    deep_sleep_minutes: float = 0.0
    restfulness_score: float = 0.0

    def to_document(self) -> dict[str, Any]:
        return {
            "sleepHours": self.sleep_hours,
            "movementScore": self.movement_score,
            "rhythmState": self.rhythm_state,
            "bedTime": self.bed_time,
            "wakeTime": self.wake_time,
            "deepSleepMinutes": self.deep_sleep_minutes,
            "restfulnessScore": self.restfulness_score,
        }


@dataclass
class HealthEcho:
    heart_rate_avg: float
    movement_score: float
    wellness_index: float
    steps_count: int
    active_minutes: float
    stress_index: int

    def to_document(self) -> dict[str, Any]:
        return {
            "heartRateAvg": self.heart_rate_avg,
            "movementScore": self.movement_score,
            "wellnessIndex": self.wellness_index,
            "stepsCount": self.steps_count,
            "activeMinutes": self.active_minutes,
            "stressIndex": self.stress_index,
        }


@dataclass
class DeviceSignal:
    notification_count: int
    screen_on_count: int
    screen_time_minutes: float
    app_switches: int
    dnd_state: bool = False

    def to_document(self) -> dict[str, Any]:
        return {
            "notificationCount": self.notification_count,
            "screenOnCount": self.screen_on_count,
            "screenTimeMinutes": self.screen_time_minutes,
            "appSwitches": self.app_switches,
            "dndState": self.dnd_state,
        }


@dataclass
class ShadowCognition:
    friction_taps: int
    bedtime_scroll: float
    compulsive_open_count: int
    hesitation_taps: int
    avoidance_behaviors: int
    anxiety_motion: int = 0

    def to_document(self) -> dict[str, Any]:
        return {
            "frictionTaps": self.friction_taps,
            "bedtimeScroll": self.bedtime_scroll,
            "compulsiveOpenCount": self.compulsive_open_count,
            "hesitationTaps": self.hesitation_taps,
            "avoidanceBehaviors": self.avoidance_behaviors,
            "anxietyMotion": self.anxiety_motion,
        }


@dataclass
class ObscuraPatterns:
    face_tilt_score: int
    stillness_index: int
    cancel_behavior_count: int
    posture_shifts: int
    micro_expression_changes: float
    environmental_stillness: int

    def to_document(self) -> dict[str, Any]:
        return {
            "faceTiltScore": self.face_tilt_score,
            "stillnessIndex": self.stillness_index,
            "cancelBehaviorCount": self.cancel_behavior_count,
            "postureShifts": self.posture_shifts,
            "microExpressionChanges": self.micro_expression_changes,
            "environmentalStillness": self.environmental_stillness,
        }


# ---------------------------------------------------------------------------
# Composites and predictions
# ---------------------------------------------------------------------------

@dataclass
class CognitiveMirror:
    mood_score: int
    stress_index: int
    energy_level: int
    social_connection: int
    purpose_alignment: int
    highlight_insights: list[str] = field(default_factory=list)
    voice_event_count: int = 0

    def to_document(self) -> dict[str, Any]:
        return {
            "moodScore": self.mood_score,
            "stressIndex": self.stress_index,
            "energyLevel": self.energy_level,
            "socialConnection": self.social_connection,
            "purposeAlignment": self.purpose_alignment,
            "highlightInsights": list(self.highlight_insights),
            "voiceEventCount": self.voice_event_count,
        }


@dataclass
class EmotionForecast:
    date: str
    predicted_mood: str
    confidence: float
    influencing_factors: list[str] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)
    prediction_horizon_days: int = 1

    def to_document(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "predictedMood": self.predicted_mood,
            "confidence": self.confidence,
            "predictionHorizonDays": self.prediction_horizon_days,
            "influencingFactors": list(self.influencing_factors),
            "recommendedActions": list(self.recommended_actions),
        }


@dataclass
class RhythmScore:
    score: int
    classification: str
    rhythm_factors: dict[str, float]
    stability_trend: str

    def to_document(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "classification": self.classification,
            "rhythmFactors": dict(self.rhythm_factors),
            "stabilityTrend": self.stability_trend,
        }


@dataclass
class Recovery:
    start_date: str
    improvement_score: int
    recovery_type: str      # 'emotional' | 'stress_relief'
    trigger_event: str      # 'mood_rebound' | 'stress_reduction'
    duration_days: int

    def to_document(self) -> dict[str, Any]:
        return {
            "startDate": self.start_date,
            "reboundDetected": True,
            "improvementScore": self.improvement_score,
            "recoveryType": self.recovery_type,
            "triggerEvent": self.trigger_event,
            "durationDays": self.duration_days,
        }


@dataclass
class LifeEvent:
    event_type: str
    significance: float
    mood_shift: float
    stress_shift: float

    @property
    def description(self) -> str:
        return (
            f"Detected {self.event_type.replace('_', ' ')} "
            f"with {self.significance:.1f} point shift"
        )

    def to_document(self, detected_on: str) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "detectedOn": detected_on,
            "metricsInvolved": ["mood", "stress"],
            "significance": self.significance,
            "correlatedChanges": {
                "moodShift": round_half_up(self.mood_shift),
                "stressShift": round_half_up(self.stress_shift),
            },
            "eventDescription": self.description,
        }


@dataclass
class MoodShift:
    """A significant change of today's mood against recent days."""

    shift_type: str         # 'mood_improvement' | 'mood_decline'
    magnitude: float
    urgency: str            # 'low' | 'medium'


@dataclass
class EngagementPattern:
    """A recent-activity pattern that warrants a gentle passive insight."""

    type: str
    trigger: str
    suggestion: str
    urgency: str
    delivery_method: str
    delay_minutes: int
