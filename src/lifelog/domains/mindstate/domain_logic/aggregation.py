"""Per-day aggregation of raw signal events.

Pure functions: each takes one user's events for one local day and returns
the day's record, or ``None`` when none of its input events are present.

Raw event shape::

    {"userId": "u1", "timestamp": 1767225600000, "eventType": "screen_on",
     "payload": {"eventDuration": 120000}}

Payload conventions per event type:

* ``motion_event``: ``eventDuration`` in seconds
* ``screen_on``: ``eventDuration`` in milliseconds
* ``heart_rate``: ``bpm``
* ``camera_capture``: ``cameraAngle``, ``objectTags``
* ``voice``: ``transcript``, optional ``sentimentScore`` and ``emotion``
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, tzinfo
from typing import Any, Iterable

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.numeric import mean

DEFAULT_SLEEP_HOURS = 8.0
DEFAULT_HEART_RATE = 72.0
FRICTION_WINDOW_MS = 5000

HEALTH_EVENT_TYPES = frozenset({m.MOTION_EVENT, m.SLEEP_START, m.SLEEP_END, m.HEART_RATE})
DEVICE_EVENT_TYPES = frozenset({m.NOTIFICATION_RECEIVED, m.SCREEN_ON, m.APP_OPENED})
SHADOW_EVENT_TYPES = frozenset({m.SCREEN_ON, m.APP_OPENED})
# Voice, camera and location events come from other capture pipelines and do
# not take part in tap adjacency.
TELEMETRY_EVENT_TYPES = HEALTH_EVENT_TYPES | DEVICE_EVENT_TYPES


def _payload(event: dict[str, Any]) -> dict[str, Any]:
    return event.get("payload") or {}


def _duration(event: dict[str, Any]) -> float:
    return float(_payload(event).get("eventDuration") or 0)


def partition_events(events: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Group events by ``eventType``, each group ordered by timestamp."""
    groups: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for event in sorted(events, key=lambda e: e.get("timestamp", 0)):
        groups[event.get("eventType", "")].append(event)
    return groups


def _has_any(groups: dict[str, list[dict[str, Any]]], types: frozenset[str]) -> bool:
    return any(groups.get(t) for t in types)


# ---------------------------------------------------------------------------
# Rhythm and health
# ---------------------------------------------------------------------------

def movement_score(total_motion_seconds: float) -> float:
    """Movement score in [0, 100]: one point per minute of motion."""
    return min(100.0, max(0.0, total_motion_seconds) / 60)


def classify_rhythm(sleep_hours: float, movement: float, motion_event_count: int) -> str:
    """Off-Rhythm takes precedence over Overstimulated."""
    if sleep_hours < 6 or movement < 20:
        return m.OFF_RHYTHM
    if movement > 80 and motion_event_count > 100:
        return m.OVERSTIMULATED
    return m.STABLE


def _sleep_window(groups: dict[str, list[dict[str, Any]]]) -> tuple[int | None, int | None]:
    starts = [e["timestamp"] for e in groups.get(m.SLEEP_START, [])]
    ends = [e["timestamp"] for e in groups.get(m.SLEEP_END, [])]
    return (min(starts) if starts else None), (max(ends) if ends else None)


def compute_rhythm_map(groups: dict[str, list[dict[str, Any]]]) -> m.RhythmMap | None:
    if not _has_any(groups, HEALTH_EVENT_TYPES):
        return None

    motion = groups.get(m.MOTION_EVENT, [])
    total_motion = sum(_duration(e) for e in motion)
    movement = movement_score(total_motion)

    bed, wake = _sleep_window(groups)
    if bed is not None and wake is not None and wake > bed:
        sleep_hours = (wake - bed) / (1000 * 60 * 60)
    else:
        sleep_hours = DEFAULT_SLEEP_HOURS

    return m.RhythmMap(
        sleep_hours=sleep_hours,
        movement_score=movement,
        rhythm_state=classify_rhythm(sleep_hours, movement, len(motion)),
        bed_time=bed,
        wake_time=wake,
        deep_sleep_minutes=sleep_hours * 60 * 0.2,
        restfulness_score=min(100.0, sleep_hours * 12.5),
    )


def compute_health_echo(
    groups: dict[str, list[dict[str, Any]]],
    rhythm: m.RhythmMap,
) -> m.HealthEcho:
    motion = groups.get(m.MOTION_EVENT, [])
    total_motion = sum(_duration(e) for e in motion)
    heart_rates = [
        float(_payload(e)["bpm"])
        for e in groups.get(m.HEART_RATE, [])
        if _payload(e).get("bpm") is not None
    ]
    stress = {m.OVERSTIMULATED: 80, m.OFF_RHYTHM: 60}.get(rhythm.rhythm_state, 30)

    return m.HealthEcho(
        heart_rate_avg=mean(heart_rates, DEFAULT_HEART_RATE),
        movement_score=rhythm.movement_score,
        wellness_index=(rhythm.movement_score + rhythm.sleep_hours * 12.5) / 2,
        steps_count=len(motion) * 100,
        active_minutes=total_motion / 60,
        stress_index=stress,
    )


# ---------------------------------------------------------------------------
# Device and attention
# ---------------------------------------------------------------------------

def compute_device_signal(groups: dict[str, list[dict[str, Any]]]) -> m.DeviceSignal | None:
    if not _has_any(groups, DEVICE_EVENT_TYPES):
        return None
    screen = groups.get(m.SCREEN_ON, [])
    return m.DeviceSignal(
        notification_count=len(groups.get(m.NOTIFICATION_RECEIVED, [])),
        screen_on_count=len(screen),
        screen_time_minutes=sum(_duration(e) for e in screen) / 60000,
        app_switches=len(groups.get(m.APP_OPENED, [])),
    )


def count_friction_taps(events: list[dict[str, Any]]) -> int:
    """Adjacent app opens less than five seconds apart.

    ``events`` is the time-ordered telemetry stream for the day; any other
    telemetry event between two app opens breaks the pair.
    """
    taps = 0
    for prev, cur in zip(events, events[1:]):
        if (
            prev.get("eventType") == m.APP_OPENED
            and cur.get("eventType") == m.APP_OPENED
            and cur["timestamp"] - prev["timestamp"] < FRICTION_WINDOW_MS
        ):
            taps += 1
    return taps


def is_bedtime_hour(hour: int) -> bool:
    return hour >= 22 or hour <= 6


def compute_shadow_cognition(
    events: list[dict[str, Any]],
    groups: dict[str, list[dict[str, Any]]],
    tz: tzinfo,
) -> m.ShadowCognition | None:
    if not _has_any(groups, SHADOW_EVENT_TYPES):
        return None

    ordered = sorted(
        (e for e in events if e.get("eventType") in TELEMETRY_EVENT_TYPES),
        key=lambda e: e.get("timestamp", 0),
    )
    friction = count_friction_taps(ordered)

    bedtime_minutes = 0.0
    for event in groups.get(m.SCREEN_ON, []):
        hour = datetime.fromtimestamp(event["timestamp"] / 1000, tz).hour
        if is_bedtime_hour(hour):
            bedtime_minutes += _duration(event) / 60000

    return m.ShadowCognition(
        friction_taps=friction,
        bedtime_scroll=bedtime_minutes,
        compulsive_open_count=math.floor(friction * 1.5),
        hesitation_taps=math.floor(friction * 0.3),
        avoidance_behaviors=math.floor(friction * 0.8),
    )


def compute_obscura_patterns(groups: dict[str, list[dict[str, Any]]]) -> m.ObscuraPatterns | None:
    captures = groups.get(m.CAMERA_CAPTURE, [])
    if not captures:
        return None

    face_tilt = 0
    stillness = 0
    for capture in captures:
        payload = _payload(capture)
        angle = payload.get("cameraAngle")
        if angle and angle != "straight":
            face_tilt += 10
        tags = payload.get("objectTags")
        if tags is not None and len(tags) < 3:
            stillness += 5

    return m.ObscuraPatterns(
        face_tilt_score=face_tilt,
        stillness_index=stillness,
        cancel_behavior_count=0,
        posture_shifts=face_tilt * 2,
        micro_expression_changes=face_tilt * 0.5,
        environmental_stillness=stillness,
    )
