"""Mood-driven visual parameters: aura overlay, particles and mood weather."""

from __future__ import annotations

import math
from typing import Any

from lifelog.domains.mindstate.domain_logic.numeric import clamp, mean

AURA_OVERLAY_TTL_MS = 5 * 60 * 1000
AUTO_AURA_TTL_MS = 10 * 60 * 1000
AUTO_AURA_ANIMATION_MS = 4000

_PARTICLE_STYLES: dict[str, dict[str, Any]] = {
    "joy": {"color": "#FFD700", "speed": 2, "direction": "up", "pattern": "burst"},
    "calm": {"color": "#87CEEB", "speed": 0.5, "direction": "float", "pattern": "gentle"},
    "excited": {"color": "#FF6B6B", "speed": 3, "direction": "all", "pattern": "chaotic"},
    "peaceful": {"color": "#98FB98", "speed": 0.3, "direction": "drift", "pattern": "slow"},
    "energetic": {"color": "#FFA500", "speed": 2.5, "direction": "spiral", "pattern": "dynamic"},
}
_DEFAULT_PARTICLE_STYLE = {"color": "#B0C4DE", "speed": 1, "direction": "float", "pattern": "steady"}


def aura_properties(
    mood: float,
    stress: float,
    energy: float,
    custom_color: str | None = None,
) -> dict[str, Any]:
    """Map mood, stress and energy (0-100 each) to aura rendering parameters.

    Hue follows mood (0 red to 300 magenta), opacity falls with stress and
    brightness rises with energy.
    """
    hue = clamp(mood / 100 * 300, 0, 300)
    brightness = clamp(30 + energy / 100 * 60, 30, 90)

    if energy > 70:
        pulse = 2
    elif energy < 30:
        pulse = 6
    else:
        pulse = 4

    if mood > 70:
        animation = "energetic"
    elif mood < 30:
        animation = "gentle"
    else:
        animation = "steady"

    return {
        "color": custom_color or f"hsl({hue:g}, 70%, {brightness:g}%)",
        "intensity": clamp(mood, 20, 100),
        "opacity": clamp((100 - stress) / 100, 0.3, 1),
        "pulseDuration": pulse,
        "glowRadius": clamp(50 + mood / 100 * 150, 50, 200),
        "particleCount": math.floor(energy / 100 * 20) + 5,
        "animationType": animation,
    }


def aura_css(props: dict[str, Any]) -> dict[str, str]:
    return {
        "--aura-color": props["color"],
        "--aura-opacity": f"{props['opacity']:g}",
        "--aura-glow": f"{props['glowRadius']:g}px",
        "--aura-pulse": f"{props['pulseDuration']}s",
    }


def particle_configuration(emotion: str, intensity: float) -> dict[str, Any]:
    style = _PARTICLE_STYLES.get(emotion, _DEFAULT_PARTICLE_STYLE)
    if intensity > 70:
        size = "large"
    elif intensity < 30:
        size = "small"
    else:
        size = "medium"
    return {
        **style,
        "count": math.floor(intensity / 100 * 30) + 10,
        "size": size,
        "lifespan": 5 + intensity / 100 * 10,
        "opacity": clamp(intensity / 100, 0.3, 0.8),
        "blendMode": "screen" if intensity > 80 else "normal",
    }


def mood_weather(mirrors: list[dict[str, Any]]) -> dict[str, Any]:
    """Weather metaphor from the average mood and stress of recent mirrors."""
    if not mirrors:
        return {"type": "clear", "intensity": 50, "description": "Neutral skies"}

    avg_mood = mean([r.get("moodScore", 50) for r in mirrors])
    avg_stress = mean([r.get("stressIndex", 50) for r in mirrors])

    if avg_mood > 70 and avg_stress < 40:
        return {"type": "sunny", "intensity": 80, "description": "Bright and clear"}
    if avg_mood < 30 or avg_stress > 70:
        return {"type": "stormy", "intensity": 70, "description": "Turbulent weather"}
    if avg_mood > 50 and avg_stress < 60:
        return {"type": "partly_cloudy", "intensity": 60, "description": "Mixed conditions"}
    return {"type": "overcast", "intensity": 50, "description": "Cloudy skies"}


def season_for_month(month: int) -> dict[str, Any]:
    """Seasonal theme for a 1-based month (northern hemisphere)."""
    if 3 <= month <= 5:
        return {"season": "spring", "theme": "renewal", "colors": ["#98FB98", "#FFB6C1", "#87CEEB"]}
    if 6 <= month <= 8:
        return {"season": "summer", "theme": "growth", "colors": ["#FFD700", "#FF6347", "#32CD32"]}
    if 9 <= month <= 11:
        return {"season": "autumn", "theme": "reflection", "colors": ["#FF8C00", "#CD853F", "#B22222"]}
    return {"season": "winter", "theme": "contemplation", "colors": ["#B0C4DE", "#E6E6FA", "#F0F8FF"]}


_SKY_COLORS = {
    "sunny": "#87CEEB",
    "partly_cloudy": "#B0C4DE",
    "overcast": "#708090",
    "stormy": "#2F4F4F",
    "clear": "#E0F6FF",
}
_CLOUD_DENSITY = {"sunny": 0.1, "partly_cloudy": 0.4, "overcast": 0.8, "stormy": 0.9, "clear": 0.0}


def sky_configuration(weather: dict[str, Any], seasonal: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "backgroundColor": _SKY_COLORS.get(weather["type"], "#87CEEB"),
        "cloudDensity": _CLOUD_DENSITY.get(weather["type"], 0.3),
        "cloudMovement": "fast" if weather["intensity"] > 60 else "slow",
        "seasonalTint": seasonal["colors"][0] if seasonal else "#FFFFFF",
    }
