"""MCP tools for mood-linked visual overlays."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from lifelog.core.server.errors import INVALID_ARGUMENT, RpcError, invoke_rpc, require_caller
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.visuals import (
    AURA_OVERLAY_TTL_MS,
    aura_css,
    aura_properties,
    mood_weather,
    particle_configuration,
    season_for_month,
    sky_configuration,
)
from lifelog.domains.mindstate.jobs.base import create_record

if TYPE_CHECKING:
    from lifelog.core.audit.logger import AuditLogger
    from lifelog.domains.mindstate.jobs.base import JobContext

logger = logging.getLogger(__name__)

WEATHER_HISTORY = 7


def _check_range(value: float, name: str) -> None:
    if not 0 <= value <= 100:
        raise RpcError(INVALID_ARGUMENT, f"{name} must be between 0 and 100")


def register_visual_tools(
    mcp: FastMCP,
    jobs: JobContext,
    audit: AuditLogger | None = None,
) -> None:
    """Register aura, particle and mood weather tools on the MCP server."""

    @mcp.tool
    async def generate_aura_overlay(
        ctx: Context,
        mood_score: float,
        stress_index: float,
        energy_level: float,
        custom_color: str = "",
        caller_uid: str = "",
    ) -> str:
        """Generate a mood-linked aura overlay, valid for five minutes.

        Args:
            mood_score: Mood 0-100; drives hue, intensity and glow.
            stress_index: Stress 0-100; higher stress lowers opacity.
            energy_level: Energy 0-100; drives brightness and pulse speed.
            custom_color: Optional CSS color overriding the computed hue.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            _check_range(mood_score, "mood_score")
            _check_range(stress_index, "stress_index")
            _check_range(energy_level, "energy_level")

            props = aura_properties(mood_score, stress_index, energy_level, custom_color or None)
            overlay = await create_record(jobs, m.ACTIVE_OVERLAYS, uid, {
                "type": "aura_overlay",
                "properties": props,
                "animationDuration": 3000 if props["intensity"] > 70 else 5000,
                "expiresAt": jobs.now_ms() + AURA_OVERLAY_TTL_MS,
            })
            logger.info("Aura overlay %s for user %s (mood %s)", overlay["id"], uid, mood_score)
            return json.dumps({
                "success": True,
                "overlay": overlay,
                "cssProperties": aura_css(props),
            })

        return await invoke_rpc(
            "generate_aura_overlay",
            handler,
            caller_uid=caller_uid,
            params={"mood": mood_score, "stress": stress_index, "energy": energy_level},
            audit=audit,
        )

    @mcp.tool
    async def generate_particle_overlay(
        ctx: Context,
        emotion_state: str,
        intensity: float = 50,
        caller_uid: str = "",
    ) -> str:
        """Generate a particle overlay styled for an emotion.

        Args:
            emotion_state: joy, calm, excited, peaceful or energetic; other
                values get a neutral style.
            intensity: 0-100; drives particle count, size and lifespan.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            if not emotion_state:
                raise RpcError(INVALID_ARGUMENT, "emotion_state is required")
            _check_range(intensity, "intensity")

            config = particle_configuration(emotion_state, intensity)
            now = jobs.now_ms()
            duration_ms = int(config["lifespan"] * 1000)
            overlay = await create_record(jobs, m.ACTIVE_OVERLAYS, uid, {
                "type": "particle_overlay",
                "emotionState": emotion_state,
                "properties": config,
                "duration": duration_ms,
                "expiresAt": now + duration_ms,
            })
            return json.dumps({"success": True, "overlay": overlay, "particleConfig": config})

        return await invoke_rpc(
            "generate_particle_overlay",
            handler,
            caller_uid=caller_uid,
            params={"emotion_state": emotion_state, "intensity": intensity},
            audit=audit,
        )

    @mcp.tool
    async def get_mood_weather(
        ctx: Context,
        include_seasonal_theme: bool = True,
        caller_uid: str = "",
    ) -> str:
        """Describe the last week's mood as weather, with an optional seasonal theme.

        Args:
            include_seasonal_theme: Add the current season's theme and colors.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            recent = jobs.store.query(
                m.COGNITIVE_MIRROR,
                where=[("userId", "==", uid)],
                order_by="date",
                descending=True,
                limit=WEATHER_HISTORY,
            )
            weather = mood_weather(recent)
            seasonal = season_for_month(jobs.now().month) if include_seasonal_theme else None
            return json.dumps({
                "success": True,
                "weather": {
                    "weather": weather,
                    "seasonal": seasonal,
                    "skyConfig": sky_configuration(weather, seasonal),
                    "basedOnDays": len(recent),
                },
            })

        return await invoke_rpc("get_mood_weather", handler, caller_uid=caller_uid, audit=audit)
