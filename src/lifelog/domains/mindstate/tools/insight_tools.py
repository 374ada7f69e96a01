"""MCP tools for narrator insights, forecasts and passive insights."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from lifelog.core.server.errors import (
    INVALID_ARGUMENT,
    NOT_FOUND,
    RpcError,
    invoke_rpc,
    require_caller,
)
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.narrative import narrator_insights
from lifelog.domains.mindstate.jobs.base import create_record

if TYPE_CHECKING:
    from lifelog.core.audit.logger import AuditLogger
    from lifelog.domains.mindstate.jobs.base import JobContext

logger = logging.getLogger(__name__)

NARRATOR_HISTORY = 7
NARRATOR_FORECASTS = 3
VOICE_LOOKBACK_MS = 7 * 24 * 60 * 60 * 1000


def register_insight_tools(
    mcp: FastMCP,
    jobs: JobContext,
    audit: AuditLogger | None = None,
) -> None:
    """Register narrator and insight tools on the MCP server."""

    @mcp.tool
    async def get_narrator_insight(
        ctx: Context,
        context_type: str = "daily",
        specific_date: str = "",
        include_forecasts: bool = True,
        caller_uid: str = "",
    ) -> str:
        """Compose a narrator message from recent cognitive states and forecasts.

        The insight is stored so the client can voice it later.

        Args:
            context_type: Free-form context label (e.g. 'daily', 'weekly').
            specific_date: Anchor day (YYYY-MM-DD). Defaults to yesterday.
            include_forecasts: Use upcoming forecasts for context.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            if specific_date:
                try:
                    date.fromisoformat(specific_date)
                except ValueError as exc:
                    raise RpcError(INVALID_ARGUMENT, "specific_date must be YYYY-MM-DD") from exc
                day_key = specific_date
            else:
                day_key = (jobs.today() - timedelta(days=1)).isoformat()

            store = jobs.store
            mirrors = store.query(
                m.COGNITIVE_MIRROR,
                where=[("userId", "==", uid), ("date", "<=", day_key)],
                order_by="date",
                descending=True,
                limit=NARRATOR_HISTORY,
            )
            forecasts = []
            if include_forecasts:
                forecasts = store.query(
                    m.EMOTION_FORECAST,
                    where=[("userId", "==", uid), ("date", ">=", day_key)],
                    order_by="date",
                    limit=NARRATOR_FORECASTS,
                )
            voice_count = store.count(
                m.SIGNAL_EVENTS,
                where=[
                    ("userId", "==", uid),
                    ("eventType", "==", m.VOICE),
                    ("timestamp", ">=", jobs.now_ms() - VOICE_LOOKBACK_MS),
                ],
            )

            user = store.get(m.USERS, uid) or {}
            tone = (user.get("narratorPrefs") or {}).get("toneStyle") or "empathetic"

            insight = await create_record(jobs, m.NARRATOR_INSIGHTS, uid, {
                "contextType": context_type,
                "insights": narrator_insights(mirrors, forecasts, voice_count),
                "narratorTone": tone,
                "consumed": False,
            })
            logger.info("Narrator insight %s created for user %s", insight["id"], uid)
            return json.dumps({"success": True, "insight": insight})

        return await invoke_rpc(
            "get_narrator_insight",
            handler,
            caller_uid=caller_uid,
            params={"context_type": context_type, "specific_date": specific_date},
            audit=audit,
        )

    @mcp.tool
    async def get_latest_forecast(
        ctx: Context,
        caller_uid: str = "",
    ) -> str:
        """Return the most recent emotion forecast for the calling user.

        Args:
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            latest = jobs.store.query(
                m.EMOTION_FORECAST,
                where=[("userId", "==", uid)],
                order_by="date",
                descending=True,
                limit=1,
            )
            if not latest:
                raise RpcError(NOT_FOUND, "No forecast available yet")
            return json.dumps({"success": True, "forecast": latest[0]})

        return await invoke_rpc("get_latest_forecast", handler, caller_uid=caller_uid, audit=audit)

    @mcp.tool
    async def get_passive_insights(
        ctx: Context,
        include_consumed: bool = False,
        mark_consumed: bool = False,
        limit: int = 20,
        caller_uid: str = "",
    ) -> str:
        """List passive insights that are due for the calling user.

        Args:
            include_consumed: Also return insights already delivered.
            mark_consumed: Mark the returned insights as consumed.
            limit: Maximum insights to return (1-100).
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            if not 1 <= limit <= 100:
                raise RpcError(INVALID_ARGUMENT, "limit must be between 1 and 100")

            where = [("userId", "==", uid), ("scheduledFor", "<=", jobs.now_ms())]
            if not include_consumed:
                where.append(("consumed", "==", False))
            insights = jobs.store.query(
                m.PASSIVE_INSIGHTS,
                where=where,
                order_by="scheduledFor",
                descending=True,
                limit=limit,
            )

            if mark_consumed and insights:
                batch = jobs.store.batch()
                for doc in insights:
                    batch.update(m.PASSIVE_INSIGHTS, doc["id"], {"consumed": True})
                batch.commit()

            return json.dumps({"success": True, "count": len(insights), "insights": insights})

        return await invoke_rpc(
            "get_passive_insights", handler, caller_uid=caller_uid, audit=audit
        )
