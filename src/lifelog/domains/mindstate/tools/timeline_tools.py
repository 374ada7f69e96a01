"""MCP tools for timeline playback and period comparison."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from lifelog.core.server.errors import INVALID_ARGUMENT, RpcError, invoke_rpc, require_caller
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.narrative import compare_periods
from lifelog.domains.mindstate.jobs.base import day_window

if TYPE_CHECKING:
    from lifelog.core.audit.logger import AuditLogger
    from lifelog.domains.mindstate.jobs.base import JobContext

logger = logging.getLogger(__name__)

TIMELINE_EVENT_LIMIT = 100


def _parse_date(value: str, field: str) -> date:
    if not value:
        raise RpcError(INVALID_ARGUMENT, f"{field} is required")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise RpcError(INVALID_ARGUMENT, f"{field} must be YYYY-MM-DD") from exc


def _mirrors_between(jobs: JobContext, uid: str, start: str, end: str) -> list[dict[str, Any]]:
    return jobs.store.query(
        m.COGNITIVE_MIRROR,
        where=[("userId", "==", uid), ("date", ">=", start), ("date", "<=", end)],
        order_by="date",
    )


def register_timeline_tools(
    mcp: FastMCP,
    jobs: JobContext,
    audit: AuditLogger | None = None,
) -> None:
    """Register cognitive timeline tools on the MCP server."""

    @mcp.tool
    async def get_cognitive_timeline(
        ctx: Context,
        start_date: str,
        end_date: str,
        include_forecasts: bool = True,
        caller_uid: str = "",
    ) -> str:
        """Play back cognitive states, forecasts and voice events over a date range.

        Args:
            start_date: First day (YYYY-MM-DD), inclusive.
            end_date: Last day (YYYY-MM-DD), inclusive.
            include_forecasts: Also return emotion forecasts in the range.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            start = _parse_date(start_date, "start_date")
            end = _parse_date(end_date, "end_date")
            if end < start:
                raise RpcError(INVALID_ARGUMENT, "end_date must not be before start_date")

            states = [
                {**doc, "type": "cognitive"}
                for doc in _mirrors_between(jobs, uid, start_date, end_date)
            ]

            forecasts: list[dict[str, Any]] = []
            if include_forecasts:
                forecasts = [
                    {**doc, "type": "forecast"}
                    for doc in jobs.store.query(
                        m.EMOTION_FORECAST,
                        where=[
                            ("userId", "==", uid),
                            ("date", ">=", start_date),
                            ("date", "<=", end_date),
                        ],
                        order_by="date",
                    )
                ]

            start_ms, _ = day_window(start, jobs.tz)
            _, end_ms = day_window(end, jobs.tz)
            events = [
                {**doc, "type": "voice_event"}
                for doc in jobs.store.query(
                    m.SIGNAL_EVENTS,
                    where=[
                        ("userId", "==", uid),
                        ("eventType", "==", m.VOICE),
                        ("timestamp", ">=", start_ms),
                        ("timestamp", "<", end_ms),
                    ],
                    order_by="timestamp",
                    limit=TIMELINE_EVENT_LIMIT,
                )
            ]

            logger.info(
                "Timeline for user %s: %d states, %d forecasts, %d events",
                uid, len(states), len(forecasts), len(events),
            )
            return json.dumps({
                "success": True,
                "data": {
                    "cognitiveStates": states,
                    "forecasts": forecasts,
                    "events": events,
                },
                "dateRange": {"startDate": start_date, "endDate": end_date},
            })

        return await invoke_rpc(
            "get_cognitive_timeline",
            handler,
            caller_uid=caller_uid,
            params={"start_date": start_date, "end_date": end_date},
            audit=audit,
        )

    @mcp.tool
    async def compare_timeline_periods(
        ctx: Context,
        period1_start: str,
        period1_end: str,
        period2_start: str,
        period2_end: str,
        caller_uid: str = "",
    ) -> str:
        """Compare average mood, stress and energy between two date ranges.

        Changes of more than 10 points in mood or stress are described as
        insights.

        Args:
            period1_start: First period start (YYYY-MM-DD).
            period1_end: First period end (YYYY-MM-DD).
            period2_start: Second period start (YYYY-MM-DD).
            period2_end: Second period end (YYYY-MM-DD).
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            for value, name in (
                (period1_start, "period1_start"),
                (period1_end, "period1_end"),
                (period2_start, "period2_start"),
                (period2_end, "period2_end"),
            ):
                _parse_date(value, name)

            comparison = compare_periods(
                _mirrors_between(jobs, uid, period1_start, period1_end),
                _mirrors_between(jobs, uid, period2_start, period2_end),
            )
            return json.dumps({"success": True, "comparison": comparison})

        return await invoke_rpc(
            "compare_timeline_periods",
            handler,
            caller_uid=caller_uid,
            params={
                "period1": [period1_start, period1_end],
                "period2": [period2_start, period2_end],
            },
            audit=audit,
        )
