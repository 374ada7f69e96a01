"""MCP tools for viewing the audit trail.

The audit log records job runs and RPC calls: names, counts, durations and
hashed inputs. It holds no transcripts or other signal content.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from lifelog.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 7,
        job_name: str = "",
    ) -> str:
        """View recent job runs and RPC call counts.

        Args:
            days: Number of days to look back (default: 7).
            job_name: Only list runs of this job (e.g. 'cognitive_mirror').
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        runs = audit_logger.get_events(
            action="job_run", name=job_name or None, since=since, limit=50
        )
        display_runs = [
            {
                "timestamp": run.get("timestamp"),
                "job": run.get("name"),
                "status": run.get("status"),
                "processed": run.get("processed"),
                "failed": run.get("failed"),
                "duration_ms": run.get("duration_ms"),
            }
            for run in runs
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "rpc_calls": audit_logger.count_events(action="rpc_call", since=since),
            "job_runs": display_runs,
        }, indent=2)
