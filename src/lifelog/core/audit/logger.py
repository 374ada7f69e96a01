"""Audit logger: job runs and RPC invocations.

Every scheduled job run and every callable RPC is written to the
``audit_log`` table. RPC inputs are stored only as a SHA-256 hash of their
canonical JSON, so transcripts and other free text never reach the log.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from lifelog.core.storage.database import DocumentDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON, or empty string if not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'job_run' | 'rpc_call' | 'trigger'
    name: str = ""
    user_id: str | None = None
    input_hash: str = ""
    processed: int = 0
    failed: int = 0
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'partial' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed audit write is logged and
    never interrupts the job or RPC being audited.

    Usage::

        audit = AuditLogger(db)
        audit.log_job_run("cognitive_mirror", processed=12, failed=1, duration_ms=84.2)
    """

    def __init__(self, database: DocumentDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its id ("" if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"))
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, name, user_id, input_hash,
                    processed, failed, duration_ms, status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.name or None,
                    event.user_id,
                    event.input_hash or None,
                    event.processed,
                    event.failed,
                    event.duration_ms,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event, event lost")
            return ""

        return event_id

    def log_job_run(
        self,
        job_name: str,
        *,
        processed: int = 0,
        failed: int = 0,
        duration_ms: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log the outcome of one scheduled job run.

        Status is ``success`` when nothing failed, ``failure`` when every
        item failed, otherwise ``partial``.
        """
        if failed == 0:
            status = "success"
        elif processed == 0:
            status = "failure"
        else:
            status = "partial"
        return self.log_event(AuditEvent(
            action="job_run",
            name=job_name,
            processed=processed,
            failed=failed,
            duration_ms=duration_ms,
            status=status,
            metadata=metadata or {},
        ))

    def log_rpc_call(
        self,
        name: str,
        rpc_input: Any = None,
        *,
        user_id: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
    ) -> str:
        """Log a callable RPC invocation.

        Args:
            name: RPC (tool) name.
            rpc_input: Arguments of the call; hashed, never stored raw.
            user_id: Authenticated caller, if any.
            duration_ms: Execution time in milliseconds.
            status: 'success' or 'failure'.
            error_type: Error kind on failure.
        """
        return self.log_event(AuditEvent(
            action="rpc_call",
            name=name,
            user_id=user_id or None,
            input_hash=_hash_input(rpc_input) if rpc_input else "",
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events with optional filters, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if name:
            conditions.append("name = ?")
            params.append(name)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        """Count audit events, optionally of one action type and since a timestamp."""
        conditions: list[str] = []
        params: list[Any] = []
        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]
