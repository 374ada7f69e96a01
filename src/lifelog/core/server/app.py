"""Lifelog mind-state MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
- build_pipeline(), used by create_app() and by the scheduler entry point
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from fastmcp import FastMCP

from lifelog.core.audit.logger import AuditLogger
from lifelog.core.config.settings import Settings, get_settings
from lifelog.core.events.triggers import TriggerBus
from lifelog.core.notifications.sender import PushSender
from lifelog.core.storage.database import DocumentDatabase
from lifelog.core.storage.encryption import EncryptionError, FieldEncryptor
from lifelog.core.storage.store import DocumentStore
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.base import JobContext
from lifelog.domains.mindstate.pipeline import MindStatePipeline
from lifelog.domains.mindstate.tools.audit_tools import register_audit_tools
from lifelog.domains.mindstate.tools.ingest_tools import register_ingest_tools
from lifelog.domains.mindstate.tools.insight_tools import register_insight_tools
from lifelog.domains.mindstate.tools.timeline_tools import register_timeline_tools
from lifelog.domains.mindstate.tools.visual_tools import register_visual_tools

logger = logging.getLogger(__name__)

# Fields encrypted at rest, per collection (dotted paths into the document)
ENCRYPTED_FIELDS = {
    m.SIGNAL_EVENTS: ["payload.transcript"],
}


def build_pipeline(
    settings: Settings,
    *,
    database_override: DocumentDatabase | None = None,
    push_sender_override: PushSender | None = None,
    clock_override: Callable[[], datetime] | None = None,
) -> tuple[MindStatePipeline, AuditLogger]:
    """Open the document store and wire every job, trigger and audit hook.

    Raises:
        EncryptionError: If ``ENCRYPTION_KEY`` is set but not a valid key.
    """
    if database_override is not None:
        database = database_override
    else:
        database = DocumentDatabase(settings.db_path)
        database.initialize()
        logger.info(
            "Document store opened: %s (schema v%d)",
            settings.db_path,
            database.get_schema_version(),
        )

    encryptor: FieldEncryptor | None = None
    if settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
        except EncryptionError as exc:
            logger.error("Invalid ENCRYPTION_KEY: %s", exc)
            raise
    else:
        logger.info(
            "No ENCRYPTION_KEY configured; voice transcripts are stored unencrypted. "
            "Set ENCRYPTION_KEY to encrypt them at rest."
        )

    store = DocumentStore(
        database,
        encryptor,
        ENCRYPTED_FIELDS,
        batch_size=settings.write_batch_size,
    )
    audit = AuditLogger(database)
    ctx = JobContext(
        store=store,
        bus=TriggerBus(),
        tz=ZoneInfo(settings.timezone),
        audit=audit,
        page_size=settings.user_page_size,
        concurrency=settings.job_concurrency,
    )
    if clock_override is not None:
        ctx.clock = clock_override

    pipeline = MindStatePipeline(ctx, push_sender=push_sender_override)
    return pipeline, audit


def create_app(
    *,
    database_override: DocumentDatabase | None = None,
    push_sender_override: PushSender | None = None,
    clock_override: Callable[[], datetime] | None = None,
    pipeline_override: MindStatePipeline | None = None,
) -> FastMCP:
    """Create and configure the Lifelog MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the document store (encrypting transcripts when a key is set)
    3. Builds the mind-state pipeline and registers its triggers
    4. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "Lifelog Mind State",
        instructions=(
            "Life-logging mind-state server. Records passive signals (voice, "
            "device, health, camera, location), and serves daily cognitive "
            "states, emotion forecasts, narrator insights and mood-linked "
            "visual overlays."
        ),
    )

    # --- Pipeline (store, triggers, jobs) ---
    if pipeline_override is not None:
        pipeline = pipeline_override
        audit = pipeline.ctx.audit
    else:
        pipeline, audit = build_pipeline(
            settings,
            database_override=database_override,
            push_sender_override=push_sender_override,
            clock_override=clock_override,
        )
    jobs = pipeline.ctx

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "Lifelog Mind State",
            "version": "0.1.0",
            "timezone": settings.timezone,
            "users": jobs.store.count(m.USERS),
            "cognitive_states_stored": jobs.store.count(m.COGNITIVE_MIRROR),
        }

    register_ingest_tools(server, pipeline, audit)
    register_timeline_tools(server, jobs, audit)
    register_insight_tools(server, jobs, audit)
    register_visual_tools(server, jobs, audit)
    logger.info("Mind-state tools registered")

    if audit is not None:
        register_audit_tools(server, audit)

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
