"""Lifelog server entry point: ``python -m lifelog.core.server.main``."""

from __future__ import annotations

import asyncio
import logging
from ipaddress import ip_address

from lifelog.core.config.settings import Settings, get_settings
from lifelog.core.scheduler.runner import JobScheduler
from lifelog.core.server.app import build_pipeline, create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


async def _serve(settings: Settings) -> None:
    pipeline, _ = build_pipeline(settings)
    mcp = create_app(pipeline_override=pipeline)

    scheduler: JobScheduler | None = None
    if settings.scheduler_enabled:
        scheduler = JobScheduler(settings.timezone)
        pipeline.schedule(scheduler, settings)
        scheduler.start()
    else:
        logger.info("Scheduler disabled; jobs run only when invoked directly")

    try:
        await mcp.run_async(
            transport="streamable-http",
            host=settings.lifelog_host,
            port=settings.lifelog_port,
        )
    finally:
        if scheduler is not None:
            scheduler.shutdown()


def run() -> None:
    """Start the Lifelog MCP server with Streamable HTTP transport and the job scheduler."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.lifelog_log_level.upper(), logging.INFO))

    if not settings.lifelog_allow_insecure_bind and not _is_loopback_host(settings.lifelog_host):
        raise RuntimeError(
            "Refusing to bind Lifelog server to a non-loopback host without an auth layer. "
            "Set LIFELOG_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting Lifelog Mind State server on %s:%d",
        settings.lifelog_host,
        settings.lifelog_port,
    )

    asyncio.run(_serve(settings))


if __name__ == "__main__":
    run()
