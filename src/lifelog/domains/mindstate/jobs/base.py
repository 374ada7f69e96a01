"""Shared job plumbing: the injected context, day windows and the user loop."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Awaitable, Callable

from lifelog.core.audit.logger import AuditLogger
from lifelog.core.events.triggers import TriggerBus
from lifelog.core.storage.store import DocumentStore, Filter
from lifelog.domains.mindstate.domain_logic import models as m

logger = logging.getLogger(__name__)

# Per-user unit of work. Returns True if it wrote something, False if skipped.
UserTask = Callable[[dict[str, Any]], Awaitable[bool]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobContext:
    """Process-wide resources handed to every job, trigger and RPC."""

    store: DocumentStore
    bus: TriggerBus
    tz: tzinfo = timezone.utc
    audit: AuditLogger | None = None
    page_size: int = 200
    concurrency: int = 1
    clock: Callable[[], datetime] = _utc_now

    def now(self) -> datetime:
        """Current time in the configured timezone."""
        return self.clock().astimezone(self.tz)

    def now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def today(self) -> date:
        return self.now().date()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)


@dataclass
class JobResult:
    name: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    duration_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


def day_window(day: date, tz: tzinfo) -> tuple[int, int]:
    """Epoch-ms bounds of ``[day 00:00, day+1 00:00)`` in ``tz``."""
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    end_day = day + timedelta(days=1)
    end = datetime(end_day.year, end_day.month, end_day.day, tzinfo=tz)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


async def for_each_user(
    ctx: JobContext,
    job_name: str,
    task: UserTask,
    *,
    where: list[Filter] | None = None,
) -> JobResult:
    """Run ``task`` for every user document, isolating per-user failures.

    Users are read page by page. With ``ctx.concurrency > 1`` the users of a
    page run concurrently, bounded by a semaphore.
    """
    result = JobResult(job_name)
    start = time.monotonic()
    semaphore = asyncio.Semaphore(max(1, ctx.concurrency))

    async def _one(user: dict[str, Any]) -> None:
        async with semaphore:
            try:
                if await task(user):
                    result.processed += 1
                else:
                    result.skipped += 1
            except Exception:
                result.failed += 1
                logger.exception("%s failed for user %s", job_name, user.get("id"))

    logger.info("Starting %s", job_name)
    for page in ctx.store.iter_pages(m.USERS, where=where, page_size=ctx.page_size):
        if ctx.concurrency > 1:
            await asyncio.gather(*(_one(user) for user in page))
        else:
            for user in page:
                await _one(user)

    result.duration_ms = round((time.monotonic() - start) * 1000, 2)
    logger.info(
        "%s finished: %d processed, %d skipped, %d failed (%.1f ms)",
        job_name, result.processed, result.skipped, result.failed, result.duration_ms,
    )
    if ctx.audit is not None:
        ctx.audit.log_job_run(
            job_name,
            processed=result.processed,
            failed=result.failed,
            duration_ms=result.duration_ms,
            metadata={"skipped": result.skipped},
        )
    return result


async def write_daily_record(
    ctx: JobContext,
    collection: str,
    user_id: str,
    day: str,
    body: dict[str, Any],
) -> dict[str, Any]:
    """Upsert a per-user, per-day record and fire create triggers if it is new."""
    doc_id = m.daily_key(user_id, day)
    doc = {**body, "userId": user_id, "date": body.get("date", day), "createdAt": ctx.now_ms()}
    created = ctx.store.set(collection, doc_id, doc)
    doc["id"] = doc_id
    if created:
        await ctx.bus.emit_created(collection, doc)
    else:
        logger.debug("Replaced existing %s/%s", collection, doc_id)
    return doc


async def create_record(
    ctx: JobContext,
    collection: str,
    user_id: str,
    body: dict[str, Any],
) -> dict[str, Any]:
    """Insert a randomly keyed record and fire create triggers."""
    doc = {**body, "userId": user_id, "createdAt": ctx.now_ms()}
    doc["id"] = ctx.store.create(collection, doc)
    await ctx.bus.emit_created(collection, doc)
    return doc
