"""Notification queue processing.

Messages written to ``notificationQueue`` are delivered to the user's active
device tokens, recorded as in-app notifications and then removed from the
queue. Tokens the push sender reports as permanently invalid are deleted.
"""

from __future__ import annotations

import logging
from typing import Any

from lifelog.core.notifications.sender import PushMessage, PushSender, summarize_results
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.narrative import (
    notification_click_action,
    notification_title,
)
from lifelog.domains.mindstate.jobs.base import JobContext, create_record

logger = logging.getLogger(__name__)


async def queue_notification(
    ctx: JobContext,
    user_id: str,
    notification_type: str,
    body: str,
    *,
    title: str = "",
    priority: str = "normal",
    metadata: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Enqueue a message; the queue trigger delivers it."""
    return await create_record(ctx, m.NOTIFICATION_QUEUE, user_id, {
        "type": notification_type,
        "title": title,
        "body": body,
        "priority": priority,
        "metadata": metadata or {},
    })


class NotificationProcessor:
    """Delivers queued notifications through a :class:`PushSender`."""

    def __init__(self, ctx: JobContext, sender: PushSender) -> None:
        self._ctx = ctx
        self._sender = sender

    def _drop(self, message: dict[str, Any]) -> None:
        self._ctx.store.delete(m.NOTIFICATION_QUEUE, message["id"])

    async def process(self, message: dict[str, Any]) -> str:
        """Handle one queued message.

        Returns:
            ``"invalid"``, ``"no_user"``, ``"disabled"`` or ``"delivered"``.
            A message that fails mid-way stays queued and the error propagates.
        """
        store = self._ctx.store
        user_id = message.get("userId")
        body = message.get("body")
        ntype = message.get("type") or "system"

        if not user_id or not body:
            logger.error("Queued notification %s is missing userId or body", message.get("id"))
            return "invalid"

        user = store.get(m.USERS, user_id)
        if user is None:
            logger.warning("User %s not found, dropping notification", user_id)
            self._drop(message)
            return "no_user"

        prefs = user.get("notificationPreferences") or {}
        if prefs.get("enabled") is False or prefs.get(ntype) is False:
            logger.info("Notifications disabled for user %s or type %s", user_id, ntype)
            self._drop(message)
            return "disabled"

        title = message.get("title") or notification_title(ntype)
        token_docs = store.query(
            m.DEVICE_TOKENS,
            where=[("userId", "==", user_id), ("active", "==", True)],
        )
        tokens = [d["token"] for d in token_docs if d.get("token")]

        if tokens:
            push = PushMessage(
                title=title,
                body=body,
                data={
                    "type": ntype,
                    "uid": user_id,
                    "clickAction": notification_click_action(ntype),
                    **{k: str(v) for k, v in (message.get("metadata") or {}).items()},
                },
            )
            results = await self._sender.send(tokens, push)
            invalid = {r.token for r in results if r.token_invalid}
            if invalid:
                batch = store.batch()
                for doc in token_docs:
                    if doc.get("token") in invalid:
                        batch.delete(m.DEVICE_TOKENS, doc["id"])
                batch.commit()
                logger.info("Removed %d invalid tokens for user %s", len(invalid), user_id)
            summary = summarize_results(results)
            logger.info(
                "Sent notification to %d devices for user %s, %d successful",
                len(tokens), user_id, summary["successCount"],
            )

        store.create(m.NOTIFICATIONS, {
            "userId": user_id,
            "type": ntype,
            "title": title,
            "body": body,
            "read": False,
            "timestamp": self._ctx.now_ms(),
            "metadata": message.get("metadata") or None,
        })
        self._drop(message)
        return "delivered"

    async def on_queued(self, message: dict[str, Any]) -> None:
        await self.process(message)
