"""Tests for notification queueing and delivery."""

from __future__ import annotations

import asyncio

import pytest
from conftest import NOW, RecordingPushSender

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.notifications import (
    NotificationProcessor,
    queue_notification,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _token(store, user_id: str, token: str, active: bool = True) -> str:
    return store.create(m.DEVICE_TOKENS, {"userId": user_id, "token": token, "active": active})


@pytest.fixture
def sender() -> RecordingPushSender:
    return RecordingPushSender(invalid_tokens={"stale"})


@pytest.fixture
def processor(job_ctx, sender) -> NotificationProcessor:
    processor = NotificationProcessor(job_ctx, sender)
    job_ctx.bus.register(m.NOTIFICATION_QUEUE, processor.on_queued)
    return processor


class TestQueueNotification:
    def test_enqueues_message(self, job_ctx, store, user):
        doc = _run(queue_notification(job_ctx, user, "insight", "Hello", metadata={"k": "v"}))
        stored = store.get(m.NOTIFICATION_QUEUE, doc["id"])
        assert stored["type"] == "insight"
        assert stored["priority"] == "normal"
        assert stored["metadata"] == {"k": "v"}
        assert stored["createdAt"] == int(NOW.timestamp() * 1000)


class TestDelivery:
    def test_delivers_and_records(self, job_ctx, store, user, sender, processor):
        _token(store, user, "phone")
        _token(store, user, "old-tablet", active=False)
        _token(store, "u2", "someone-else")

        _run(queue_notification(
            job_ctx, user, "milestone", "Ten days logged", metadata={"streak": 10}
        ))

        assert store.count(m.NOTIFICATION_QUEUE) == 0
        tokens, message = sender.sent[0]
        assert tokens == ["phone"]
        assert message.title == "Milestone Achieved!"
        assert message.data == {
            "type": "milestone",
            "uid": user,
            "clickAction": "/progress",
            "streak": "10",
        }
        record = store.query(m.NOTIFICATIONS)[0]
        assert record["userId"] == user
        assert record["title"] == "Milestone Achieved!"
        assert record["body"] == "Ten days logged"
        assert record["read"] is False
        assert record["timestamp"] == int(NOW.timestamp() * 1000)

    def test_explicit_title(self, job_ctx, store, user, sender, processor):
        _token(store, user, "phone")
        _run(queue_notification(job_ctx, user, "insight", "Body", title="Custom"))
        assert sender.sent[0][1].title == "Custom"

    def test_invalid_tokens_pruned(self, job_ctx, store, user, sender, processor):
        _token(store, user, "phone")
        _token(store, user, "stale")

        _run(queue_notification(job_ctx, user, "reminder", "Check in"))

        remaining = [d["token"] for d in store.query(m.DEVICE_TOKENS)]
        assert remaining == ["phone"]
        assert store.count(m.NOTIFICATIONS) == 1

    def test_recorded_without_devices(self, job_ctx, store, user, sender, processor):
        _run(queue_notification(job_ctx, user, "reflection", "Evening"))
        assert sender.sent == []
        assert store.count(m.NOTIFICATIONS) == 1
        assert store.count(m.NOTIFICATION_QUEUE) == 0


class TestSkipped:
    def test_notifications_disabled(self, job_ctx, store, user, sender, processor):
        store.set(m.USERS, user, {"notificationPreferences": {"enabled": False}}, merge=True)
        _token(store, user, "phone")

        result = _run(processor.process(
            {"id": "q1", "userId": user, "type": "insight", "body": "Hi"}
        ))

        assert result == "disabled"
        assert sender.sent == []
        assert store.count(m.NOTIFICATIONS) == 0

    def test_type_disabled(self, job_ctx, store, user, sender, processor):
        store.set(m.USERS, user, {"notificationPreferences": {"life_event": False}}, merge=True)
        _run(queue_notification(job_ctx, user, "life_event", "Shift"))

        assert store.count(m.NOTIFICATIONS) == 0
        assert store.count(m.NOTIFICATION_QUEUE) == 0

    def test_other_types_still_enabled(self, job_ctx, store, user, sender, processor):
        store.set(m.USERS, user, {"notificationPreferences": {"life_event": False}}, merge=True)
        _run(queue_notification(job_ctx, user, "insight", "Still here"))
        assert store.count(m.NOTIFICATIONS) == 1

    def test_missing_user_drops_message(self, job_ctx, store, processor):
        doc = _run(queue_notification(job_ctx, "ghost", "insight", "Hi"))
        assert store.get(m.NOTIFICATION_QUEUE, doc["id"]) is None
        assert store.count(m.NOTIFICATIONS) == 0

    def test_invalid_message_kept(self, job_ctx, store, user, processor, caplog):
        doc_id = store.create(m.NOTIFICATION_QUEUE, {"userId": user, "type": "insight"})
        message = store.get(m.NOTIFICATION_QUEUE, doc_id)

        assert _run(processor.process(message)) == "invalid"
        assert store.get(m.NOTIFICATION_QUEUE, doc_id) is not None
        assert "missing userId or body" in caplog.text
