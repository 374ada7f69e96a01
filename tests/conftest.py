"""Shared test fixtures for Lifelog tests."""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("JOB_CONCURRENCY", "1")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from lifelog.core.audit.logger import AuditLogger  # noqa: E402
from lifelog.core.events.triggers import TriggerBus  # noqa: E402
from lifelog.core.notifications.sender import MockPushSender, PushMessage, SendResult  # noqa: E402
from lifelog.core.storage.database import DocumentDatabase  # noqa: E402
from lifelog.core.storage.store import DocumentStore  # noqa: E402
from lifelog.domains.mindstate.domain_logic import models as m  # noqa: E402
from lifelog.domains.mindstate.jobs.base import JobContext  # noqa: E402

# Fixed "now" for job tests: 2026-03-10 09:00 UTC (a Tuesday)
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
YESTERDAY = TODAY - timedelta(days=1)


def ms(day: date, hour: int = 0, minute: int = 0, second: int = 0) -> int:
    """Epoch milliseconds of a UTC wall-clock time on ``day``."""
    dt = datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def add_event(
    store: DocumentStore,
    user_id: str,
    event_type: str,
    timestamp: int,
    **payload: Any,
) -> str:
    return store.create(m.SIGNAL_EVENTS, {
        "userId": user_id,
        "eventType": event_type,
        "timestamp": timestamp,
        "payload": payload,
    })


def add_mirror(
    store: DocumentStore,
    user_id: str,
    day: date | str,
    mood: float,
    stress: float,
    **extra: Any,
) -> str:
    """Store a CognitiveMirror directly, bypassing the builder and triggers."""
    day_key = day if isinstance(day, str) else day.isoformat()
    store.set(m.COGNITIVE_MIRROR, m.daily_key(user_id, day_key), {
        "userId": user_id,
        "date": day_key,
        "moodScore": mood,
        "stressIndex": stress,
        "energyLevel": extra.pop("energyLevel", 100 - stress),
        **extra,
    })
    return m.daily_key(user_id, day_key)


class RecordingPushSender(MockPushSender):
    """MockPushSender that also keeps every (tokens, message) pair it sends."""

    def __init__(self, invalid_tokens: set[str] | None = None) -> None:
        super().__init__(invalid_tokens)
        self.sent: list[tuple[list[str], PushMessage]] = []

    async def send(self, tokens: list[str], message: PushMessage) -> list[SendResult]:
        self.sent.append((list(tokens), message))
        return await super().send(tokens, message)


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def document_db():
    """Create an in-memory DocumentDatabase for testing."""
    db = DocumentDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from lifelog.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def store(document_db) -> DocumentStore:
    return DocumentStore(document_db)


@pytest.fixture
def audit_logger(document_db) -> AuditLogger:
    return AuditLogger(document_db)


@pytest.fixture
def bus() -> TriggerBus:
    return TriggerBus()


@pytest.fixture
def job_ctx(store, bus, audit_logger) -> JobContext:
    """JobContext over the in-memory store with the clock frozen at NOW."""
    return JobContext(
        store=store,
        bus=bus,
        tz=timezone.utc,
        audit=audit_logger,
        clock=lambda: NOW,
    )


@pytest.fixture
def user(store) -> str:
    store.set(m.USERS, "u1", {"createdAt": 0})
    return "u1"
