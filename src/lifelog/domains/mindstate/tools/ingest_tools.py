"""MCP tools for capturing raw signals and user configuration.

Raw signal events are immutable once recorded; the nightly jobs read them
back by user and timestamp. Voice events get a sentiment score at capture
time so the Cognitive Mirror does not re-score transcripts.
"""

from __future__ import annotations

import json
import logging
import math
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from lifelog.core.server.errors import INVALID_ARGUMENT, RpcError, invoke_rpc, require_caller
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.jobs.base import create_record

if TYPE_CHECKING:
    from lifelog.core.audit.logger import AuditLogger
    from lifelog.domains.mindstate.pipeline import MindStatePipeline

logger = logging.getLogger(__name__)

_ALLOWED_SETTINGS = {"passiveInsightsEnabled"}


def _parse_object(raw: str, field: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RpcError(INVALID_ARGUMENT, f"{field} must be a JSON object") from exc
    if not isinstance(value, dict):
        raise RpcError(INVALID_ARGUMENT, f"{field} must be a JSON object")
    return value


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _check_number(
    body: dict[str, Any],
    key: str,
    low: float | None = None,
    high: float | None = None,
) -> None:
    if body.get(key) is None:
        return
    value = body[key]
    if not _is_number(value):
        raise RpcError(INVALID_ARGUMENT, f"payload.{key} must be a number")
    if low is not None and value < low:
        raise RpcError(INVALID_ARGUMENT, f"payload.{key} must be at least {low}")
    if high is not None and value > high:
        raise RpcError(INVALID_ARGUMENT, f"payload.{key} must be at most {high}")


def _check_string(body: dict[str, Any], key: str) -> None:
    if body.get(key) is not None and not isinstance(body[key], str):
        raise RpcError(INVALID_ARGUMENT, f"payload.{key} must be a string")


def validate_payload(event_type: str, body: dict[str, Any]) -> None:
    """Reject payload fields the nightly jobs could not read back.

    Raw events are never rewritten, so a malformed field would fail every
    aggregation of that user's day.
    """
    _check_number(body, "eventDuration", low=0)
    if event_type == m.HEART_RATE:
        _check_number(body, "bpm", low=0)
    if event_type == m.VOICE:
        _check_number(body, "sentimentScore", low=-1, high=1)
        for key in ("transcript", "emotion", "speakerLabel", "sentimentLabel"):
            _check_string(body, key)
    if event_type == m.CAMERA_CAPTURE:
        _check_string(body, "cameraAngle")
        if body.get("objectTags") is not None and not isinstance(body["objectTags"], list):
            raise RpcError(INVALID_ARGUMENT, "payload.objectTags must be a list")
    if event_type == m.LOCATION:
        _check_string(body, "placeId")
        _check_string(body, "visitType")
        coords = body.get("coords")
        if coords is not None:
            if not isinstance(coords, dict):
                raise RpcError(INVALID_ARGUMENT, "payload.coords must be an object")
            for key in ("lat", "lng", "accuracy"):
                if coords.get(key) is not None and not _is_number(coords[key]):
                    raise RpcError(INVALID_ARGUMENT, f"payload.coords.{key} must be a number")


def register_ingest_tools(
    mcp: FastMCP,
    pipeline: MindStatePipeline,
    audit: AuditLogger | None = None,
) -> None:
    """Register signal capture and user settings tools on the MCP server."""
    jobs = pipeline.ctx

    @mcp.tool
    async def record_signal_event(
        ctx: Context,
        event_type: str,
        payload: str = "",
        timestamp: int = 0,
        caller_uid: str = "",
    ) -> str:
        """Record one raw signal event (voice, device, health, camera or location).

        Args:
            event_type: One of motion_event, notification_received, screen_on,
                app_opened, sleep_start, sleep_end, heart_rate, camera_capture,
                voice, location.
            payload: JSON object with event-specific fields, e.g.
                '{"eventDuration": 120}' or '{"transcript": "..."}'.
            timestamp: Event time in epoch milliseconds. Defaults to now.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            if event_type not in m.EVENT_TYPES:
                raise RpcError(INVALID_ARGUMENT, f"Unknown eventType: {event_type}")
            if timestamp < 0:
                raise RpcError(INVALID_ARGUMENT, "timestamp must not be negative")
            body = _parse_object(payload, "payload")
            validate_payload(event_type, body)

            if event_type == m.VOICE and "sentimentScore" not in body:
                sentiment = pipeline.sentiment_scorer.score(body.get("transcript") or "")
                body["sentimentScore"] = sentiment.score
                body.setdefault("sentimentLabel", sentiment.label)

            store = jobs.store
            if not store.exists(m.USERS, uid):
                store.set(m.USERS, uid, {"createdAt": jobs.now_ms()})

            event = await create_record(jobs, m.SIGNAL_EVENTS, uid, {
                "eventType": event_type,
                "timestamp": timestamp or jobs.now_ms(),
                "payload": body,
            })
            logger.info("Recorded %s event %s for user %s", event_type, event["id"], uid)
            return json.dumps({
                "status": "recorded",
                "event_id": event["id"],
                "event_type": event_type,
                "timestamp": event["timestamp"],
            })

        return await invoke_rpc(
            "record_signal_event",
            handler,
            caller_uid=caller_uid,
            params={"event_type": event_type, "payload": payload, "timestamp": timestamp},
            audit=audit,
        )

    @mcp.tool
    async def register_device_token(
        ctx: Context,
        token: str,
        caller_uid: str = "",
    ) -> str:
        """Register a push notification token for the calling user's device.

        Args:
            token: Device registration token from the push provider.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            if not token:
                raise RpcError(INVALID_ARGUMENT, "token is required")

            existing = jobs.store.query(
                m.DEVICE_TOKENS,
                where=[("userId", "==", uid), ("token", "==", token)],
                limit=1,
            )
            if existing:
                jobs.store.update(m.DEVICE_TOKENS, existing[0]["id"], {"active": True})
                return json.dumps({"status": "reactivated", "token_id": existing[0]["id"]})

            token_id = jobs.store.create(m.DEVICE_TOKENS, {
                "userId": uid,
                "token": token,
                "active": True,
                "createdAt": jobs.now_ms(),
            })
            return json.dumps({"status": "registered", "token_id": token_id})

        return await invoke_rpc(
            "register_device_token", handler, caller_uid=caller_uid, audit=audit
        )

    @mcp.tool
    async def update_user_settings(
        ctx: Context,
        notification_preferences: str = "",
        settings: str = "",
        narrator_prefs: str = "",
        caller_uid: str = "",
    ) -> str:
        """Update notification preferences, feature settings or narrator preferences.

        Each argument is a JSON object merged into the stored value.

        Args:
            notification_preferences: e.g. '{"enabled": true, "life_event": false}'.
            settings: e.g. '{"passiveInsightsEnabled": true}'.
            narrator_prefs: e.g. '{"toneStyle": "playful"}'.
            caller_uid: Authenticated user id supplied by the gateway.
        """
        async def handler() -> str:
            uid = require_caller(caller_uid)
            prefs = _parse_object(notification_preferences, "notification_preferences")
            feature_settings = _parse_object(settings, "settings")
            narrator = _parse_object(narrator_prefs, "narrator_prefs")

            unknown = set(feature_settings) - _ALLOWED_SETTINGS
            if unknown:
                raise RpcError(INVALID_ARGUMENT, f"Unknown settings: {sorted(unknown)}")
            for key, value in prefs.items():
                if not isinstance(value, bool):
                    raise RpcError(INVALID_ARGUMENT, f"Preference {key} must be a boolean")

            user = jobs.store.get(m.USERS, uid) or {"createdAt": jobs.now_ms()}
            user.pop("id", None)
            user["notificationPreferences"] = {**user.get("notificationPreferences", {}), **prefs}
            user["settings"] = {**user.get("settings", {}), **feature_settings}
            user["narratorPrefs"] = {**user.get("narratorPrefs", {}), **narrator}
            jobs.store.set(m.USERS, uid, user)

            return json.dumps({"status": "updated", "user": user})

        return await invoke_rpc(
            "update_user_settings",
            handler,
            caller_uid=caller_uid,
            params={
                "notification_preferences": notification_preferences,
                "settings": settings,
                "narrator_prefs": narrator_prefs,
            },
            audit=audit,
        )
