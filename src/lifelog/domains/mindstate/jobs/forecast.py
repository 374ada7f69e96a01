"""Forecast Engine job."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.forecast import HISTORY_DAYS, forecast_from_history
from lifelog.domains.mindstate.jobs.base import (
    JobContext,
    JobResult,
    for_each_user,
    write_daily_record,
)

logger = logging.getLogger(__name__)


class ForecastEngine:
    """Writes tomorrow's EmotionForecast for users with a week of history."""

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    async def forecast_for_user(self, user_id: str, today: date) -> dict[str, Any] | None:
        since = (today - timedelta(days=HISTORY_DAYS)).isoformat()
        history = self._ctx.store.query(
            m.COGNITIVE_MIRROR,
            where=[("userId", "==", user_id), ("date", ">=", since)],
            order_by="date",
            descending=True,
        )
        target = today + timedelta(days=1)
        forecast = forecast_from_history(history, target)
        if forecast is None:
            logger.debug("Not enough history to forecast for user %s (%d days)", user_id, len(history))
            return None

        doc = await write_daily_record(
            self._ctx, m.EMOTION_FORECAST, user_id, forecast.date, forecast.to_document()
        )
        logger.info(
            "Emotion forecast for user %s on %s: %s (%.2f)",
            user_id, forecast.date, forecast.predicted_mood, forecast.confidence,
        )
        return doc

    async def run(self, today: date | None = None) -> JobResult:
        today = today or self._ctx.today()

        async def _task(user: dict[str, Any]) -> bool:
            return await self.forecast_for_user(user["id"], today) is not None

        return await for_each_user(self._ctx, "emotion_forecast", _task)
