"""Wires the mind-state jobs, their triggers and their cron schedule."""

from __future__ import annotations

import logging

from lifelog.core.config.settings import Settings
from lifelog.core.notifications.sender import MockPushSender, PushSender
from lifelog.core.scheduler.runner import JobScheduler
from lifelog.domains.mindstate.domain_logic import models as m
from lifelog.domains.mindstate.domain_logic.mirror import CompositeScorer
from lifelog.domains.mindstate.domain_logic.sentiment import (
    KeywordSentimentScorer,
    SentimentScorer,
)
from lifelog.domains.mindstate.jobs.base import JobContext
from lifelog.domains.mindstate.jobs.cognitive_mirror import CognitiveMirrorBuilder
from lifelog.domains.mindstate.jobs.daily_aggregator import DailyAggregator
from lifelog.domains.mindstate.jobs.engagement import EngagementJobs
from lifelog.domains.mindstate.jobs.forecast import ForecastEngine
from lifelog.domains.mindstate.jobs.location import LocationTagger
from lifelog.domains.mindstate.jobs.notifications import NotificationProcessor
from lifelog.domains.mindstate.jobs.pattern_detectors import PatternDetectors
from lifelog.domains.mindstate.jobs.voice_profiles import VoiceProfileTracker

logger = logging.getLogger(__name__)


class MindStatePipeline:
    """Every handler of the pipeline, sharing one :class:`JobContext`.

    Constructing the pipeline registers its document-created triggers on
    ``ctx.bus``; :meth:`schedule` adds the cron jobs.
    """

    def __init__(
        self,
        ctx: JobContext,
        push_sender: PushSender | None = None,
        sentiment_scorer: SentimentScorer | None = None,
        composite_scorer: CompositeScorer | None = None,
    ) -> None:
        self.ctx = ctx
        self.sentiment_scorer = sentiment_scorer or KeywordSentimentScorer()
        self.push_sender = push_sender or MockPushSender()

        self.aggregator = DailyAggregator(ctx)
        self.mirror_builder = CognitiveMirrorBuilder(ctx, self.sentiment_scorer, composite_scorer)
        self.forecast_engine = ForecastEngine(ctx)
        self.detectors = PatternDetectors(ctx)
        self.engagement = EngagementJobs(ctx)
        self.location_tagger = LocationTagger(ctx)
        self.voice_profiles = VoiceProfileTracker(ctx)
        self.notifications = NotificationProcessor(ctx, self.push_sender)

        self.detectors.register(ctx.bus)
        ctx.bus.register(m.SIGNAL_EVENTS, self.location_tagger.on_signal_event)
        ctx.bus.register(m.SIGNAL_EVENTS, self.voice_profiles.on_signal_event)
        ctx.bus.register(m.NOTIFICATION_QUEUE, self.notifications.on_queued)

    def schedule(self, scheduler: JobScheduler, settings: Settings) -> list[str]:
        """Register every cron job. Returns the scheduled job ids."""
        jobs = {
            "daily_health": (settings.cron_daily_health, self.aggregator.run_health),
            "device_signals": (settings.cron_device_signals, self.aggregator.run_device_signals),
            "shadow_cognition": (
                settings.cron_shadow_cognition, self.aggregator.run_shadow_cognition
            ),
            "obscura_patterns": (
                settings.cron_obscura_patterns, self.aggregator.run_obscura_patterns
            ),
            "cognitive_mirror": (settings.cron_cognitive_mirror, self.mirror_builder.run),
            "emotion_forecast": (settings.cron_emotion_forecast, self.forecast_engine.run),
            "life_events": (settings.cron_life_events, self.detectors.run_life_events),
            "passive_insights": (
                settings.cron_passive_insights, self.engagement.run_passive_insights
            ),
            "overlay_cleanup": (
                settings.cron_overlay_cleanup, self.engagement.cleanup_expired_overlays
            ),
        }
        for job_id, (crontab, func) in jobs.items():
            scheduler.add_cron_job(job_id, crontab, func)
        logger.info("Scheduled %d pipeline jobs", len(jobs))
        return list(jobs)
