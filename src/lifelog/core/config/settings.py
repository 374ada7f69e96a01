"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Lifelog pipeline configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback; there is no auth layer in front of the RPC gateway
    # other than the caller identity it forwards.
    lifelog_host: str = "127.0.0.1"
    lifelog_port: int = 8010
    lifelog_log_level: str = "info"
    lifelog_allow_insecure_bind: bool = False

    # Storage (document store)
    db_path: str = "~/.lifelog/documents.db"
    write_batch_size: int = 400

    # Encryption of sensitive document fields (voice transcripts)
    encryption_key: str = ""

    # Jobs
    timezone: str = "UTC"
    user_page_size: int = 200
    job_concurrency: int = 1
    scheduler_enabled: bool = True

    # Cron expressions (crontab format, evaluated in `timezone`)
    cron_daily_health: str = "0 2 * * *"
    cron_device_signals: str = "0 3 * * *"
    cron_shadow_cognition: str = "0 4 * * *"
    cron_obscura_patterns: str = "0 5 * * *"
    cron_cognitive_mirror: str = "0 6 * * *"
    cron_emotion_forecast: str = "0 7 * * *"
    cron_life_events: str = "0 8 * * sun"
    cron_passive_insights: str = "0 */3 * * *"
    cron_overlay_cleanup: str = "*/15 * * * *"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
