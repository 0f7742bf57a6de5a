"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.
Tuning knobs for the acquisition core, the HTTP front-end and the weekly
snapshot job are all read through this module. Never call ``os.getenv``
directly elsewhere in the codebase.

Usage::

    from fastpitch_events.config.settings import get_settings

    settings = get_settings()
    max_sessions = settings.max_concurrent_browsers
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fastpitch_events.acquisition.config import DEFAULT_USER_AGENT


class Settings(BaseSettings):
    """Service-wide configuration backed by environment variables and an optional .env file.

    Every field has a default so the service starts with no environment at
    all; production deployments typically override ``DATA_DIR``,
    ``MAX_CONCURRENT_BROWSERS`` and the Celery URLs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    app_name: str = "Fastpitch Events"
    """Human-readable application name shown in the OpenAPI docs."""

    debug: bool = False
    """Enable FastAPI debug mode.  Never True in production."""

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    port: int = 10000
    """Port used when the service is started via ``python -m uvicorn``."""

    data_dir: Path = Path("data")
    """Directory receiving HTML, JSON and CSV snapshots.  Created on demand."""

    # ------------------------------------------------------------------
    # Concurrency gate
    # ------------------------------------------------------------------

    max_concurrent_browsers: int = 2
    """Maximum number of headless browser sessions open at the same time.

    Each session is a full Chromium process, so keep this small on
    memory-constrained hosts.
    """

    gate_wait_timeout: float = 0.0
    """Seconds a request may wait for a free browser slot.

    ``0`` rejects immediately with a capacity error when the gate is
    saturated; a positive value waits at most that long before rejecting.
    """

    retry_slot_wait: float = 30.0
    """Seconds a retry may wait for a browser slot taken during its backoff.

    A retry that still finds no slot gives up on rendering and goes
    straight to the fallback.
    """

    # ------------------------------------------------------------------
    # Retry / backoff
    # ------------------------------------------------------------------

    fetch_attempts: int = 3
    """Number of rendering attempts per request before falling back."""

    navigation_timeout: float = 60.0
    """Hard navigation timeout per attempt, in seconds."""

    settle_delay_min: float = 3.0
    """Lower bound of the randomized post-load settle delay, in seconds."""

    settle_delay_max: float = 4.5
    """Upper bound of the randomized post-load settle delay, in seconds."""

    blocked_backoff_base: float = 2.0
    """Backoff multiplier (seconds per attempt index) after a blocked page."""

    error_backoff_base: float = 1.5
    """Backoff multiplier (seconds per attempt index) after a transport error."""

    backoff_jitter: float = 0.5
    """Upper bound of the uniform jitter added to every backoff wait."""

    request_deadline: Optional[float] = None
    """Overall wall-clock budget for one request in seconds.  ``None`` disables it."""

    fallback_timeout: float = 30.0
    """Timeout for plain (non-rendered) HTTP requests, in seconds."""

    # ------------------------------------------------------------------
    # Browser
    # ------------------------------------------------------------------

    user_agent: str = DEFAULT_USER_AGENT
    """User-agent presented by both the browser and the plain HTTP client."""

    browser_headless: bool = True
    """Launch Chromium headless.  Set to ``False`` only when debugging locally."""

    # ------------------------------------------------------------------
    # HTTP front-end
    # ------------------------------------------------------------------

    allowed_origins: list[str] = ["*"]
    """Origins permitted by the CORS middleware."""

    rate_limit_enabled: bool = True
    """Enable the slowapi rate limiter on the scrape routes."""

    scrape_rate_limit: str = "30/minute"
    """Per-client limit applied to every route that opens a browser."""

    metrics_enabled: bool = True
    """Expose Prometheus metrics at ``GET /metrics``."""

    # ------------------------------------------------------------------
    # Celery task queue / weekly snapshot
    # ------------------------------------------------------------------

    celery_broker_url: str = "redis://localhost:6379/1"
    """Redis URL used as Celery's message broker."""

    celery_result_backend: str = "redis://localhost:6379/2"
    """Redis URL used to store Celery task results."""

    snapshot_timezone: str = "America/Indiana/Indianapolis"
    """Timezone in which the weekly snapshot schedule is expressed."""

    snapshot_cron_day_of_week: str = "sun"
    """Crontab day-of-week for the weekly snapshot run."""

    snapshot_cron_hour: int = 23
    """Crontab hour for the weekly snapshot run."""

    snapshot_cron_minute: int = 59
    """Crontab minute for the weekly snapshot run."""

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if self.max_concurrent_browsers < 1:
            raise ValueError("max_concurrent_browsers must be at least 1")
        if self.fetch_attempts < 1:
            raise ValueError("fetch_attempts must be at least 1")
        if self.settle_delay_min > self.settle_delay_max:
            raise ValueError("settle_delay_min must not exceed settle_delay_max")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Uses ``functools.lru_cache`` so that Pydantic Settings reads the environment
    and .env file exactly once per process lifetime.  In tests, call
    ``get_settings.cache_clear()`` after patching environment variables.

    Returns:
        Settings: The validated settings object.
    """
    return Settings()
