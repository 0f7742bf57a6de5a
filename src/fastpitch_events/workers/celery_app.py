"""Celery application for Fastpitch Events.

Configures the broker, result backend, serialization and timezone.  All
configuration values are sourced from ``Settings`` so that no
environment-specific values are hard-coded here.

Usage (starting a worker)::

    celery -A fastpitch_events.workers.celery_app worker --loglevel=info

Usage (starting the Beat scheduler for the weekly snapshot)::

    celery -A fastpitch_events.workers.celery_app beat --loglevel=info
"""

from __future__ import annotations

import logging

from celery import Celery
from celery.signals import worker_process_init
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

load_dotenv()

from fastpitch_events.config.settings import get_settings  # noqa: E402
from fastpitch_events.core.logging_config import configure_logging  # noqa: E402

settings = get_settings()

#: The global Celery application instance.
celery_app = Celery(
    "fastpitch_events",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "fastpitch_events.acquisition.tasks",
    ],
)

# ---------------------------------------------------------------------------
# Core configuration
# ---------------------------------------------------------------------------

celery_app.conf.update(
    # JSON only: task arguments and return values stay inspectable.
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Beat crontabs are expressed in the organisers' local time.
    timezone=settings.snapshot_timezone,
    enable_utc=True,
    task_acks_late=True,
    # One browser-heavy snapshot per worker process at a time.
    worker_prefetch_multiplier=1,
    result_expires=86_400,
    task_soft_time_limit=1_800,
    task_time_limit=2_400,
    beat_schedule_filename="celerybeat-schedule",
)

from fastpitch_events.workers.beat_schedule import beat_schedule  # noqa: E402

celery_app.conf.beat_schedule = beat_schedule


@worker_process_init.connect
def _configure_worker_logging(**kwargs: object) -> None:  # noqa: ARG001
    """Route worker logs through the same structlog pipeline as the API."""
    configure_logging(settings.log_level, process="worker")
    _logger.info("worker: logging configured at %s", settings.log_level)
