"""Celery Beat periodic task schedule for Fastpitch Events.

Times are expressed in ``SNAPSHOT_TIMEZONE`` (default
``America/Indiana/Indianapolis``, configured in ``celery_app.py``).

+---------------------------+---------------------+-----------------------------+
| Task name                 | Schedule            | Purpose                     |
+===========================+=====================+=============================+
| weekly_snapshot           | Sun 23:59 local     | Acquire every registered    |
|                           |                     | target and write HTML, JSON |
|                           |                     | and CSV snapshots.          |
+---------------------------+---------------------+-----------------------------+
"""

from __future__ import annotations

from celery.schedules import crontab

from fastpitch_events.config.settings import get_settings

_settings = get_settings()

#: Celery Beat schedule dict.  Applied to ``celery_app.conf.beat_schedule``
#: in ``celery_app.py``.
beat_schedule: dict[str, dict] = {  # type: ignore[type-arg]
    "weekly_snapshot": {
        "task": "fastpitch_events.acquisition.tasks.snapshot_all_targets_task",
        "schedule": crontab(
            day_of_week=_settings.snapshot_cron_day_of_week,
            hour=_settings.snapshot_cron_hour,
            minute=_settings.snapshot_cron_minute,
        ),
        "options": {
            "expires": 6 * 3_600,  # discard if not started within 6 hours
        },
    },
}
