"""Celery tasks for the weekly snapshot job.

Two tasks are provided:

``snapshot_all_targets_task``
    Acquires every registered target in turn and writes its snapshots.

``snapshot_target_task``
    Same for a single target, addressed by slug or alias.

For each target the markup (when the result is markup) is written as an
HTML snapshot, then events are extracted, normalized and written as JSON
and CSV.  Targets run sequentially inside one event loop; a failure on one
target is logged and counted and the remaining targets still run.

Retry policy:
    ``max_retries=0``.  The acquisition core already retries each target;
    a Celery retry would re-scrape targets that succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from fastpitch_events.acquisition.acquirer import AcquisitionCore
from fastpitch_events.adapters import events_from_result
from fastpitch_events.api.metrics import snapshot_runs_total
from fastpitch_events.config.settings import Settings, get_settings
from fastpitch_events.config.targets import TARGETS, TargetProfile, build_request, get_target
from fastpitch_events.storage.snapshots import SnapshotWriter
from fastpitch_events.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Async engine
# ---------------------------------------------------------------------------


async def _snapshot_target(
    profile: TargetProfile,
    *,
    core: AcquisitionCore,
    writer: SnapshotWriter,
    settings: Settings,
) -> dict[str, Any]:
    request = build_request(profile.url, settings=settings, profile=profile)
    result = await core.acquire(request)
    if not result.ok:
        logger.warning(
            "snapshot: %s failed after %d attempt(s): %s",
            profile.slug,
            len(result.attempts),
            result.error,
        )
        return {
            "status": "failed",
            "category": result.category.value if result.category else None,
            "error": str(result.error),
        }

    files: list[str] = []
    if result.markup is not None:
        path = writer.write_html(profile.slug, result.markup)
        if path is not None:
            files.append(str(path))

    events = events_from_result(result, profile)
    for path in (writer.write_json(profile.slug, events), writer.write_csv(profile.slug, events)):
        if path is not None:
            files.append(str(path))

    logger.info(
        "snapshot: %s -> %d event(s) via %s, %d file(s)",
        profile.slug,
        len(events),
        result.strategy.value if result.strategy else "?",
        len(files),
    )
    return {
        "status": "success",
        "strategy": result.strategy.value if result.strategy else None,
        "events": len(events),
        "files": files,
    }


async def run_snapshot(
    profiles: Iterable[TargetProfile],
    *,
    core: AcquisitionCore | None = None,
    writer: SnapshotWriter | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Snapshot each profile in order and return a per-slug summary.

    Args:
        profiles: Targets to snapshot.
        core: Acquisition core to use.  A fresh one (with its own browser
            gate and HTTP client) is created and closed when omitted.
        writer: Snapshot writer.  Defaults to one on ``settings.data_dir``.
        settings: Application settings.  Defaults to :func:`get_settings`.

    Returns:
        ``{"targets": {slug: summary}, "succeeded": n, "failed": n}``.
    """
    settings = settings or get_settings()
    writer = writer or SnapshotWriter(settings.data_dir)
    owns_core = core is None
    if core is None:
        core = AcquisitionCore.from_settings(settings)

    summary: dict[str, Any] = {}
    try:
        for profile in profiles:
            try:
                outcome = await _snapshot_target(
                    profile, core=core, writer=writer, settings=settings
                )
            except Exception as exc:  # noqa: BLE001
                logger.error("snapshot: unexpected error for %s: %s", profile.slug, exc)
                outcome = {"status": "failed", "category": None, "error": str(exc)}
            snapshot_runs_total.labels(status=outcome["status"]).inc()
            summary[profile.slug] = outcome
    finally:
        if owns_core:
            await core.aclose()

    succeeded = sum(1 for item in summary.values() if item["status"] == "success")
    return {"targets": summary, "succeeded": succeeded, "failed": len(summary) - succeeded}


# ---------------------------------------------------------------------------
# Celery tasks
# ---------------------------------------------------------------------------


@celery_app.task(
    name="fastpitch_events.acquisition.tasks.snapshot_all_targets_task",
    bind=False,
    acks_late=True,
    max_retries=0,
)
def snapshot_all_targets_task() -> dict[str, Any]:
    """Snapshot every registered target.

    Returns:
        The summary produced by :func:`run_snapshot`.
    """
    logger.info("snapshot: weekly job starting for %d target(s)", len(TARGETS))
    summary = asyncio.run(run_snapshot(TARGETS))
    logger.info(
        "snapshot: weekly job completed (%d succeeded, %d failed)",
        summary["succeeded"],
        summary["failed"],
    )
    return summary


@celery_app.task(
    name="fastpitch_events.acquisition.tasks.snapshot_target_task",
    bind=False,
    acks_late=True,
    max_retries=0,
)
def snapshot_target_task(slug: str) -> dict[str, Any]:
    """Snapshot a single registered target.

    Args:
        slug: Target slug or alias (e.g. ``"pgf-tournaments"`` or ``"pgf"``).

    Raises:
        ValueError: If no target is registered under ``slug``.
    """
    profile = get_target(slug)
    if profile is None:
        raise ValueError(f"unknown target: {slug!r}")
    return asyncio.run(run_snapshot([profile]))
