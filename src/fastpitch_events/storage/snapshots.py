"""Snapshot writer: persist acquired pages and normalized events to disk.

Files land in the configured data directory as
``{slug}-{timestamp}.{html,json,csv}`` where ``timestamp`` is a UTC ISO 8601
time with ``:`` and ``.`` replaced by ``-`` so names are portable.

- JSON: ``{"count": n, "events": [...]}`` with fields in fixed order.
- CSV: header ``event_name,start_date,end_date,location,sanction,link``;
  every cell quoted and embedded quotes doubled.

Writes go to a temporary file that is renamed into place, so a crashed run
never leaves a truncated snapshot.  Failures are logged and reported by a
``None`` return value; they never propagate to the caller.
"""

from __future__ import annotations

import csv
import io
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

import structlog

from fastpitch_events.core.exceptions import SnapshotError
from fastpitch_events.core.normalizer import EVENT_FIELDS, NormalizedEvent

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def render_json(events: Sequence[NormalizedEvent]) -> str:
    """Serialize events as ``{"count": n, "events": [...]}``."""
    document = {
        "count": len(events),
        "events": [event.model_dump() for event in events],
    }
    return json.dumps(document, ensure_ascii=False, indent=2)


def render_csv(events: Sequence[NormalizedEvent]) -> str:
    """Serialize events as CSV with every cell quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EVENT_FIELDS)
    for event in events:
        writer.writerow(event.as_row())
    return buf.getvalue()


def snapshot_timestamp(moment: datetime) -> str:
    """Return a file-name-safe UTC timestamp (``2025-06-01T04-59-00-000Z``)."""
    moment = moment.astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class SnapshotWriter:
    """Write timestamped snapshot files into ``data_dir``.

    Args:
        data_dir: Destination directory.  Created on first write.
        now: Clock returning an aware ``datetime``; injectable for tests.
    """

    def __init__(
        self,
        data_dir: Path | str,
        *,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._data_dir = Path(data_dir)
        self._now = now

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def write_html(self, slug: str, markup: str) -> Path | None:
        return self._write(slug, "html", markup)

    def write_json(self, slug: str, events: Sequence[NormalizedEvent]) -> Path | None:
        return self._write(slug, "json", render_json(events))

    def write_csv(self, slug: str, events: Sequence[NormalizedEvent]) -> Path | None:
        return self._write(slug, "csv", render_csv(events))

    def _write(self, slug: str, extension: str, content: str) -> Path | None:
        path = self._data_dir / f"{slug}-{snapshot_timestamp(self._now())}.{extension}"
        try:
            self._atomic_write(path, content)
        except SnapshotError as exc:
            logger.error(
                "snapshot.write_failed",
                slug=slug,
                path=exc.path,
                error=str(exc),
            )
            return None
        logger.info("snapshot.written", slug=slug, path=str(path), bytes=len(content))
        return path

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(content, encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, ValueError) as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise SnapshotError(f"could not write snapshot: {exc}", path=str(path)) from exc
