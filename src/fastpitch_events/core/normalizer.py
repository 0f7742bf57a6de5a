"""Event normalizer: per-site raw records -> ``NormalizedEvent``.

Every source adapter hands loosely shaped dicts to :class:`EventNormalizer`,
which resolves field aliases, coerces values to trimmed strings and fills
anything missing with the ``"N/A"`` sentinel.  The mapping is total (it
never raises) and idempotent over its own output, so a stored snapshot can
be re-normalized without change.

Example usage::

    from fastpitch_events.core.normalizer import normalize

    event = normalize({"title": " Summer Slam ", "city": "Tulsa", "state": "OK"}, "PGF")
    event.location  # "Tulsa, OK"
    event.sanction  # "PGF"
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

#: Placeholder for any field the source did not provide.
SENTINEL = "N/A"

#: Output field order.  Also the CSV header order.
EVENT_FIELDS: tuple[str, ...] = (
    "event_name",
    "start_date",
    "end_date",
    "location",
    "sanction",
    "link",
)

# Candidate source keys per output field, tried in order.  The canonical
# name comes first so normalized output maps onto itself.
_ALIASES: dict[str, tuple[str, ...]] = {
    "event_name": ("event_name", "eventName", "name", "title", "tournamentName", "tournament"),
    "start_date": ("start_date", "startDate", "start", "beginDate", "dateStart"),
    "end_date": ("end_date", "endDate", "end", "finishDate", "dateEnd"),
    "location": ("location", "venue", "venueName", "place", "address"),
    "sanction": ("sanction", "sanctionBody", "sanctioning", "organization"),
    "link": ("link", "url", "href", "eventUrl", "detailsUrl"),
}

# Keys joined when the location field is itself a mapping, and when no
# location field is present at all.
_LOCATION_PARTS: tuple[str, ...] = ("name", "city", "state")
_RECORD_LOCATION_PARTS: tuple[str, ...] = ("city", "state")

_WHITESPACE = re.compile(r"\s+")


class NormalizedEvent(BaseModel):
    """One tournament listing in the shared output shape.

    Every field is a non-empty string; missing data is :data:`SENTINEL`.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str = SENTINEL
    start_date: str = SENTINEL
    end_date: str = SENTINEL
    location: str = SENTINEL
    sanction: str = SENTINEL
    link: str = SENTINEL

    def as_row(self) -> list[str]:
        """Return the field values in :data:`EVENT_FIELDS` order."""
        return [getattr(self, name) for name in EVENT_FIELDS]


class EventNormalizer:
    """Maps raw per-site records to :class:`NormalizedEvent`.

    Stateless; one instance can be shared across tasks.
    """

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def normalize(self, raw: Any, source_tag: str | None = None) -> NormalizedEvent:
        """Map ``raw`` to a :class:`NormalizedEvent`.

        Args:
            raw: Raw record.  Anything other than a mapping yields an
                all-sentinel event.
            source_tag: Short source label (e.g. ``"USSSA"``) used as the
                ``sanction`` when the record carries none.

        Returns:
            The normalized event.  Never raises.
        """
        if not isinstance(raw, Mapping):
            logger.debug("normalizer: non-mapping record of type %s", type(raw).__name__)
            return NormalizedEvent()

        values = {
            "event_name": self._extract(raw, _ALIASES["event_name"]),
            "start_date": self._extract(raw, _ALIASES["start_date"]),
            "end_date": self._extract(raw, _ALIASES["end_date"]),
            "location": self._extract_location(raw),
            "sanction": self._extract(raw, _ALIASES["sanction"]) or _clean(source_tag),
            "link": self._extract(raw, _ALIASES["link"]),
        }
        return NormalizedEvent(**{key: value or SENTINEL for key, value in values.items()})

    def normalize_many(self, records: Any, source_tag: str | None = None) -> list[NormalizedEvent]:
        """Normalize every record of an iterable; a non-list input yields ``[]``."""
        if not isinstance(records, (list, tuple)):
            return []
        return [self.normalize(record, source_tag) for record in records]

    # ------------------------------------------------------------------
    # Private extraction helpers
    # ------------------------------------------------------------------

    def _extract(self, raw: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
        """Return the first non-blank value found under any of *keys*."""
        for key in keys:
            value = _clean(raw.get(key))
            if value:
                return value
        return None

    def _extract_location(self, raw: Mapping[str, Any]) -> str | None:
        for key in _ALIASES["location"]:
            value = raw.get(key)
            if isinstance(value, Mapping):
                joined = _join_parts(value, _LOCATION_PARTS)
                if joined:
                    return joined
                continue
            cleaned = _clean(value)
            if cleaned:
                return cleaned
        return _join_parts(raw, _RECORD_LOCATION_PARTS)


def _join_parts(raw: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    parts = [_clean(raw.get(key)) for key in keys]
    joined = ", ".join(part for part in parts if part)
    return joined or None


def _clean(value: Any) -> str | None:
    """Coerce ``value`` to a whitespace-collapsed string, or ``None`` if blank."""
    if value is None or isinstance(value, (Mapping, bool)):
        return None
    if isinstance(value, (list, tuple)):
        parts = [_clean(item) for item in value]
        text = ", ".join(part for part in parts if part)
    else:
        text = str(value)
    # Lone surrogates from JSON escapes cannot be encoded as UTF-8.
    text = text.encode("utf-8", "replace").decode("utf-8")
    text = _WHITESPACE.sub(" ", text).strip()
    return text or None


_default = EventNormalizer()


def normalize(raw: Any, source_tag: str | None = None) -> NormalizedEvent:
    """Module-level shortcut for :meth:`EventNormalizer.normalize`."""
    return _default.normalize(raw, source_tag)
