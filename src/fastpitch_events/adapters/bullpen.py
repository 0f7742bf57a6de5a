"""Bullpen Tournaments events adapter.

The events listing pages through ``/api/events`` calls; the registry
merges every intercepted page, so records arrive as one ``events`` list.
Venues are nested objects and links are built from the event slug.
"""

from __future__ import annotations

from typing import Any

from fastpitch_events.adapters.base import SourceAdapter

_EVENT_URL = "https://play.bullpentournaments.com/events/{slug}"


class BullpenAdapter(SourceAdapter):
    name = "bullpen"
    card_selector = ".event-card, .event-list-item"
    field_selectors = {
        "event_name": ".event-title, .event-name, h3",
        "dates": ".event-dates, .event-date",
        "location": ".event-venue, .event-location",
    }
    date_range_field = "dates"

    def map_record(self, record: dict[str, Any]) -> dict[str, Any]:
        mapped = dict(record)
        venue = record.get("venue")
        if isinstance(venue, dict):
            mapped["location"] = {
                "name": venue.get("name"),
                "city": venue.get("city"),
                "state": venue.get("state"),
            }
        slug = record.get("slug")
        if slug and not (record.get("url") or record.get("link")):
            mapped["link"] = _EVENT_URL.format(slug=slug)
        return mapped
