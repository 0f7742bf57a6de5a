"""USSSA fastpitch event search adapter.

The event search grid is filled from the site's own JSON API, so the
intercepted payload is the primary source.  Its records use PascalCase
keys and carry an event id instead of a URL.  When only the rendered DOM
is available the result rows of the search grid are read instead.
"""

from __future__ import annotations

from typing import Any

from fastpitch_events.adapters.base import SourceAdapter

_EVENT_URL = "https://usssa.com/fastpitch/event_home/?eventID={event_id}"


class UsssaAdapter(SourceAdapter):
    name = "usssa"
    card_selector = ".event-card, .eventSearchResult, tr.event-row"
    field_selectors = {
        "event_name": ".event-name, .eventName, td.name",
        "dates": ".event-dates, .eventDate, td.dates",
        "location": ".event-location, .eventLocation, td.location",
        "sanction": ".event-sanction, td.sanction",
    }
    date_range_field = "dates"

    def map_record(self, record: dict[str, Any]) -> dict[str, Any]:
        event_id = record.get("EventID") or record.get("eventId") or record.get("id")
        link = record.get("EventURL") or record.get("url")
        if not link and event_id:
            link = _EVENT_URL.format(event_id=event_id)
        return {
            "event_name": record.get("EventName") or record.get("eventName") or record.get("name"),
            "start_date": record.get("StartDate") or record.get("startDate"),
            "end_date": record.get("EndDate") or record.get("endDate"),
            "city": record.get("City") or record.get("city"),
            "state": record.get("State") or record.get("state"),
            "location": record.get("Location") or record.get("ParkName"),
            "sanction": record.get("Sanction") or record.get("Classification"),
            "link": link,
        }
