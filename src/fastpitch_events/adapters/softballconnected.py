"""SoftballConnected tournaments adapter.

Tournaments are listed in a plain results table: name, dates, location and
sanctioning body, one row per event.
"""

from __future__ import annotations

from fastpitch_events.adapters.base import SourceAdapter


class SoftballConnectedAdapter(SourceAdapter):
    name = "softballconnected"
    card_selector = "table.tournaments tbody tr, .tournament-row"
    field_selectors = {
        "event_name": "td.name, .tournament-name",
        "dates": "td.dates, .tournament-dates",
        "location": "td.location, .tournament-location",
        "sanction": "td.sanction, .tournament-sanction",
    }
    date_range_field = "dates"
