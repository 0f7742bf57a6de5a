"""Premier Girls Fastpitch (PGF) tournaments adapter.

The tournaments page is server-rendered cards; each card holds the name,
a date range, the host city and a details link.
"""

from __future__ import annotations

from fastpitch_events.adapters.base import SourceAdapter


class PgfAdapter(SourceAdapter):
    name = "pgf"
    card_selector = ".tournament-card, .tournament-item, article.tournament"
    field_selectors = {
        "event_name": ".tournament-name, .tournament-title, h2, h3",
        "dates": ".tournament-dates, .tournament-date, .date",
        "location": ".tournament-location, .location",
    }
    date_range_field = "dates"
