"""Per-site extraction adapters.

Each adapter implements ``extract(result, structure_key)`` returning raw
record dicts which :func:`events_from_result` funnels through the event
normalizer.

Adapters:
- UsssaAdapter: intercepted event-search JSON, search grid markup
- PgfAdapter: tournament cards
- BullpenAdapter: merged ``/api/events`` pages, event cards
- SoftballConnectedAdapter: tournaments table
- SourceAdapter: generic JSON lists and JSON-LD events for unregistered URLs
"""

from __future__ import annotations

from fastpitch_events.acquisition.models import FetchResult
from fastpitch_events.adapters.base import SourceAdapter
from fastpitch_events.adapters.bullpen import BullpenAdapter
from fastpitch_events.adapters.pgf import PgfAdapter
from fastpitch_events.adapters.softballconnected import SoftballConnectedAdapter
from fastpitch_events.adapters.usssa import UsssaAdapter
from fastpitch_events.config.targets import TargetProfile
from fastpitch_events.core.normalizer import EventNormalizer, NormalizedEvent

__all__ = [
    "ADAPTERS",
    "BullpenAdapter",
    "PgfAdapter",
    "SoftballConnectedAdapter",
    "SourceAdapter",
    "UsssaAdapter",
    "events_from_result",
    "get_adapter",
]

ADAPTERS: dict[str, SourceAdapter] = {
    adapter.name: adapter
    for adapter in (
        UsssaAdapter(),
        PgfAdapter(),
        BullpenAdapter(),
        SoftballConnectedAdapter(),
        SourceAdapter(),
    )
}

_normalizer = EventNormalizer()


def get_adapter(name: str | None) -> SourceAdapter:
    """Return the adapter registered under ``name``, or the generic one."""
    return ADAPTERS.get(name or "", ADAPTERS["generic"])


def events_from_result(
    result: FetchResult, profile: TargetProfile | None = None
) -> list[NormalizedEvent]:
    """Extract and normalize the events contained in a successful result.

    Raises:
        NormalizationError: If ``result`` is a failure.
    """
    adapter = get_adapter(profile.adapter if profile else None)
    records = adapter.extract(result, profile.structure_key if profile else None)
    source_tag = profile.source_tag if profile else None
    return [_normalizer.normalize(record, source_tag) for record in records]
