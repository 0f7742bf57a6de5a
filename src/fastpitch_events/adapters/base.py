"""Shared extraction logic for source adapters.

An adapter turns a successful :class:`~fastpitch_events.acquisition.models.FetchResult`
into raw record dicts for the event normalizer.  Structured payloads are
walked at the profile's structure key; markup is parsed with BeautifulSoup
using the adapter's CSS selectors, falling back to schema.org JSON-LD
``Event`` blocks that many listing pages embed.

Adapters never raise on unexpected shapes: they log and return fewer
records.  Site modules override the class attributes and, where the site's
JSON uses its own field names, :meth:`SourceAdapter.map_record`.
"""

from __future__ import annotations

import json
import re
from typing import Any, ClassVar
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag

from fastpitch_events.acquisition.models import FetchResult, ResultKind, resolve_structure
from fastpitch_events.core.exceptions import NormalizationError

logger = structlog.get_logger(__name__)

#: Keys under which JSON APIs commonly nest their record lists.
_LIST_KEYS: tuple[str, ...] = ("events", "tournaments", "items", "results", "data", "records")

_JSONLD_EVENT_TYPES = frozenset({"Event", "SportsEvent"})

_RANGE_SEPARATOR = re.compile(r"\s+(?:-|–|to)\s+", re.IGNORECASE)


def split_date_range(text: str | None) -> tuple[str | None, str | None]:
    """Split ``"Jun 7 - Jun 8, 2025"`` into its start and end parts.

    A single date returns ``(date, None)``.
    """
    if not text:
        return None, None
    parts = _RANGE_SEPARATOR.split(text.strip(), maxsplit=1)
    if len(parts) == 2:
        return parts[0].strip() or None, parts[1].strip() or None
    return text.strip() or None, None


def find_records(node: Any) -> list[dict[str, Any]]:
    """Return the list of record dicts at ``node``.

    Accepts a list directly, or a dict holding one under a common list key.
    Non-dict list members are dropped.
    """
    if isinstance(node, dict):
        for key in _LIST_KEYS:
            if isinstance(node.get(key), list):
                node = node[key]
                break
        else:
            return []
    if not isinstance(node, list):
        return []
    return [item for item in node if isinstance(item, dict)]


class SourceAdapter:
    """Generic adapter; also used for URLs with no registered target."""

    #: Registry key referenced by ``TargetProfile.adapter``.
    name: ClassVar[str] = "generic"

    #: CSS selector matching one event card (or table row) in markup.
    card_selector: ClassVar[str] = ""

    #: Output field -> CSS selector evaluated inside a card.
    field_selectors: ClassVar[dict[str, str]] = {}

    #: Card field holding a date range to split into start/end.
    date_range_field: ClassVar[str | None] = None

    #: Selector of the card's details link.
    link_selector: ClassVar[str] = "a[href]"

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def extract(
        self, result: FetchResult, structure_key: str | None = None
    ) -> list[dict[str, Any]]:
        """Return raw records found in ``result``.

        Raises:
            NormalizationError: If ``result`` is a failure; there is nothing
                to extract from it.
        """
        if result.kind is ResultKind.FAILURE:
            raise NormalizationError("cannot extract events from a failed acquisition", self.name)
        try:
            if result.kind is ResultKind.STRUCTURED:
                records = self.extract_structured(result.payload, structure_key)
            else:
                records = self.extract_markup(result.markup or "", base_url=result.url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("adapter.extract_failed", adapter=self.name, url=result.url, error=str(exc))
            return []
        logger.info(
            "adapter.extracted",
            adapter=self.name,
            url=result.url,
            kind=result.kind.value,
            count=len(records),
        )
        return records

    def extract_structured(self, payload: Any, structure_key: str | None = None) -> list[dict[str, Any]]:
        records = find_records(resolve_structure(payload, structure_key))
        return [self.map_record(record) for record in records]

    def map_record(self, record: dict[str, Any]) -> dict[str, Any]:
        """Rename site-specific JSON keys; the normalizer resolves common aliases."""
        return dict(record)

    def extract_markup(self, markup: str, base_url: str = "") -> list[dict[str, Any]]:
        soup = BeautifulSoup(markup, "html.parser")
        records: list[dict[str, Any]] = []
        if self.card_selector:
            for card in soup.select(self.card_selector):
                record = self._card_record(card, base_url)
                if record:
                    records.append(record)
        if not records:
            records = self._jsonld_records(soup, base_url)
        return records

    # ------------------------------------------------------------------
    # Markup helpers
    # ------------------------------------------------------------------

    def _card_record(self, card: Tag, base_url: str) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for field, selector in self.field_selectors.items():
            node = card.select_one(selector)
            if node is not None:
                record[field] = node.get_text(" ", strip=True)

        if self.date_range_field and record.get(self.date_range_field):
            start, end = split_date_range(record.pop(self.date_range_field))
            record.setdefault("start_date", start)
            record.setdefault("end_date", end)

        link = card.select_one(self.link_selector)
        if isinstance(link, Tag) and link.get("href"):
            record["link"] = urljoin(base_url, str(link["href"]))

        # A card without a name is layout chrome, not an event.
        if not record.get("event_name"):
            return {}
        return record

    def _jsonld_records(self, soup: BeautifulSoup, base_url: str) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except ValueError:
                logger.debug("adapter.jsonld_invalid", adapter=self.name)
                continue
            for item in _iter_jsonld(data):
                if item.get("@type") not in _JSONLD_EVENT_TYPES:
                    continue
                records.append(
                    {
                        "event_name": item.get("name"),
                        "start_date": item.get("startDate"),
                        "end_date": item.get("endDate"),
                        "location": _jsonld_location(item.get("location")),
                        "link": urljoin(base_url, item["url"]) if item.get("url") else None,
                    }
                )
        return records


def _iter_jsonld(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        if isinstance(data.get("@graph"), list):
            return [item for item in data["@graph"] if isinstance(item, dict)]
        return [data]
    return []


def _jsonld_location(location: Any) -> str | None:
    if isinstance(location, str):
        return location
    if not isinstance(location, dict):
        return None
    address = location.get("address")
    parts = [location.get("name")]
    if isinstance(address, dict):
        parts += [address.get("addressLocality"), address.get("addressRegion")]
    elif isinstance(address, str):
        parts.append(address)
    joined = ", ".join(str(p).strip() for p in parts if p and str(p).strip())
    return joined or None
