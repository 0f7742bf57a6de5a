"""Unit tests for the per-site extraction adapters."""

from __future__ import annotations

import json

import pytest

from fastpitch_events.acquisition.models import FetchResult, Strategy
from fastpitch_events.adapters import ADAPTERS, events_from_result, get_adapter
from fastpitch_events.adapters.base import SourceAdapter, find_records, split_date_range
from fastpitch_events.config.targets import get_target
from fastpitch_events.core.exceptions import NormalizationError, TransportError
from fastpitch_events.core.normalizer import SENTINEL


def _markup(url: str, markup: str) -> FetchResult:
    return FetchResult.from_markup(url, markup, Strategy.RENDER_AND_READ, [])


def _payload(url: str, payload: object) -> FetchResult:
    return FetchResult.from_payload(url, payload, Strategy.RENDER_AND_INTERCEPT, [])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSplitDateRange:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Jun 7 - Jun 8, 2025", ("Jun 7", "Jun 8, 2025")),
            ("06/07/2025 – 06/08/2025", ("06/07/2025", "06/08/2025")),
            ("June 7 to June 8", ("June 7", "June 8")),
            ("Jun 7, 2025", ("Jun 7, 2025", None)),
            ("", (None, None)),
            (None, (None, None)),
        ],
    )
    def test_split(self, text, expected) -> None:
        assert split_date_range(text) == expected

    def test_hyphenated_dates_are_not_split(self) -> None:
        assert split_date_range("2025-06-07") == ("2025-06-07", None)


class TestFindRecords:
    def test_list_is_taken_directly(self) -> None:
        assert find_records([{"a": 1}, "junk", {"b": 2}]) == [{"a": 1}, {"b": 2}]

    def test_common_list_keys(self) -> None:
        assert find_records({"tournaments": [{"a": 1}]}) == [{"a": 1}]

    def test_unknown_shapes_yield_nothing(self) -> None:
        assert find_records({"meta": {}}) == []
        assert find_records("text") == []
        assert find_records(None) == []


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_every_target_has_an_adapter(self) -> None:
        for alias in ("events", "pgf", "bullpen", "softballconnected"):
            assert get_target(alias).adapter in ADAPTERS

    def test_unknown_name_gets_generic(self) -> None:
        assert type(get_adapter("nope")) is SourceAdapter
        assert type(get_adapter(None)) is SourceAdapter

    def test_failure_result_is_rejected(self) -> None:
        failure = FetchResult.from_error("https://example.com", TransportError("HTTP 500"), [])
        with pytest.raises(NormalizationError):
            events_from_result(failure)


# ---------------------------------------------------------------------------
# Site adapters
# ---------------------------------------------------------------------------


class TestUsssa:
    def test_intercepted_payload(self) -> None:
        profile = get_target("events")
        payload = {
            "data": [
                {
                    "EventID": 31337,
                    "EventName": "Fastpitch World Series",
                    "StartDate": "07/21/2025",
                    "EndDate": "07/27/2025",
                    "City": "Columbus",
                    "State": "GA",
                }
            ]
        }

        events = events_from_result(_payload(profile.url, payload), profile)

        assert len(events) == 1
        event = events[0]
        assert event.event_name == "Fastpitch World Series"
        assert event.location == "Columbus, GA"
        assert event.sanction == "USSSA"
        assert event.link == "https://usssa.com/fastpitch/event_home/?eventID=31337"

    def test_search_grid_rows(self) -> None:
        profile = get_target("events")
        markup = """
        <table><tbody>
          <tr class="event-row">
            <td class="name">Spring Opener</td>
            <td class="dates">Mar 1 - Mar 2, 2025</td>
            <td class="location">Oklahoma City, OK</td>
            <td><a href="/fastpitch/event_home/?eventID=1">View</a></td>
          </tr>
        </tbody></table>
        """

        events = events_from_result(_markup(profile.url, markup), profile)

        assert [e.event_name for e in events] == ["Spring Opener"]
        assert events[0].start_date == "Mar 1"
        assert events[0].link == "https://usssa.com/fastpitch/event_home/?eventID=1"


class TestPgf:
    def test_cards_without_names_are_skipped(self) -> None:
        profile = get_target("pgf")
        markup = """
        <div class="tournament-card"><h3 class="tournament-name">PGF Regional</h3>
          <span class="tournament-location">Denver, CO</span></div>
        <div class="tournament-card"><span class="tournament-location">Ad slot</span></div>
        """

        events = events_from_result(_markup(profile.url, markup), profile)

        assert len(events) == 1
        assert events[0].location == "Denver, CO"
        assert events[0].start_date == SENTINEL
        assert events[0].link == SENTINEL


class TestBullpen:
    def test_merged_pages_with_nested_venue(self) -> None:
        profile = get_target("bullpen")
        payload = {
            "events": [
                {
                    "name": "Bullpen Fall Classic",
                    "startDate": "2025-10-04",
                    "slug": "fall-classic",
                    "venue": {"name": "Grand Park", "city": "Westfield", "state": "IN"},
                },
                {"name": "Winter Warmup", "url": "https://play.bullpentournaments.com/e/9"},
            ]
        }

        events = events_from_result(_payload(profile.url, payload), profile)

        assert events[0].location == "Grand Park, Westfield, IN"
        assert events[0].link == "https://play.bullpentournaments.com/events/fall-classic"
        assert events[1].link == "https://play.bullpentournaments.com/e/9"
        assert {e.sanction for e in events} == {"Bullpen"}


class TestSoftballConnected:
    def test_table_rows(self) -> None:
        profile = get_target("softballconnected")
        markup = """
        <table class="tournaments"><tbody>
          <tr><td class="name">Lone Star Shootout</td><td class="dates">Apr 12 to Apr 13</td>
              <td class="location">Waco, TX</td><td class="sanction">NSA</td></tr>
          <tr><td class="name">Gulf Coast Classic</td><td class="dates">May 3</td>
              <td class="location">Mobile, AL</td><td class="sanction"></td></tr>
        </tbody></table>
        """

        events = events_from_result(_markup(profile.url, markup), profile)

        assert [e.sanction for e in events] == ["NSA", "SoftballConnected"]
        assert events[0].end_date == "Apr 13"
        assert events[1].end_date == SENTINEL


class TestGeneric:
    def test_jsonld_events(self) -> None:
        data = {
            "@graph": [
                {"@type": "Organization", "name": "Host"},
                {
                    "@type": "SportsEvent",
                    "name": "Desert Heat",
                    "startDate": "2025-02-14",
                    "endDate": "2025-02-16",
                    "url": "/events/desert-heat",
                    "location": {
                        "name": "Rose Mofford",
                        "address": {"addressLocality": "Phoenix", "addressRegion": "AZ"},
                    },
                },
            ]
        }
        markup = f'<script type="application/ld+json">{json.dumps(data)}</script>'

        events = events_from_result(_markup("https://example.com/list", markup))

        assert len(events) == 1
        assert events[0].event_name == "Desert Heat"
        assert events[0].location == "Rose Mofford, Phoenix, AZ"
        assert events[0].link == "https://example.com/events/desert-heat"
        assert events[0].sanction == SENTINEL

    def test_invalid_jsonld_is_skipped(self) -> None:
        markup = '<script type="application/ld+json">{not json</script>'
        assert events_from_result(_markup("https://example.com", markup)) == []

    def test_unexpected_payload_yields_no_events(self) -> None:
        assert events_from_result(_payload("https://example.com", {"status": "ok"})) == []
