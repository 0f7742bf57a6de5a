"""Tests for the response interceptor."""

from __future__ import annotations

import asyncio
import json

import pytest

from fastpitch_events.acquisition.interceptor import ResponseInterceptor, merge_payloads
from fastpitch_events.acquisition.models import InterceptPolicy
from tests.factories.rendering import FakeResponse, FakeSession

API = "https://example.com/api/events"


def _json(url: str, body: object, **kwargs) -> FakeResponse:
    return FakeResponse(url, json.dumps(body), **kwargs)


class TestMatching:
    def test_requires_marker(self) -> None:
        with pytest.raises(ValueError):
            ResponseInterceptor("")

    def test_matches_marker_and_data_resource_types(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        assert interceptor.matches(f"{API}?page=2", "xhr")
        assert interceptor.matches(API, "fetch")

    def test_ignores_other_resource_types(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        assert not interceptor.matches(f"{API}.js", "script")
        assert not interceptor.matches(API, "document")

    def test_ignores_urls_without_marker(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        assert not interceptor.matches("https://example.com/api/teams", "xhr")

    def test_closed_interceptor_matches_nothing(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        interceptor.close()
        assert not interceptor.matches(API, "xhr")

    def test_attach_subscribes_to_session(self) -> None:
        session = FakeSession()
        interceptor = ResponseInterceptor("/api/events")
        interceptor.attach(session)
        assert session.subscriptions == [(interceptor.matches, interceptor.handle)]


@pytest.mark.asyncio
class TestCapture:
    async def test_parse_failures_are_recorded_not_raised(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(FakeResponse(API, "<html>maintenance</html>"))
        interceptor.handle(FakeResponse(API, "", error=RuntimeError("body evicted")))
        await interceptor.drain(1.0)

        assert len(interceptor.responses) == 2
        assert not any(r.parsed for r in interceptor.responses)
        assert interceptor.captured() is None

    async def test_first_match_keeps_first_parsed_body(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(FakeResponse(API, "not json"))
        interceptor.handle(_json(API, {"page": 1}))
        interceptor.handle(_json(API, {"page": 2}))
        await interceptor.drain(1.0)

        assert interceptor.captured() == {"page": 1}

    async def test_last_match_keeps_last_parsed_body(self) -> None:
        interceptor = ResponseInterceptor("/api/events", policy=InterceptPolicy.LAST_MATCH)
        interceptor.handle(_json(API, {"page": 1}))
        interceptor.handle(_json(API, {"page": 2}))
        await interceptor.drain(1.0)

        assert interceptor.captured() == {"page": 2}

    async def test_order_follows_arrival_not_completion(self) -> None:
        slow = asyncio.Event()
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(_json(API, {"page": 1}, gate=slow))
        interceptor.handle(_json(API, {"page": 2}))
        await asyncio.sleep(0)
        slow.set()
        await interceptor.drain(1.0)

        assert [r.body for r in interceptor.responses] == [{"page": 1}, {"page": 2}]
        assert interceptor.captured() == {"page": 1}

    async def test_accept_filter_applies_before_policy(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(_json(API, {"events": []}))
        interceptor.handle(_json(API, {"events": [{"name": "A"}]}))
        await interceptor.drain(1.0)

        captured = interceptor.captured(accept=lambda body: bool(body.get("events")))
        assert captured == {"events": [{"name": "A"}]}

    async def test_merge_all_combines_pages(self) -> None:
        interceptor = ResponseInterceptor("/api/events", policy=InterceptPolicy.MERGE_ALL)
        interceptor.handle(_json(API, {"events": [1, 2], "page": 1}))
        interceptor.handle(_json(API, {"events": [3], "page": 2}))
        await interceptor.drain(1.0)

        assert interceptor.captured() == {"events": [1, 2, 3], "page": 2}

    async def test_responses_after_close_are_ignored(self) -> None:
        interceptor = ResponseInterceptor("/api/events")
        interceptor.close()
        interceptor.handle(_json(API, {"page": 1}))
        await interceptor.drain(1.0)

        assert interceptor.responses == []

    async def test_close_cancels_in_flight_parses(self) -> None:
        never = asyncio.Event()
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(_json(API, {"page": 1}, gate=never))
        await asyncio.sleep(0)

        interceptor.close()
        await interceptor.drain(0.1)
        await asyncio.sleep(0)

        assert interceptor.responses == []
        assert interceptor.captured() is None

    async def test_drain_returns_after_timeout(self) -> None:
        never = asyncio.Event()
        interceptor = ResponseInterceptor("/api/events")
        interceptor.handle(_json(API, {"page": 1}, gate=never))

        await asyncio.wait_for(interceptor.drain(0.05), timeout=1.0)

        assert interceptor.responses == []
        interceptor.close()


class TestMergePayloads:
    def test_lists_concatenate(self) -> None:
        assert merge_payloads([1], [2, 3]) == [1, 2, 3]

    def test_dicts_merge_and_concatenate_list_values(self) -> None:
        merged = merge_payloads({"events": [1], "total": 5}, {"events": [2], "next": None})
        assert merged == {"events": [1, 2], "total": 5, "next": None}

    def test_mismatched_shapes_keep_right(self) -> None:
        assert merge_payloads([1], {"events": []}) == {"events": []}
