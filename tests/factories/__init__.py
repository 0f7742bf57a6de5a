"""Test data factories and in-memory doubles.

Available helpers
-----------------
RawEventFactory         - raw event dict as a site JSON API returns it
NormalizedEventFactory  - fully populated NormalizedEvent
FakeRenderer            - scripted renderer counting opened/closed sessions
FakeSession             - scripted rendering session
FakeResponse            - network response observed by a FakeSession
RecordingSleep          - asyncio.sleep stand-in recording requested delays
"""

from __future__ import annotations

from tests.factories.events import NormalizedEventFactory, RawEventFactory
from tests.factories.rendering import (
    CHALLENGE_MARKUP,
    CLEAN_MARKUP,
    FakeRenderer,
    FakeResponse,
    FakeSession,
    RecordingSleep,
)

__all__ = [
    "CHALLENGE_MARKUP",
    "CLEAN_MARKUP",
    "FakeRenderer",
    "FakeResponse",
    "FakeSession",
    "NormalizedEventFactory",
    "RawEventFactory",
    "RecordingSleep",
]
