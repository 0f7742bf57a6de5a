"""Target registry: which sites we scrape and how to approach each of them.

Per-site knowledge (endpoint URLs, interception markers, extraction adapter,
timing overrides) is data in :data:`TARGETS`, not code in the acquisition
core.  Adding a site means adding a :class:`TargetProfile` here and an
adapter under :mod:`fastpitch_events.adapters`.

Usage::

    from fastpitch_events.config.targets import build_request, resolve_target

    profile = resolve_target("https://pgfusa.com/tournaments")
    request = build_request(profile.url, settings=get_settings(), profile=profile)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from fastpitch_events.acquisition.models import FetchRequest, InterceptPolicy, Strategy
from fastpitch_events.config.settings import Settings


@dataclass(frozen=True)
class TargetProfile:
    """How to acquire and extract one registered site.

    Attributes:
        slug: Stable identifier used in snapshot file names.
        alias: Path segment of the ``/fastpitch/{alias}`` route.
        url: Canonical listing page.
        url_pattern: Regex matched (``re.search``) against request URLs.
        source_tag: Short label used as the default ``sanction``.
        adapter: Name of the extraction adapter in
            :data:`fastpitch_events.adapters.ADAPTERS`.
        strategy: Default strategy hint.
        direct_endpoint: Stable JSON endpoint for the ``direct_api`` hint.
        intercept_marker: Substring identifying the page's own data request.
        intercept_policy: Which intercepted bodies to keep.
        structure_key: Dotted path of the event list inside structured payloads.
        settle_delay: ``(min, max)`` settle override in seconds.
        attempts: Rendering attempt budget override.
    """

    slug: str
    alias: str
    url: str
    url_pattern: str
    source_tag: str
    adapter: str
    strategy: Strategy = Strategy.RENDER_AND_READ
    direct_endpoint: Optional[str] = None
    intercept_marker: Optional[str] = None
    intercept_policy: InterceptPolicy = InterceptPolicy.FIRST_MATCH
    structure_key: Optional[str] = None
    settle_delay: Optional[tuple[float, float]] = None
    attempts: Optional[int] = None

    def matches(self, url: str) -> bool:
        return re.search(self.url_pattern, url, re.IGNORECASE) is not None


# ---------------------------------------------------------------------------
# Registered targets
# ---------------------------------------------------------------------------

TARGETS: tuple[TargetProfile, ...] = (
    TargetProfile(
        slug="usssa-events",
        alias="events",
        url="https://usssa.com/fastpitch/eventSearch/",
        url_pattern=r"(^|\.|//)usssa\.com/fastpitch/eventsearch",
        source_tag="USSSA",
        adapter="usssa",
        strategy=Strategy.RENDER_AND_INTERCEPT,
        intercept_marker="/api/",
        structure_key="data",
        # The event search grid loads noticeably slower than the other sites.
        settle_delay=(4.0, 5.5),
    ),
    TargetProfile(
        slug="pgf-tournaments",
        alias="pgf",
        url="https://pgfusa.com/tournaments",
        url_pattern=r"(^|\.|//)pgfusa\.com/tournaments",
        source_tag="PGF",
        adapter="pgf",
    ),
    TargetProfile(
        slug="bullpen-events",
        alias="bullpen",
        url="https://play.bullpentournaments.com/events",
        url_pattern=r"(^|\.|//)bullpentournaments\.com/events",
        source_tag="Bullpen",
        adapter="bullpen",
        strategy=Strategy.RENDER_AND_INTERCEPT,
        intercept_marker="/api/events",
        intercept_policy=InterceptPolicy.MERGE_ALL,
        structure_key="events",
    ),
    TargetProfile(
        slug="softballconnected",
        alias="softballconnected",
        url="https://softballconnected.com/tournaments",
        url_pattern=r"(^|\.|//)softballconnected\.com/tournaments",
        source_tag="SoftballConnected",
        adapter="softballconnected",
    ),
)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def get_target(name: str) -> TargetProfile | None:
    """Return the profile whose slug or alias equals ``name``."""
    for profile in TARGETS:
        if name in (profile.slug, profile.alias):
            return profile
    return None


def resolve_target(url: str) -> TargetProfile | None:
    """Return the first profile whose URL pattern matches ``url``."""
    for profile in TARGETS:
        if profile.matches(url):
            return profile
    return None


def build_request(
    url: str,
    *,
    settings: Settings,
    hint: Strategy | None = None,
    profile: TargetProfile | None = None,
) -> FetchRequest:
    """Merge a target profile and the configured tuning into a ``FetchRequest``.

    Args:
        url: URL to acquire.
        settings: Application settings (timeouts, attempts, settle range).
        hint: Caller's strategy hint; overrides the profile's default.
        profile: Registered profile.  Resolved from ``url`` when omitted;
            unknown URLs get a plain render-and-read request.

    Raises:
        ValueError: If the merged values do not form a valid request.
    """
    if profile is None:
        profile = resolve_target(url)

    settle = (settings.settle_delay_min, settings.settle_delay_max)
    if profile is None:
        return FetchRequest(
            url=url,
            strategy=hint or Strategy.RENDER_AND_READ,
            attempts=settings.fetch_attempts,
            timeout=settings.navigation_timeout,
            settle_delay=settle,
            deadline=settings.request_deadline,
        )

    return FetchRequest(
        url=url,
        strategy=hint or profile.strategy,
        attempts=profile.attempts or settings.fetch_attempts,
        timeout=settings.navigation_timeout,
        settle_delay=profile.settle_delay or settle,
        direct_endpoint=profile.direct_endpoint,
        intercept_marker=profile.intercept_marker,
        intercept_policy=profile.intercept_policy,
        structure_key=profile.structure_key,
        deadline=settings.request_deadline,
    )
