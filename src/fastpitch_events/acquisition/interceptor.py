"""Response interception for render-and-intercept acquisitions.

Many tournament sites render their listings from a JSON call the page makes
to its own backend.  Capturing that response gives already-structured data
and avoids scraping markup at all.

An interceptor belongs to exactly one rendering attempt: it is attached
before navigation, drained after the settle delay and closed when the
attempt ends.  Responses arriving after :meth:`ResponseInterceptor.close`
are ignored, and in-flight parses are cancelled.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Iterable

from fastpitch_events.acquisition.config import (
    DATA_FETCH_RESOURCE_TYPES,
    INTERCEPT_DRAIN_TIMEOUT,
)
from fastpitch_events.acquisition.models import InterceptedResponse, InterceptPolicy
from fastpitch_events.acquisition.rendering import ObservedResponse, RenderingSession

logger = logging.getLogger(__name__)


class ResponseInterceptor:
    """Capture structured bodies of the page's own data requests.

    Args:
        marker: Substring a response URL must contain to be considered
            (e.g. ``"/api/events"``).
        policy: Which successfully parsed bodies form the capture.
        resource_types: Playwright resource kinds treated as data fetches.
    """

    def __init__(
        self,
        marker: str,
        *,
        policy: InterceptPolicy = InterceptPolicy.FIRST_MATCH,
        resource_types: Iterable[str] = DATA_FETCH_RESOURCE_TYPES,
    ) -> None:
        if not marker:
            raise ValueError("interception marker must not be empty")
        self._marker = marker
        self._policy = policy
        self._resource_types = frozenset(resource_types)
        self._sequence = itertools.count()
        self._captured: list[tuple[int, InterceptedResponse]] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def matches(self, url: str, resource_type: str) -> bool:
        """Interception predicate: marker in URL and a data-fetch resource kind."""
        return (
            not self._closed
            and self._marker in url
            and resource_type in self._resource_types
        )

    def attach(self, session: RenderingSession) -> None:
        """Subscribe to ``session``'s responses.  Call before navigation."""
        session.on_response(self.matches, self.handle)

    def handle(self, response: ObservedResponse) -> None:
        """Schedule parsing of a matching response without blocking the page."""
        if self._closed:
            return
        seq = next(self._sequence)
        task = asyncio.get_running_loop().create_task(self._parse(seq, response))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _parse(self, seq: int, response: ObservedResponse) -> None:
        try:
            text = await response.text()
            body = json.loads(text)
        except Exception as exc:  # noqa: BLE001
            logger.debug("acquisition: could not parse intercepted %s: %s", response.url, exc)
            record = InterceptedResponse(
                url=response.url,
                resource_type=response.resource_type,
                error=str(exc) or type(exc).__name__,
            )
        else:
            logger.info("acquisition: intercepted structured response %s", response.url)
            record = InterceptedResponse(
                url=response.url,
                resource_type=response.resource_type,
                body=body,
            )
        if not self._closed:
            self._captured.append((seq, record))

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def drain(self, timeout: float = INTERCEPT_DRAIN_TIMEOUT) -> None:
        """Wait up to ``timeout`` seconds for in-flight parses to finish."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)

    @property
    def responses(self) -> list[InterceptedResponse]:
        """Every captured response, parsed or not, in the order the page received them."""
        return [record for _, record in sorted(self._captured, key=lambda item: item[0])]

    def captured(self, accept: Callable[[Any], bool] | None = None) -> Any | None:
        """Return the payload selected by the interception policy.

        Args:
            accept: Optional filter applied to parsed bodies before the policy
                (e.g. "has a non-empty ``events`` list").

        Returns:
            The selected body, the merged bodies for ``merge_all``, or
            ``None`` if nothing usable was captured.
        """
        bodies = [r.body for r in self.responses if r.parsed]
        if accept is not None:
            bodies = [b for b in bodies if accept(b)]
        if not bodies:
            return None
        if self._policy is InterceptPolicy.FIRST_MATCH:
            return bodies[0]
        if self._policy is InterceptPolicy.LAST_MATCH:
            return bodies[-1]
        merged = bodies[0]
        for body in bodies[1:]:
            merged = merge_payloads(merged, body)
        return merged

    def close(self) -> None:
        """End the subscription and cancel parses still in flight."""
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()


def merge_payloads(left: Any, right: Any) -> Any:
    """Merge two JSON bodies: lists concatenate, dicts merge key by key.

    Within dicts, list values under the same key concatenate and any other
    value from ``right`` replaces the one from ``left``.  Mismatched shapes
    keep ``right``.
    """
    if isinstance(left, list) and isinstance(right, list):
        return [*left, *right]
    if isinstance(left, dict) and isinstance(right, dict):
        merged = dict(left)
        for key, value in right.items():
            if isinstance(merged.get(key), list) and isinstance(value, list):
                merged[key] = [*merged[key], *value]
            else:
                merged[key] = value
        return merged
    return right
