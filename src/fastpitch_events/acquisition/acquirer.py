"""The acquisition core: one target in, exactly one ``FetchResult`` out.

Strategies run in strict priority order and the first usable payload wins:

1. **Direct structured fetch** (hint ``direct_api``): plain GET of a JSON
   endpoint.  Never retried; any failure moves on to rendering.
2. **Render-and-intercept**: a browser session with a
   :class:`~fastpitch_events.acquisition.interceptor.ResponseInterceptor`
   attached before navigation.
3. **Render-and-read**: the rendered DOM of the same session, block-checked.
4. **Fallback**: one plain GET for raw markup once the rendering attempt
   budget is spent, or immediately when no browser can be launched.

Strategies 2 and 3 share one session per attempt and run under the retry
policy.  Every attempt holds one concurrency-gate permit from before the
session opens until after it is closed, on every exit path.  When the
request deadline fires during teardown the permit is returned at once and
the close finishes in the background.

Errors never escape :meth:`AcquisitionCore.acquire`; callers inspect
``FetchResult.kind``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from fastpitch_events.acquisition.block_detector import BlockDetector
from fastpitch_events.acquisition.config import DEFAULT_USER_AGENT, INTERCEPT_DRAIN_TIMEOUT
from fastpitch_events.acquisition.gate import ConcurrencyGate
from fastpitch_events.acquisition.http_fetcher import fetch_json, fetch_markup
from fastpitch_events.acquisition.interceptor import ResponseInterceptor
from fastpitch_events.acquisition.models import (
    AttemptOutcome,
    FetchAttempt,
    FetchRequest,
    FetchResult,
    Strategy,
)
from fastpitch_events.acquisition.rendering import (
    PlaywrightRenderer,
    Renderer,
    SessionOptions,
)
from fastpitch_events.api.metrics import (
    fetch_attempts_total,
    fetch_results_total,
    rendering_sessions_active,
)
from fastpitch_events.config.settings import Settings
from fastpitch_events.core.exceptions import (
    AcquisitionError,
    AcquisitionTimeoutError,
    BlockedError,
    CapacityExceededError,
    ParseError,
    RenderingUnavailableError,
    TransportError,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff with additive jitter.

    The wait after failed attempt ``n`` is ``base * n + U(0, jitter)`` where
    ``base`` depends on whether the attempt was blocked or hit an error.
    """

    blocked_backoff_base: float = 2.0
    error_backoff_base: float = 1.5
    jitter: float = 0.5

    def backoff(self, attempt: int, *, blocked: bool, rng: random.Random) -> float:
        base = self.blocked_backoff_base if blocked else self.error_backoff_base
        return base * attempt + rng.uniform(0.0, self.jitter)


async def _close_quietly(session: Any) -> None:
    try:
        await session.close()
    except Exception as exc:  # noqa: BLE001
        logger.warning("acquisition: session close failed: %s", exc)


def _outcome_for(error: AcquisitionError) -> AttemptOutcome:
    if isinstance(error, BlockedError):
        return AttemptOutcome.BLOCKED
    if isinstance(error, AcquisitionTimeoutError):
        return AttemptOutcome.TIMEOUT
    return AttemptOutcome.TRANSPORT_ERROR


# ---------------------------------------------------------------------------
# Core
# ---------------------------------------------------------------------------


class AcquisitionCore:
    """Run the multi-strategy acquisition protocol for one target at a time.

    One instance is shared by the whole process (the gate must be
    process-wide); concurrent :meth:`acquire` calls are safe.

    Args:
        renderer: Rendering capability used to open browser sessions.
        gate: Process-wide concurrency gate.
        client: ``httpx`` client for direct and fallback requests.  Created
            (and closed by :meth:`aclose`) when omitted.
        session_options: Browser configuration for every session.
        retry: Backoff policy between rendering attempts.
        plain_timeout: Timeout for direct and fallback requests, in seconds.
        drain_timeout: Seconds granted to in-flight intercepted parses.
        retry_slot_wait: Seconds a retry waits for a gate permit before
            giving up on rendering.
        sleep: Awaitable used for settle delays and backoff waits.
        rng: Source of randomness for settle delays and jitter.
        clock: Monotonic clock used to time attempts.
    """

    def __init__(
        self,
        renderer: Renderer,
        gate: ConcurrencyGate,
        *,
        client: httpx.AsyncClient | None = None,
        session_options: SessionOptions | None = None,
        retry: RetryPolicy | None = None,
        plain_timeout: float = 30.0,
        drain_timeout: float = INTERCEPT_DRAIN_TIMEOUT,
        retry_slot_wait: float = 30.0,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._renderer = renderer
        self._gate = gate
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._session_options = session_options or SessionOptions(
            user_agent=DEFAULT_USER_AGENT
        )
        self._retry = retry or RetryPolicy()
        self._plain_timeout = plain_timeout
        self._drain_timeout = drain_timeout
        self._retry_slot_wait = retry_slot_wait
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock
        self._closing: set[asyncio.Future[None]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        renderer: Renderer | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> AcquisitionCore:
        """Build a core wired with Playwright and the configured tuning."""
        gate = ConcurrencyGate(
            settings.max_concurrent_browsers,
            wait_timeout=settings.gate_wait_timeout,
        )
        return cls(
            renderer or PlaywrightRenderer(),
            gate,
            client=client,
            session_options=SessionOptions(
                user_agent=settings.user_agent,
                headless=settings.browser_headless,
            ),
            retry=RetryPolicy(
                blocked_backoff_base=settings.blocked_backoff_base,
                error_backoff_base=settings.error_backoff_base,
                jitter=settings.backoff_jitter,
            ),
            plain_timeout=settings.fallback_timeout,
            retry_slot_wait=settings.retry_slot_wait,
        )

    @property
    def gate(self) -> ConcurrencyGate:
        return self._gate

    async def aclose(self) -> None:
        """Wait for sessions still closing, then close the ``httpx`` client if this core created it."""
        if self._closing:
            await asyncio.gather(*self._closing)
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AcquisitionCore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def acquire(self, request: FetchRequest) -> FetchResult:
        """Acquire ``request.url`` and return its terminal result.

        Never raises for acquisition failures; the result kind is
        ``failure`` and ``result.error`` holds the last cause.  When
        ``request.deadline`` elapses the in-flight attempt is cancelled
        (its session closed and permit released) and the result is a
        timeout failure.
        """
        attempts: list[FetchAttempt] = []
        try:
            async with asyncio.timeout(request.deadline):
                result = await self._run(request, attempts)
        except TimeoutError:
            logger.warning(
                "acquisition: deadline of %.1fs exceeded for %s", request.deadline, request.url
            )
            error = AcquisitionTimeoutError(
                f"request deadline of {request.deadline:.1f}s exceeded", url=request.url
            )
            result = FetchResult.from_error(request.url, error, attempts)

        fetch_results_total.labels(
            kind=result.kind.value,
            category=result.category.value if result.category else "none",
        ).inc()
        if result.ok:
            logger.info(
                "acquisition: %s acquired via %s after %d attempt(s)",
                request.url,
                result.strategy.value if result.strategy else "?",
                len(result.attempts),
            )
        else:
            logger.warning(
                "acquisition: %s failed (%s): %s",
                request.url,
                result.category.value if result.category else "?",
                result.error,
            )
        return result

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def _run(self, request: FetchRequest, attempts: list[FetchAttempt]) -> FetchResult:
        detector = BlockDetector(request.block_signatures)
        last_error: AcquisitionError | None = None

        # 1. Direct structured fetch
        endpoint = request.direct_target
        if endpoint is not None:
            started = self._clock()
            try:
                payload = await self._fetch_direct(request, endpoint)
            except AcquisitionError as exc:
                self._record(attempts, 0, Strategy.DIRECT_API, _outcome_for(exc), started, exc)
                last_error = exc
            else:
                self._record(attempts, 0, Strategy.DIRECT_API, AttemptOutcome.SUCCESS, started)
                return FetchResult.from_payload(request.url, payload, Strategy.DIRECT_API, attempts)

        # 2 + 3. Rendering attempts under the retry policy
        render_strategy = (
            Strategy.RENDER_AND_INTERCEPT if request.intercepts else Strategy.RENDER_AND_READ
        )
        for index in range(1, request.attempts + 1):
            started = self._clock()
            try:
                strategy, value = await self._render_once(request, detector, retry=index > 1)
            except CapacityExceededError as exc:
                if index == 1:
                    return FetchResult.from_error(request.url, exc, attempts)
                logger.warning(
                    "acquisition: no slot for attempt %d of %s, skipping to fallback", index, request.url
                )
                break
            except RenderingUnavailableError as exc:
                self._record(attempts, index, render_strategy, _outcome_for(exc), started, exc)
                last_error = exc
                logger.warning("acquisition: rendering unavailable, skipping to fallback")
                break
            except AcquisitionError as exc:
                self._record(attempts, index, render_strategy, _outcome_for(exc), started, exc)
                last_error = exc
                if index < request.attempts:
                    wait = self._retry.backoff(
                        index, blocked=isinstance(exc, BlockedError), rng=self._rng
                    )
                    logger.info("acquisition: backing off %.2fs before attempt %d", wait, index + 1)
                    await self._sleep(wait)
                continue

            self._record(attempts, index, strategy, AttemptOutcome.SUCCESS, started)
            if strategy is Strategy.RENDER_AND_INTERCEPT:
                return FetchResult.from_payload(request.url, value, strategy, attempts)
            return FetchResult.from_markup(request.url, value, strategy, attempts)

        # 4. Non-rendered fallback
        started = self._clock()
        try:
            markup = await self._fetch_fallback(request, detector)
        except AcquisitionError as exc:
            self._record(attempts, 0, Strategy.FALLBACK, _outcome_for(exc), started, exc)
            cause = last_error if last_error is not None else exc
            return FetchResult.from_error(request.url, cause, attempts, fallback_error=exc)

        self._record(attempts, 0, Strategy.FALLBACK, AttemptOutcome.SUCCESS, started)
        return FetchResult.from_markup(request.url, markup, Strategy.FALLBACK, attempts)

    async def _fetch_direct(self, request: FetchRequest, endpoint: str) -> Any:
        payload = await fetch_json(
            endpoint,
            client=self._client,
            timeout=self._plain_timeout,
            user_agent=self._session_options.user_agent,
        )
        if not request.is_usable_payload(payload):
            raise ParseError("structured payload is missing or empty", url=endpoint)
        return payload

    async def _render_once(
        self, request: FetchRequest, detector: BlockDetector, *, retry: bool = False
    ) -> tuple[Strategy, Any]:
        """Run one rendering attempt inside one gate permit.

        A first attempt gets the gate's own saturation behaviour.  A retry
        was already admitted, so it waits up to ``retry_slot_wait`` for a
        permit.

        Returns:
            ``(RENDER_AND_INTERCEPT, payload)`` or ``(RENDER_AND_READ, markup)``.

        Raises:
            CapacityExceededError: No permit was available.  Nothing to
                clean up.
            AcquisitionError: Any other attempt failure.
        """
        await self._gate.acquire(
            request.url, patience=self._retry_slot_wait if retry else None
        )
        session = None
        interceptor: ResponseInterceptor | None = None
        try:
            session = await self._renderer.launch_session(self._session_options)
            rendering_sessions_active.inc()

            if request.intercepts:
                interceptor = ResponseInterceptor(
                    request.intercept_marker, policy=request.intercept_policy
                )
                interceptor.attach(session)

            await session.navigate(
                request.url, wait_until=request.wait_condition, timeout=request.timeout
            )
            await self._sleep(self._rng.uniform(*request.settle_delay))

            if interceptor is not None:
                await interceptor.drain(self._drain_timeout)
                payload = interceptor.captured(accept=request.is_usable_payload)
                if payload is not None:
                    return Strategy.RENDER_AND_INTERCEPT, payload
                logger.info("acquisition: nothing usable intercepted for %s, reading DOM", request.url)

            markup = await session.content()
            if not markup or not markup.strip():
                raise TransportError("rendered document is empty", url=request.url)
            signature = detector.matched_signature(markup)
            if signature is not None:
                raise BlockedError(url=request.url, signature=signature)
            return Strategy.RENDER_AND_READ, markup
        except AcquisitionError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise TransportError(f"rendering failed: {exc}", url=request.url) from exc
        finally:
            if interceptor is not None:
                interceptor.close()
            try:
                if session is not None:
                    await self._close_session(session)
            finally:
                if session is not None:
                    rendering_sessions_active.dec()
                self._gate.release()

    async def _close_session(self, session: Any) -> None:
        """Close ``session``, letting the teardown finish if the caller is cancelled."""
        closing = asyncio.ensure_future(_close_quietly(session))
        self._closing.add(closing)
        closing.add_done_callback(self._closing.discard)
        await asyncio.shield(closing)

    async def _fetch_fallback(self, request: FetchRequest, detector: BlockDetector) -> str:
        markup = await fetch_markup(
            request.url,
            client=self._client,
            timeout=self._plain_timeout,
            user_agent=self._session_options.user_agent,
        )
        if not markup.strip():
            raise TransportError("fallback document is empty", url=request.url)
        signature = detector.matched_signature(markup)
        if signature is not None:
            raise BlockedError(url=request.url, signature=signature)
        return markup

    def _record(
        self,
        attempts: list[FetchAttempt],
        index: int,
        strategy: Strategy,
        outcome: AttemptOutcome,
        started: float,
        error: AcquisitionError | None = None,
    ) -> None:
        attempt = FetchAttempt(
            index=index,
            strategy=strategy,
            outcome=outcome,
            elapsed=max(self._clock() - started, 0.0),
            error=error,
        )
        attempts.append(attempt)
        fetch_attempts_total.labels(strategy=strategy.value, outcome=outcome.value).inc()
        if error is None:
            logger.info("acquisition: attempt %d (%s) -> %s", index, strategy.value, outcome.value)
        else:
            logger.warning(
                "acquisition: attempt %d (%s) -> %s: %s",
                index,
                strategy.value,
                outcome.value,
                error,
            )
