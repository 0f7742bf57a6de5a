"""Rendering capability: headless Chromium sessions via Playwright.

The acquisition core only depends on the small :class:`Renderer` /
:class:`RenderingSession` protocols defined here, so tests substitute
in-memory doubles and never launch a browser.

Each :meth:`PlaywrightRenderer.launch_session` call starts a fresh Playwright
driver, browser, context and page.  Nothing is shared between sessions: a
session that was fingerprinted or challenged is thrown away whole.

Install the browser binary once per host::

    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from fastpitch_events.acquisition.config import BROWSER_LAUNCH_ARGS, VIEWPORT
from fastpitch_events.core.exceptions import (
    AcquisitionTimeoutError,
    RenderingUnavailableError,
    TransportError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class ObservedResponse(Protocol):
    """A network response issued by the rendered page."""

    url: str
    resource_type: str
    status: int | None

    async def text(self) -> str: ...


ResponsePredicate = Callable[[str, str], bool]
"""``(url, resource_type) -> bool`` deciding whether a response is handed on."""

ResponseHandler = Callable[[ObservedResponse], None]
"""Synchronous callback receiving matching responses."""


class RenderingSession(Protocol):
    async def navigate(self, url: str, *, wait_until: str, timeout: float) -> None: ...

    async def content(self) -> str: ...

    def on_response(self, predicate: ResponsePredicate, handler: ResponseHandler) -> None: ...

    async def close(self) -> None: ...


class Renderer(Protocol):
    async def launch_session(self, options: SessionOptions) -> RenderingSession: ...


@dataclass(frozen=True)
class SessionOptions:
    """Browser configuration for one rendering session."""

    user_agent: str
    headless: bool = True
    viewport: dict[str, int] = field(default_factory=lambda: dict(VIEWPORT))
    launch_args: tuple[str, ...] = BROWSER_LAUNCH_ARGS


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------


class _PlaywrightResponse:
    """Adapter exposing a Playwright ``Response`` as an :class:`ObservedResponse`."""

    def __init__(self, response: Any) -> None:
        self._response = response
        self.url: str = response.url
        self.resource_type: str = response.request.resource_type
        self.status: int | None = response.status

    async def text(self) -> str:
        return await self._response.text()


class PlaywrightSession:
    """One browser + context + page, torn down together by :meth:`close`."""

    def __init__(self, playwright: Any, browser: Any, context: Any, page: Any) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._listeners: list[Callable[[Any], None]] = []
        self._closed = False

    async def navigate(self, url: str, *, wait_until: str, timeout: float) -> None:
        """Load ``url`` and wait for ``wait_until``.

        Raises:
            AcquisitionTimeoutError: Navigation exceeded ``timeout`` seconds.
            TransportError: Any other navigation failure (DNS, TLS, reset...).
        """
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise AcquisitionTimeoutError(
                f"navigation timed out after {timeout:.0f}s", url=url
            ) from exc
        except PlaywrightError as exc:
            raise TransportError(f"navigation failed: {exc}", url=url) from exc

    async def content(self) -> str:
        try:
            return await self._page.content()
        except PlaywrightError as exc:
            raise TransportError(f"could not read page content: {exc}", url=self._page.url) from exc

    def on_response(self, predicate: ResponsePredicate, handler: ResponseHandler) -> None:
        def _listener(response: Any) -> None:
            if self._closed:
                return
            try:
                matched = predicate(response.url, response.request.resource_type)
            except Exception as exc:  # noqa: BLE001
                logger.debug("acquisition: response predicate failed for %s: %s", response.url, exc)
                return
            if matched:
                handler(_PlaywrightResponse(response))

        self._page.on("response", _listener)
        self._listeners.append(_listener)

    async def close(self) -> None:
        """Close page, context, browser and driver.  Idempotent.

        Every closer runs even if the task is cancelled part-way; the
        cancellation is re-raised once the driver has stopped.
        """
        if self._closed:
            return
        self._closed = True
        for listener in self._listeners:
            try:
                self._page.remove_listener("response", listener)
            except Exception:  # noqa: BLE001
                pass
        self._listeners.clear()

        closers: list[tuple[str, Callable[[], Awaitable[Any]]]] = [
            ("page", self._page.close),
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("driver", self._playwright.stop),
        ]
        cancelled = False
        for name, closer in closers:
            try:
                await closer()
            except asyncio.CancelledError:
                cancelled = True
            except Exception as exc:  # noqa: BLE001
                logger.warning("acquisition: failed to close %s: %s", name, exc)
        if cancelled:
            raise asyncio.CancelledError


class PlaywrightRenderer:
    """Launches a fresh :class:`PlaywrightSession` per call."""

    async def launch_session(self, options: SessionOptions) -> PlaywrightSession:
        """Start Playwright, launch Chromium and open a page.

        Partially started resources are released before the error propagates.

        Raises:
            RenderingUnavailableError: If any launch step fails (browser
                binary missing, driver crash, sandbox refusal...).
        """
        playwright = None
        browser = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=options.headless,
                args=list(options.launch_args),
            )
            context = await browser.new_context(
                user_agent=options.user_agent,
                viewport=dict(options.viewport),
            )
            page = await context.new_page()
        except Exception as exc:  # noqa: BLE001
            logger.warning("acquisition: playwright launch failed: %s", exc)
            if browser is not None:
                try:
                    await browser.close()
                except Exception:  # noqa: BLE001
                    pass
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception:  # noqa: BLE001
                    pass
            raise RenderingUnavailableError(f"playwright launch failed: {exc}") from exc

        return PlaywrightSession(playwright, browser, context, page)
