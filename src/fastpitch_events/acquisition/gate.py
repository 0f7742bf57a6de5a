"""Process-wide concurrency gate for browser sessions.

A counting permit pool sized by ``MAX_CONCURRENT_BROWSERS``.  One permit is
held for the whole lifetime of a rendering session.  When the pool is empty
the gate either rejects immediately or waits a bounded time, depending on
``wait_timeout``; it never queues indefinitely.

Typical usage::

    gate = ConcurrencyGate(max_sessions=2)

    async with gate.slot(url):
        session = await renderer.launch_session(options)
        ...
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastpitch_events.core.exceptions import CapacityExceededError

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """Bounded permit pool guarding rendering sessions.

    Args:
        max_sessions: Maximum number of permits outstanding at once.
        wait_timeout: Seconds :meth:`acquire` may wait for a permit.  ``0``
            rejects immediately when saturated; ``None`` waits until a
            permit frees up or the caller is cancelled.
        retry_after: Hint (seconds) carried by the capacity error.
    """

    def __init__(
        self,
        max_sessions: int = 2,
        *,
        wait_timeout: float | None = 0.0,
        retry_after: float = 5.0,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._max = max_sessions
        self._wait_timeout = wait_timeout
        self._retry_after = retry_after
        self._semaphore = asyncio.Semaphore(max_sessions)
        self._in_use = 0

    @property
    def max_sessions(self) -> int:
        return self._max

    @property
    def in_use(self) -> int:
        """Number of permits currently held."""
        return self._in_use

    @property
    def available(self) -> int:
        return self._max - self._in_use

    async def acquire(self, url: str | None = None, *, patience: float | None = None) -> None:
        """Take one permit, suspending only the calling task while waiting.

        ``patience`` overrides ``wait_timeout`` for this call.

        Raises:
            CapacityExceededError: If the gate is saturated and no permit
                frees up in time.
        """
        wait_timeout = self._wait_timeout if patience is None else patience
        saturated = self._semaphore.locked()
        if saturated and wait_timeout is not None and wait_timeout <= 0:
            logger.warning(
                "acquisition: gate saturated (%d/%d), rejecting %s",
                self._in_use,
                self._max,
                url,
            )
            raise CapacityExceededError(retry_after=self._retry_after, url=url)

        try:
            if not saturated or wait_timeout is None:
                await self._semaphore.acquire()
            else:
                await asyncio.wait_for(self._semaphore.acquire(), timeout=wait_timeout)
        except TimeoutError:
            logger.warning(
                "acquisition: no browser slot within %.1fs for %s",
                wait_timeout,
                url,
            )
            raise CapacityExceededError(retry_after=self._retry_after, url=url) from None

        # No await between the semaphore grant and the counter update, so the
        # event loop cannot interleave another acquire/release here.
        self._in_use += 1
        logger.debug("acquisition: permit acquired (%d/%d)", self._in_use, self._max)

    def release(self) -> None:
        """Return one permit.  Never raises; an unmatched release is logged and ignored."""
        if self._in_use <= 0:
            logger.error("acquisition: gate release without a matching acquire")
            return
        self._in_use -= 1
        self._semaphore.release()
        logger.debug("acquisition: permit released (%d/%d)", self._in_use, self._max)

    @asynccontextmanager
    async def slot(self, url: str | None = None) -> AsyncIterator[None]:
        """Hold one permit for the duration of the ``async with`` block."""
        await self.acquire(url)
        try:
            yield
        finally:
            self.release()
