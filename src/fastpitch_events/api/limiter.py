"""Shared slowapi rate-limiter singleton.

Keeping the ``Limiter`` instance in its own module breaks the circular
import that would arise if route modules imported directly from ``main.py``
(which itself imports every route module).

Usage in route modules::

    from fastpitch_events.api.limiter import limiter, scrape_limit

    @router.get("/scrape")
    @limiter.limit(scrape_limit)
    async def scrape(request: Request, ...):
        ...

The ``request`` parameter **must** be present in the route function
signature for slowapi to resolve the rate-limit key.

``main.create_app()`` attaches the instance to ``app.state``, registers the
``RateLimitExceeded`` handler and switches the limiter on or off from
``RATE_LIMIT_ENABLED``.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from fastpitch_events.config.settings import get_settings

limiter: Limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
)
"""Global rate-limiter instance keyed by client IP address."""


def scrape_limit() -> str:
    """Per-client limit for every route that opens a browser (``SCRAPE_RATE_LIMIT``)."""
    return get_settings().scrape_rate_limit
