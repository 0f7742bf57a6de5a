"""Plain (non-rendered) HTTP requests via ``httpx``.

Two callers use this module:

- the ``direct_api`` strategy, which asks a site's stable data endpoint for
  JSON without opening a browser (:func:`fetch_json`), and
- the fallback, a single plain GET once rendering has given up
  (:func:`fetch_markup`).

Both functions raise the acquisition error hierarchy instead of returning
error values, so the acquisition core treats a failed plain request like a
failed rendering attempt.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from fastpitch_events.acquisition.config import (
    JSON_REQUEST_HEADERS,
    PLAIN_REQUEST_HEADERS,
)
from fastpitch_events.core.exceptions import (
    AcquisitionTimeoutError,
    ParseError,
    TransportError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared GET
# ---------------------------------------------------------------------------


async def _get(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    headers: dict[str, str],
) -> httpx.Response:
    try:
        response = await client.get(
            url,
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
        )
    except httpx.TimeoutException as exc:
        logger.warning("acquisition: timeout fetching %s", url)
        raise AcquisitionTimeoutError(f"timed out after {timeout:.0f}s", url=url) from exc
    except httpx.TooManyRedirects as exc:
        logger.warning("acquisition: too many redirects for %s", url)
        raise TransportError("too many redirects", url=url) from exc
    except httpx.RequestError as exc:
        logger.warning("acquisition: request error for %s: %s", url, exc)
        raise TransportError(f"request error: {exc}", url=url) from exc

    if response.status_code >= 400:
        logger.info("acquisition: HTTP %d for %s", response.status_code, url)
        raise TransportError(
            f"HTTP {response.status_code}",
            url=url,
            status_code=response.status_code,
        )
    return response


# ---------------------------------------------------------------------------
# Public fetch functions
# ---------------------------------------------------------------------------


async def fetch_markup(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    user_agent: str,
) -> str:
    """GET ``url`` and return the response body as text.

    Args:
        url: Page to fetch.
        client: Shared :class:`httpx.AsyncClient` instance.
        timeout: Request timeout in seconds.
        user_agent: ``User-Agent`` header value.

    Returns:
        The decoded body.  May be empty; the caller decides what an empty
        document means.

    Raises:
        AcquisitionTimeoutError: The request timed out.
        TransportError: Network failure or a status code of 400 or above.
    """
    response = await _get(
        url,
        client=client,
        timeout=timeout,
        headers={**PLAIN_REQUEST_HEADERS, "User-Agent": user_agent},
    )
    try:
        return response.text
    except Exception as exc:  # noqa: BLE001
        logger.warning("acquisition: decode error for %s: %s", url, exc)
        raise TransportError(f"decode error: {exc}", url=url) from exc


async def fetch_json(
    endpoint: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    user_agent: str,
) -> Any:
    """GET a structured endpoint and return its parsed JSON body.

    Raises:
        AcquisitionTimeoutError: The request timed out.
        TransportError: Network failure or a status code of 400 or above.
        ParseError: The body is not valid JSON.
    """
    response = await _get(
        endpoint,
        client=client,
        timeout=timeout,
        headers={**JSON_REQUEST_HEADERS, "User-Agent": user_agent},
    )
    try:
        return json.loads(response.text)
    except ValueError as exc:
        content_type = response.headers.get("content-type", "")
        logger.info(
            "acquisition: non-JSON body from %s (content-type=%r)", endpoint, content_type
        )
        raise ParseError(f"endpoint did not return JSON: {exc}", url=endpoint) from exc
