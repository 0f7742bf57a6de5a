"""FastAPI router for on-demand acquisition.

Routes:
    GET /scrape?url=...&strategy=...&format=...   acquire any http(s) URL
    GET /fastpitch/{alias}?strategy=...&format=... acquire a registered target
    GET /targets                                  list registered targets

Markup results are returned as ``text/html`` unless ``format=events`` asks
for normalized events.  Structured results are always returned as
``{"events": [...], "count": n, "strategy": s}``.  Failures use the shared error body from
:mod:`fastpitch_events.api.errors`.
"""

from typing import Annotated, Any, Literal, Optional
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from fastpitch_events.acquisition.acquirer import AcquisitionCore
from fastpitch_events.acquisition.models import (
    HINTABLE_STRATEGIES,
    FetchResult,
    ResultKind,
    Strategy,
)
from fastpitch_events.adapters import events_from_result
from fastpitch_events.api.dependencies import get_acquisition_core
from fastpitch_events.api.errors import acquisition_error_response
from fastpitch_events.api.limiter import limiter, scrape_limit
from fastpitch_events.config.settings import Settings, get_settings
from fastpitch_events.config.targets import (
    TARGETS,
    TargetProfile,
    build_request,
    get_target,
    resolve_target,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["acquisition"])

OutputFormat = Literal["html", "events"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_hint(strategy: Optional[Strategy]) -> None:
    if strategy is not None and strategy not in HINTABLE_STRATEGIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"strategy must be one of: {', '.join(sorted(s.value for s in HINTABLE_STRATEGIES))}",
        )


def _render_result(
    result: FetchResult,
    profile: TargetProfile | None,
    output: OutputFormat,
) -> Response:
    if result.kind is ResultKind.FAILURE:
        return acquisition_error_response(result.error, attempts=len(result.attempts))
    if result.kind is ResultKind.MARKUP and output == "html":
        return HTMLResponse(content=result.markup or "")

    events = events_from_result(result, profile)
    body: dict[str, Any] = {
        "events": [event.model_dump() for event in events],
        "count": len(events),
        "strategy": result.strategy.value if result.strategy else None,
    }
    return JSONResponse(content=body)


async def _acquire(
    url: str,
    *,
    core: AcquisitionCore,
    settings: Settings,
    profile: TargetProfile | None,
    strategy: Optional[Strategy],
    output: OutputFormat,
) -> Response:
    try:
        request = build_request(url, settings=settings, hint=strategy, profile=profile)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    result = await core.acquire(request)
    logger.info(
        "acquisition_complete",
        url=url,
        target=profile.slug if profile else None,
        kind=result.kind.value,
        attempts=len(result.attempts),
    )
    return _render_result(result, profile, output)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/scrape")
@limiter.limit(scrape_limit)
async def scrape(
    request: Request,
    core: Annotated[AcquisitionCore, Depends(get_acquisition_core)],
    settings: Annotated[Settings, Depends(get_settings)],
    url: Optional[str] = None,
    strategy: Optional[Strategy] = None,
    output: Annotated[OutputFormat, Query(alias="format")] = "html",
) -> Response:
    """Acquire an arbitrary URL.

    Registered sites get their profile (interception marker, adapter,
    timing); anything else is rendered and read with default settings.

    Args:
        request: The incoming HTTP request (used by the rate limiter).
        core: Injected acquisition core.
        settings: Application settings.
        url: Absolute http(s) URL to acquire.
        strategy: Optional strategy hint.
        output: ``html`` (default) or ``events``.

    Raises:
        HTTPException: 400 if ``url`` is missing or not an http(s) URL, or
            ``strategy`` is not a valid hint.
    """
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing ?url=")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="url must be an absolute http(s) URL",
        )
    _check_hint(strategy)
    return await _acquire(
        url,
        core=core,
        settings=settings,
        profile=resolve_target(url),
        strategy=strategy,
        output=output,
    )


@router.get("/fastpitch/{alias}")
@limiter.limit(scrape_limit)
async def fastpitch_target(
    request: Request,
    alias: str,
    core: Annotated[AcquisitionCore, Depends(get_acquisition_core)],
    settings: Annotated[Settings, Depends(get_settings)],
    strategy: Optional[Strategy] = None,
    output: Annotated[OutputFormat, Query(alias="format")] = "html",
) -> Response:
    """Acquire a registered target by alias (``events``, ``pgf``, ``bullpen``...).

    Raises:
        HTTPException: 404 if no target is registered under ``alias``.
    """
    profile = get_target(alias)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown target '{alias}'",
        )
    _check_hint(strategy)
    return await _acquire(
        profile.url,
        core=core,
        settings=settings,
        profile=profile,
        strategy=strategy,
        output=output,
    )


@router.get("/targets")
async def list_targets() -> dict[str, Any]:
    """List the registered targets and how each is approached."""
    return {
        "targets": [
            {
                "slug": profile.slug,
                "alias": profile.alias,
                "url": profile.url,
                "source": profile.source_tag,
                "strategy": profile.strategy.value,
                "intercepts": profile.intercept_marker is not None,
            }
            for profile in TARGETS
        ]
    }
