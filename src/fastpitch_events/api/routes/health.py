"""Health check route for the Fastpitch Events API.

``GET /health``
    Process-level liveness plus the concurrency gate's current load.  Never
    opens a browser and never raises; always HTTP 200.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from fastpitch_events.config.settings import Settings, get_settings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Return liveness and browser-slot usage.

    Returns:
        ``{"status", "active_sessions", "max_sessions", "data_dir"}``.
        ``status`` is ``"starting"`` until the acquisition core exists.
    """
    core = getattr(request.app.state, "core", None)
    if core is None:
        return {
            "status": "starting",
            "active_sessions": 0,
            "max_sessions": settings.max_concurrent_browsers,
            "data_dir": str(settings.data_dir),
        }
    return {
        "status": "ok",
        "active_sessions": core.gate.in_use,
        "max_sessions": core.gate.max_sessions,
        "data_dir": str(settings.data_dir),
    }
