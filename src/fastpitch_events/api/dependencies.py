"""FastAPI dependency injection providers.

The shared :class:`AcquisitionCore` is created by the application lifespan
and stored on ``app.state``; routes receive it through
:func:`get_acquisition_core` so tests can swap in a fake with
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from fastpitch_events.acquisition.acquirer import AcquisitionCore


def get_acquisition_core(request: Request) -> AcquisitionCore:
    """Return the process-wide acquisition core.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    core = getattr(request.app.state, "core", None)
    if core is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Acquisition core is not initialised",
        )
    return core
