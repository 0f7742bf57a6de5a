"""HTTP mapping of acquisition failures.

Every failure carries a :class:`~fastpitch_events.core.exceptions.FailureCategory`;
the status code is looked up from the category, never from the exception
type.  Bodies share one shape::

    {"error": {"category": "blocked", "message": "...", "url": "...", "attempts": 3}}

Capacity failures add ``"retry_after"`` to the body and a ``Retry-After``
header.
"""

from __future__ import annotations

import math
from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from fastpitch_events.core.exceptions import (
    AcquisitionError,
    CapacityExceededError,
    FailureCategory,
)

STATUS_BY_CATEGORY: dict[FailureCategory, int] = {
    FailureCategory.CAPACITY: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureCategory.BLOCKED: status.HTTP_424_FAILED_DEPENDENCY,
    FailureCategory.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
    FailureCategory.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    FailureCategory.PARSE: status.HTTP_502_BAD_GATEWAY,
}


def acquisition_error_response(error: AcquisitionError, attempts: int = 0) -> JSONResponse:
    """Build the JSON error response for an acquisition failure.

    Args:
        error: The terminal cause.
        attempts: Number of strategy executions recorded for the request.
    """
    body: dict[str, Any] = {
        "category": error.category.value,
        "message": str(error),
        "url": error.url,
        "attempts": attempts,
    }
    headers: dict[str, str] = {}
    if isinstance(error, CapacityExceededError):
        body["retry_after"] = error.retry_after
        headers["Retry-After"] = str(max(1, math.ceil(error.retry_after)))
    return JSONResponse(
        status_code=STATUS_BY_CATEGORY.get(error.category, status.HTTP_502_BAD_GATEWAY),
        content={"error": body},
        headers=headers,
    )
