"""Application-wide exception hierarchy for Fastpitch Events.

All custom exceptions subclass ``FastpitchEventsError``.  Acquisition
failures additionally carry a :class:`FailureCategory` so the HTTP layer can
map them to a status code without inspecting exception types.

Hierarchy::

    FastpitchEventsError
    ├── AcquisitionError              (category, url)
    │   ├── CapacityExceededError     (retry_after: float)
    │   ├── BlockedError              (signature: str | None)
    │   ├── TransportError            (status_code: int | None)
    │   │   ├── AcquisitionTimeoutError
    │   │   └── RenderingUnavailableError
    │   └── ParseError
    ├── NormalizationError
    └── SnapshotError
"""

from __future__ import annotations

import enum


class FailureCategory(str, enum.Enum):
    """Machine-readable cause category attached to every acquisition failure."""

    CAPACITY = "capacity"
    BLOCKED = "blocked"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    PARSE = "parse"


class FastpitchEventsError(Exception):
    """Base class for all Fastpitch Events exceptions."""


# ---------------------------------------------------------------------------
# Acquisition exceptions
# ---------------------------------------------------------------------------


class AcquisitionError(FastpitchEventsError):
    """Raised when a target could not be acquired.

    Args:
        message: Human-readable description of the failure.
        url: The target URL (or endpoint) that failed.
    """

    category: FailureCategory = FailureCategory.TRANSPORT

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class CapacityExceededError(AcquisitionError):
    """Raised when the concurrency gate has no free browser slot.

    Never retried: the caller gets a fast failure with a retry hint.

    Args:
        message: Human-readable description.
        retry_after: Suggested seconds before the caller tries again.
        url: The target URL, when known.
    """

    category = FailureCategory.CAPACITY

    def __init__(
        self,
        message: str = "Too many concurrent requests. Try again later.",
        retry_after: float = 5.0,
        url: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.retry_after = retry_after


class BlockedError(AcquisitionError):
    """Raised when a payload matches a block signature.

    Anti-bot pages frequently answer HTTP 200 with a denial body, so this is
    detected from content, not from the status code.

    Args:
        message: Human-readable description.
        url: The target URL.
        signature: The signature pattern that matched.
    """

    category = FailureCategory.BLOCKED

    def __init__(
        self,
        message: str = "Blocked or forbidden response detected in HTML",
        url: str | None = None,
        signature: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.signature = signature


class TransportError(AcquisitionError):
    """Raised on navigation or network failure.

    Args:
        message: Human-readable description.
        url: The target URL.
        status_code: HTTP status when the failure was an error response.
    """

    category = FailureCategory.TRANSPORT

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class AcquisitionTimeoutError(TransportError):
    """Raised when navigation, a plain request or the request deadline times out.

    Retried exactly like any other :class:`TransportError`.
    """

    category = FailureCategory.TIMEOUT


class RenderingUnavailableError(TransportError):
    """Raised when a browser session cannot be launched at all.

    The acquisition core skips the remaining rendering attempts and goes
    straight to the non-rendered fallback.
    """


class ParseError(AcquisitionError):
    """Raised when a structured payload is malformed or lacks the expected structure.

    Triggers a move to the next strategy rather than a retry of the same one.
    """

    category = FailureCategory.PARSE


# ---------------------------------------------------------------------------
# Downstream exceptions
# ---------------------------------------------------------------------------


class NormalizationError(FastpitchEventsError):
    """Raised by a source adapter when its input cannot be turned into records.

    The normalizer itself never raises; adapters raise this only for inputs
    of the wrong kind entirely (e.g. markup handed to a JSON-only adapter).

    Args:
        message: Description of the problem.
        adapter: Name of the adapter that rejected the input.
    """

    def __init__(self, message: str, adapter: str | None = None) -> None:
        super().__init__(message)
        self.adapter = adapter


class SnapshotError(FastpitchEventsError):
    """Raised internally by the snapshot writer; always caught and logged there.

    Args:
        message: Description of the failure.
        path: Destination path that could not be written.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
