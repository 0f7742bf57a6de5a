"""Value types exchanged inside the acquisition core.

``FetchRequest`` goes in, a sequence of ``FetchAttempt`` records is produced
while the core works, and exactly one ``FetchResult`` comes out.
``InterceptedResponse`` lives only for the duration of a single attempt.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from fastpitch_events.acquisition.config import (
    DEFAULT_BLOCK_SIGNATURES,
    DEFAULT_WAIT_CONDITION,
)
from fastpitch_events.core.exceptions import AcquisitionError, FailureCategory


class Strategy(str, enum.Enum):
    """Acquisition strategies, listed in priority order."""

    DIRECT_API = "direct_api"
    RENDER_AND_INTERCEPT = "render_and_intercept"
    RENDER_AND_READ = "render_and_read"
    FALLBACK = "fallback"


#: Strategies a caller may pass as a hint.  ``FALLBACK`` is internal only.
HINTABLE_STRATEGIES: frozenset[Strategy] = frozenset(
    {Strategy.DIRECT_API, Strategy.RENDER_AND_INTERCEPT, Strategy.RENDER_AND_READ}
)


class AttemptOutcome(str, enum.Enum):
    SUCCESS = "success"
    BLOCKED = "blocked"
    TRANSPORT_ERROR = "transport_error"
    TIMEOUT = "timeout"


class InterceptPolicy(str, enum.Enum):
    """Which matching responses become the captured payload.

    ``first_match`` keeps the first successfully parsed body, ``last_match``
    the last one, and ``merge_all`` concatenates lists / merges dicts in
    arrival order.
    """

    FIRST_MATCH = "first_match"
    LAST_MATCH = "last_match"
    MERGE_ALL = "merge_all"


class ResultKind(str, enum.Enum):
    MARKUP = "markup"
    STRUCTURED = "structured"
    FAILURE = "failure"


# ---------------------------------------------------------------------------
# Structure helpers
# ---------------------------------------------------------------------------


def resolve_structure(payload: Any, key: str | None) -> Any:
    """Walk a dotted ``key`` (``"data.events"``) into a JSON-shaped payload.

    Returns ``None`` when any segment is missing or the path crosses a
    non-dict value.  A ``None`` key returns the payload itself.
    """
    if not key:
        return payload
    node = payload
    for segment in key.split("."):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return node


def has_content(payload: Any, key: str | None = None) -> bool:
    """Return ``True`` if the structure at ``key`` is a non-empty list or dict."""
    node = resolve_structure(payload, key)
    return isinstance(node, (list, dict)) and len(node) > 0


# ---------------------------------------------------------------------------
# Request / attempt / result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchRequest:
    """Immutable description of one acquisition.

    Attributes:
        url: Target page URL.
        strategy: Strategy hint.  ``direct_api`` tries a plain structured
            fetch first; ``render_and_intercept`` renders with the response
            interceptor attached; ``render_and_read`` renders and reads the
            DOM only.
        attempts: Rendering attempt budget (>= 1).
        timeout: Hard navigation timeout per attempt, in seconds.
        settle_delay: ``(min, max)`` seconds to wait after the initial load;
            each attempt draws uniformly from this range.
        block_signatures: Case-insensitive regexes marking a denial page.
        direct_endpoint: Stable data endpoint for the ``direct_api`` strategy.
            Defaults to ``url`` when the hint is ``direct_api``.
        intercept_marker: Substring identifying the page's own data request.
        intercept_policy: Which matching responses to keep.
        structure_key: Dotted path that must hold a non-empty list/dict for a
            structured payload to count as usable.
        accept_empty: Accept a structured payload whose expected structure is
            empty instead of falling through to the next strategy.
        deadline: Overall wall-clock budget in seconds, or ``None``.
        wait_condition: Playwright load state awaited during navigation.
    """

    url: str
    strategy: Strategy = Strategy.RENDER_AND_READ
    attempts: int = 3
    timeout: float = 60.0
    settle_delay: tuple[float, float] = (3.0, 4.5)
    block_signatures: tuple[str, ...] = DEFAULT_BLOCK_SIGNATURES
    direct_endpoint: str | None = None
    intercept_marker: str | None = None
    intercept_policy: InterceptPolicy = InterceptPolicy.FIRST_MATCH
    structure_key: str | None = None
    accept_empty: bool = False
    deadline: float | None = None
    wait_condition: str = DEFAULT_WAIT_CONDITION

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("FetchRequest.url must not be empty")
        if self.strategy not in HINTABLE_STRATEGIES:
            raise ValueError(f"{self.strategy.value!r} is not a valid strategy hint")
        if self.attempts < 1:
            raise ValueError("FetchRequest.attempts must be at least 1")
        low, high = self.settle_delay
        if low < 0 or low > high:
            raise ValueError("FetchRequest.settle_delay must be a (min, max) pair with 0 <= min <= max")

    @property
    def direct_target(self) -> str | None:
        """Endpoint for the direct structured fetch, or ``None`` to skip it."""
        if self.strategy is not Strategy.DIRECT_API:
            return None
        return self.direct_endpoint or self.url

    @property
    def intercepts(self) -> bool:
        """Whether rendering attempts attach a response interceptor."""
        return bool(self.intercept_marker) and self.strategy is not Strategy.RENDER_AND_READ

    def is_usable_payload(self, payload: Any) -> bool:
        """Apply the structure-key and empty-payload policy to a parsed body."""
        node = resolve_structure(payload, self.structure_key)
        if not isinstance(node, (list, dict)):
            return False
        return self.accept_empty or len(node) > 0


@dataclass(frozen=True)
class FetchAttempt:
    """Record of one strategy execution.

    Rendering attempts are numbered 1..N; the direct fetch and the fallback
    are recorded with index ``0``.
    """

    index: int
    strategy: Strategy
    outcome: AttemptOutcome
    elapsed: float
    error: AcquisitionError | None = None


@dataclass
class InterceptedResponse:
    """A network response captured while a page rendered.

    Attributes:
        url: URL of the request the page issued.
        resource_type: Playwright resource kind (``"xhr"``, ``"fetch"``...).
        body: Parsed JSON body, or ``None`` if parsing failed.
        error: Parse error description, or ``None`` on success.
    """

    url: str
    resource_type: str
    body: Any = None
    error: str | None = None

    @property
    def parsed(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class FetchResult:
    """Terminal outcome of a :class:`FetchRequest`.

    Exactly one of ``markup``, ``payload`` or ``error`` is meaningful,
    selected by ``kind``.
    """

    kind: ResultKind
    url: str
    markup: str | None = None
    payload: Any = None
    error: AcquisitionError | None = None
    strategy: Strategy | None = None
    attempts: tuple[FetchAttempt, ...] = field(default_factory=tuple)
    fallback_error: AcquisitionError | None = None

    @classmethod
    def from_markup(
        cls,
        url: str,
        markup: str,
        strategy: Strategy,
        attempts: list[FetchAttempt],
    ) -> FetchResult:
        return cls(
            kind=ResultKind.MARKUP,
            url=url,
            markup=markup,
            strategy=strategy,
            attempts=tuple(attempts),
        )

    @classmethod
    def from_payload(
        cls,
        url: str,
        payload: Any,
        strategy: Strategy,
        attempts: list[FetchAttempt],
    ) -> FetchResult:
        return cls(
            kind=ResultKind.STRUCTURED,
            url=url,
            payload=payload,
            strategy=strategy,
            attempts=tuple(attempts),
        )

    @classmethod
    def from_error(
        cls,
        url: str,
        error: AcquisitionError,
        attempts: list[FetchAttempt],
        fallback_error: AcquisitionError | None = None,
    ) -> FetchResult:
        return cls(
            kind=ResultKind.FAILURE,
            url=url,
            error=error,
            attempts=tuple(attempts),
            fallback_error=fallback_error,
        )

    @property
    def ok(self) -> bool:
        return self.kind is not ResultKind.FAILURE

    @property
    def category(self) -> FailureCategory | None:
        return self.error.category if self.error is not None else None

    @property
    def render_attempts(self) -> int:
        """Number of rendering attempts made (excludes direct and fallback)."""
        return sum(1 for a in self.attempts if a.index > 0)
