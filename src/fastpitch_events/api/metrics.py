"""Prometheus metrics for Fastpitch Events.

All metrics are module-level singletons registered on the default
``REGISTRY``, so the acquisition core, the FastAPI middleware and the
snapshot task can all import them.

Metrics defined here:

  fetch_attempts_total{strategy, outcome}
      Counter of strategy executions (direct fetch, each rendering attempt,
      fallback) by outcome (success, blocked, transport_error, timeout).

  fetch_results_total{kind, category}
      Counter of terminal acquisition results.  ``category`` is the failure
      category, or ``none`` for markup and structured results.

  rendering_sessions_active
      Gauge of browser sessions currently open.

  http_requests_total{method, path, status}
      Counter of HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram of HTTP request latency in seconds.

  snapshot_runs_total{status}
      Counter of per-target snapshot runs (success, failed).

Usage::

    from fastpitch_events.api.metrics import fetch_results_total
    fetch_results_total.labels(kind="markup", category="none").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Acquisition metrics (populated in acquisition/acquirer.py)
# ---------------------------------------------------------------------------

fetch_attempts_total: Counter = Counter(
    "fetch_attempts_total",
    "Acquisition strategy executions by strategy and outcome.",
    labelnames=["strategy", "outcome"],
)
"""Counter incremented once per recorded ``FetchAttempt``.

Labels:
  strategy: direct_api, render_and_intercept, render_and_read, fallback
  outcome:  success, blocked, transport_error, timeout
"""

fetch_results_total: Counter = Counter(
    "fetch_results_total",
    "Terminal acquisition results by kind and failure category.",
    labelnames=["kind", "category"],
)

rendering_sessions_active: Gauge = Gauge(
    "rendering_sessions_active",
    "Headless browser sessions currently open.",
)

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)
"""Counter incremented after every HTTP response.

Labels:
  method: HTTP method (GET, POST...)
  path:   route template where possible (e.g. '/fastpitch/{alias}')
  status: HTTP response status code as string (e.g. '200', '503')
"""

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# ---------------------------------------------------------------------------
# Snapshot metrics (populated in acquisition/tasks.py)
# ---------------------------------------------------------------------------

snapshot_runs_total: Counter = Counter(
    "snapshot_runs_total",
    "Per-target snapshot runs by outcome.",
    labelnames=["status"],
)


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST
