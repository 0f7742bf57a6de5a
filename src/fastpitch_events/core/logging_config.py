"""Log setup shared by the API process and the Celery worker.

Both processes write one JSON object per line to stdout so container logs
can be shipped as-is.  Acquisition modules log through the stdlib
(``"acquisition: ..."`` messages); the API, adapters and tasks emit
structlog events such as ``snapshot.written``.  Both end up on the same
root handler with the same fields::

    {"event": "...", "level": "info", "logger": "...", "timestamp": "...",
     "process": "worker", "request_id": "..."}

``request_id`` is only present inside an HTTP request.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""Set by the request-logging middleware in ``api/main.py``."""

REDACTED = "[REDACTED]"

# Matched case-insensitively against event keys and one level of nested keys.
_SECRET_KEYS = (
    "password",
    "secret",
    "token",
    "cookie",
    "authorization",
    "proxy_auth",
    "broker_url",
    "result_backend",
)

# Rendered pages can end up in exception messages.
MAX_VALUE_LENGTH = 2000

_CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio")


def _is_secret(key: object) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in _SECRET_KEYS)


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in list(event_dict.items()):
        if _is_secret(key):
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {k: REDACTED if _is_secret(k) else v for k, v in value.items()}
    return event_dict


def truncate_long_values(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            dropped = len(value) - MAX_VALUE_LENGTH
            event_dict[key] = f"{value[:MAX_VALUE_LENGTH]}...[+{dropped} chars]"
    return event_dict


def _add_request_id(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    request_id = request_id_var.get()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _tag_process(process: str) -> Processor:
    def processor(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("process", process)
        return event_dict

    return processor


def configure_logging(log_level: str = "INFO", *, process: str = "api") -> None:
    """Route stdlib logging and structlog through one stdout handler.

    ``DEBUG`` switches to structlog's coloured console output and leaves
    the HTTP client loggers at their default level; every other level logs
    JSON.  Calling it again replaces the previous handler.

    Args:
        log_level: Level name, case-insensitive.  Unknown names mean ``INFO``.
        process: Added to every record as ``process`` (``"api"`` or
            ``"worker"``).
    """
    level_name = log_level.upper()
    debug = level_name == "DEBUG"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _tag_process(process),
        redact_secrets,
        truncate_long_values,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer()
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not debug:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
