"""Configuration package for Fastpitch Events.

Re-exports the most commonly used configuration symbols so that
callers can write::

    from fastpitch_events.config import get_settings, TARGETS, build_request

without needing to know which sub-module each symbol lives in.
"""

from __future__ import annotations

from fastpitch_events.config.settings import Settings, get_settings
from fastpitch_events.config.targets import (
    TARGETS,
    TargetProfile,
    build_request,
    get_target,
    resolve_target,
)

__all__ = [
    # settings
    "Settings",
    "get_settings",
    # targets
    "TARGETS",
    "TargetProfile",
    "build_request",
    "get_target",
    "resolve_target",
]
