"""Content-based block detection.

Anti-bot firewalls routinely answer ``200 OK`` with a challenge or denial
page, so status codes alone cannot tell a usable page from a refusal.  The
detector scans the payload text for configurable signatures instead.
"""

from __future__ import annotations

import enum
import json
import re
from typing import Any, Iterable

from fastpitch_events.acquisition.config import DEFAULT_BLOCK_SIGNATURES


class Verdict(str, enum.Enum):
    USABLE = "usable"
    BLOCKED = "blocked"


class BlockDetector:
    """Classify payloads as usable or blocked.

    Args:
        signatures: Case-insensitive regular expressions.  Plain phrases
            work as substrings; use ``\\b`` for word-bounded tokens.

    Raises:
        re.error: If a signature is not a valid regular expression.
    """

    def __init__(self, signatures: Iterable[str] = DEFAULT_BLOCK_SIGNATURES) -> None:
        self._signatures: tuple[str, ...] = tuple(signatures)
        self._patterns: tuple[re.Pattern[str], ...] = tuple(
            re.compile(sig, re.IGNORECASE) for sig in self._signatures
        )

    @property
    def signatures(self) -> tuple[str, ...]:
        return self._signatures

    def matched_signature(self, payload: Any) -> str | None:
        """Return the first signature found in ``payload``, or ``None``."""
        text = _as_text(payload)
        if not text:
            return None
        for signature, pattern in zip(self._signatures, self._patterns):
            if pattern.search(text):
                return signature
        return None

    def classify(self, payload: Any) -> Verdict:
        """Return :attr:`Verdict.BLOCKED` if any signature matches ``payload``."""
        if self.matched_signature(payload) is not None:
            return Verdict.BLOCKED
        return Verdict.USABLE


def _as_text(payload: Any) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(payload)
