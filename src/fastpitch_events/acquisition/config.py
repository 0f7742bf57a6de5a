"""Constants and tuning parameters for the acquisition core."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------

#: Chromium flags that keep a single session small and stable inside
#: containers without a real display or a large /dev/shm.
BROWSER_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
    "--single-process",
)

#: User agent presented by browser sessions and plain requests unless configured.
DEFAULT_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

#: Viewport of every rendering session.
VIEWPORT: dict[str, int] = {"width": 1280, "height": 800}

#: Playwright load state awaited by ``navigate``.  ``domcontentloaded`` is
#: more reliable than ``networkidle`` on pages that poll forever.
DEFAULT_WAIT_CONDITION: str = "domcontentloaded"

# ---------------------------------------------------------------------------
# Block detection
# ---------------------------------------------------------------------------

#: Case-insensitive regular expressions that mark a payload as a denial or
#: challenge page.
DEFAULT_BLOCK_SIGNATURES: tuple[str, ...] = (
    r"access denied",
    r"forbidden",
    r"captcha",
    r"\b403\b",
    r"\bblocked\b",
)

# ---------------------------------------------------------------------------
# Response interception
# ---------------------------------------------------------------------------

#: Playwright ``request.resource_type`` values that represent the page's own
#: data calls.  Scripts, stylesheets, images and fonts never match.
DATA_FETCH_RESOURCE_TYPES: frozenset[str] = frozenset({"xhr", "fetch"})

#: Seconds granted to in-flight response parses after the settle delay.
INTERCEPT_DRAIN_TIMEOUT: float = 2.0

# ---------------------------------------------------------------------------
# Plain HTTP
# ---------------------------------------------------------------------------

#: Headers sent with plain fallback requests.
PLAIN_REQUEST_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

#: Headers sent with direct structured endpoint requests.
JSON_REQUEST_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain;q=0.5",
    "Accept-Language": "en-US,en;q=0.8",
    "X-Requested-With": "XMLHttpRequest",
}
