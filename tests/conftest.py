"""Shared pytest fixtures for Fastpitch Events tests.

Fixture summary
---------------
sleep       - RecordingSleep injected into acquisition cores.
make_core   - Factory building an AcquisitionCore around a FakeRenderer.
stub_core   - Canned-result core for HTTP route tests.
client      - httpx.AsyncClient against the FastAPI app wired to stub_core.

No test opens a browser, talks to Redis or reaches the network: rendering
goes through the in-memory doubles in ``tests.factories.rendering`` and
plain HTTP is mocked with respx.
"""

from __future__ import annotations

import os
import random
import tempfile
from collections.abc import AsyncGenerator
from typing import Any, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set env vars before any application modules are imported so Settings()
# picks them up on first use.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "RATE_LIMIT_ENABLED": "false",
    "METRICS_ENABLED": "true",
    "DATA_DIR": os.path.join(tempfile.gettempdir(), "fastpitch-events-tests"),
    "CELERY_BROKER_URL": "memory://",
    "CELERY_RESULT_BACKEND": "cache+memory://",
    "LOG_LEVEL": "INFO",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from fastpitch_events.acquisition.acquirer import AcquisitionCore  # noqa: E402
from fastpitch_events.acquisition.gate import ConcurrencyGate  # noqa: E402
from fastpitch_events.acquisition.models import FetchRequest, FetchResult, Strategy  # noqa: E402
from fastpitch_events.config.settings import get_settings  # noqa: E402
from tests.factories.rendering import CLEAN_MARKUP, FakeRenderer, RecordingSleep  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Acquisition core
# ---------------------------------------------------------------------------


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def make_core(sleep: RecordingSleep) -> AsyncGenerator[Callable[..., AcquisitionCore], None]:
    """Yield a factory for cores wired to a fake renderer.

    Cores are seeded and use the shared ``sleep`` double, so backoff waits
    are recorded instead of slept.  Every core is closed at teardown.
    """
    cores: list[AcquisitionCore] = []

    def _make(
        renderer: FakeRenderer,
        *,
        max_sessions: int = 2,
        wait_timeout: float | None = 0.0,
        drain_timeout: float = 0.5,
        **kwargs: Any,
    ) -> AcquisitionCore:
        core = AcquisitionCore(
            renderer,
            ConcurrencyGate(max_sessions, wait_timeout=wait_timeout),
            sleep=kwargs.pop("sleep", sleep),
            rng=random.Random(7),
            drain_timeout=drain_timeout,
            **kwargs,
        )
        cores.append(core)
        return core

    yield _make

    for core in cores:
        await core.aclose()


# ---------------------------------------------------------------------------
# HTTP front-end
# ---------------------------------------------------------------------------


class StubCore:
    """Acquisition core stand-in returning a preset result."""

    def __init__(self) -> None:
        self.gate = ConcurrencyGate(2)
        self.requests: list[FetchRequest] = []
        self.result: FetchResult | None = None

    async def acquire(self, request: FetchRequest) -> FetchResult:
        self.requests.append(request)
        if self.result is not None:
            return self.result
        return FetchResult.from_markup(request.url, CLEAN_MARKUP, Strategy.RENDER_AND_READ, [])

    async def aclose(self) -> None:
        return None


@pytest.fixture
def stub_core() -> StubCore:
    return StubCore()


@pytest_asyncio.fixture
async def client(stub_core: StubCore) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the FastAPI app.

    The lifespan is not run; the stub core is installed on ``app.state`` and
    through the dependency override instead.
    """
    from fastpitch_events.api.dependencies import get_acquisition_core  # noqa: PLC0415
    from fastpitch_events.api.main import create_app  # noqa: PLC0415

    app = create_app(core=stub_core)  # type: ignore[arg-type]
    app.state.core = stub_core
    app.dependency_overrides[get_acquisition_core] = lambda: stub_core

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
