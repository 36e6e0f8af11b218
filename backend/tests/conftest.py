import os

import httpx
import pytest
import pytest_asyncio

from pagelens.core.config import get_pipeline_config, get_settings

BASE_URL = os.getenv("BASE_URL", "http://127.0.0.1:8000")


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests mutate env vars; never leak a cached Settings/PipelineConfig across tests.
    get_settings.cache_clear()
    get_pipeline_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_pipeline_config.cache_clear()


async def _make_asgi_client():
    """Create an in-process ASGI client."""
    from httpx import ASGITransport

    from pagelens.main import app

    transport = ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client():
    # Default: in-process ASGI tests (no uvicorn needed).
    # Set USE_LIVE_SERVER=true to run against a running server at BASE_URL.
    use_live_server = os.getenv("USE_LIVE_SERVER", "").strip().lower() in {"1", "true", "yes"}
    if use_live_server:
        async with httpx.AsyncClient(base_url=BASE_URL) as c:
            yield c
        return

    from pagelens.main import app

    c = await _make_asgi_client()
    async with c:
        yield c
    app.dependency_overrides.clear()
