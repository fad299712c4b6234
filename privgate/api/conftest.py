"""API test fixtures.

Provides an async HTTP client wired to the FastAPI app with the DI container
overridden to use fakes. Available to all colocated API tests under api/.

Pattern:
    1. Override get_container -> returns test_container (real services, fake repos)
    2. Override get_context   -> returns a minimal ApiContext
    3. Override get_db        -> yields a stand-in session
    4. Test hits the endpoint, asserts on HTTP response + fake state
"""

from unittest.mock import AsyncMock

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from privgate.api.context import ApiContext
from privgate.api.deps import get_container, get_context, get_db
from privgate.core.logging import logger

TEST_ACTOR = "test-actor"
TEST_REQUEST_ID = "test-request-00000000"


def _make_fake_context() -> ApiContext:
    """Build a minimal ApiContext for API tests."""
    return ApiContext(
        actor=TEST_ACTOR,
        request_id=TEST_REQUEST_ID,
        logger=logger.with_context(request_id=TEST_REQUEST_ID),
    )


@pytest_asyncio.fixture
async def client(test_container):
    """Async HTTP client with faked DI container, context and session."""
    from privgate.main import app

    fake_ctx = _make_fake_context()

    async def _fake_db():
        yield AsyncMock()

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_context] = lambda: fake_ctx
    app.dependency_overrides[get_db] = _fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
