"""API test fixtures backed by the in-memory test database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_adjustments.api.app import create_app
from payroll_adjustments.api.dependencies import get_db_session


@pytest.fixture
async def client(session_factory, seed) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing.

    ASGITransport does not run the lifespan, so the database dependency is
    pointed at the test engine instead of the configured one.
    """
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def headers(seed) -> dict[str, str]:
    return {"X-Company-ID": str(seed.company_id)}
