"""
Shared test fixtures and configuration for HandyAI backend tests.
"""
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEFAULT_LLM_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = "test-openai-key"


@pytest_asyncio.fixture
async def database():
    """In-memory SQLite database with the CRM schema created."""
    from handyai.db.base import Base
    from handyai.db.session import Database

    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db

    await db.dispose()


@pytest_asyncio.fixture
async def session(database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as s:
        yield s


@pytest.fixture
def store(session):
    from handyai.services.crm.store import CRMStore

    return CRMStore(session)


@pytest.fixture
def registry():
    from handyai.services.tools.crm_tools import build_crm_registry

    return build_crm_registry()


@pytest.fixture
def executor(registry, store):
    from handyai.services.tools.executor import ToolExecutor

    return ToolExecutor(registry, store)


@pytest.fixture
def mock_llm_service():
    """LLM client double; set `complete.return_value` or `side_effect` per test."""
    service = MagicMock()
    service.provider = "openai"
    service.model = "gpt-4o-mini"
    service.complete = AsyncMock(return_value=("", {}, None))
    service.aclose = AsyncMock()
    return service


@pytest_asyncio.fixture
async def client(database, registry, mock_llm_service) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app.

    The ASGI transport does not run the lifespan, so the resources it would
    create are put on app.state here.
    """
    from handyai.main import app

    app.state.database = database
    app.state.tool_registry = registry
    app.state.llm_service = mock_llm_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def customer_payload():
    return {
        "firstName": "Max",
        "lastName": "Mustermann",
        "email": "max@example.de",
        "phone": "0171 1234567",
        "address": "Hauptstraße 1\n12345 Berlin",
        "isProspect": False,
    }
