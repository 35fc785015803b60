"""Shared test fixtures — async SQLite file DB, test client, scripted LLM."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./ganli-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

# Import all models so metadata is populated
import ganli.models  # noqa: F401,E402
from ganli.core import cache  # noqa: E402
from ganli.core.database import get_session  # noqa: E402
from ganli.main import app  # noqa: E402
from ganli.services.llm_gateway import get_llm_gateway  # noqa: E402
from tests.fakes import ScriptedGateway  # noqa: E402


# ── Database / client fixtures ───────────────────────────────

@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"timeout": 15},
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    cache.clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    cache.clear()


@pytest.fixture
def gateway():
    """Scripted LLM wired into the app in place of the real gateway."""
    fake = ScriptedGateway()
    app.dependency_overrides[get_llm_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_llm_gateway, None)
