"""Shared test fixtures.

The profile store runs over an in-memory SQLite database (aiosqlite). A
StaticPool keeps every session on the same connection so the schema and
data survive between statements.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ecoquest.config import get_settings
from ecoquest.database import get_session
from ecoquest.db.base import Base
import ecoquest.db.models  # noqa: F401
from ecoquest.gamification.catalog import ChallengeCatalog, reset_catalog
from ecoquest.gamification.engine import ProgressionEngine
from ecoquest.gamification.seed import seed_challenges
from ecoquest.main import create_app
from ecoquest.store.profile_store import ProfileStore
from ecoquest.users.service import ensure_user


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db_session: AsyncSession) -> ProfileStore:
    """Store client with a single attempt so failures surface immediately."""
    return ProfileStore(db_session, retry_attempts=1)


@pytest_asyncio.fixture
async def catalog(store: ProfileStore) -> ChallengeCatalog:
    await seed_challenges(store)
    return await ChallengeCatalog.load(store)


@pytest_asyncio.fixture
async def engine(store: ProfileStore, catalog: ChallengeCatalog) -> ProgressionEngine:
    return ProgressionEngine(store, catalog)


@pytest.fixture
def make_user(store: ProfileStore):
    """Factory: seed a user and return its id."""

    async def _make(user_id: str, email: str | None = None, full_name: str | None = None) -> str:
        await ensure_user(store, user_id, email or f"{user_id}@example.com", full_name or user_id.title())
        return user_id

    return _make


@pytest_asyncio.fixture
async def app(session_factory) -> AsyncGenerator[FastAPI, None]:
    """App with the session dependency pointed at SQLite and the challenge table seeded."""
    get_settings.cache_clear()
    reset_catalog()

    async with session_factory() as session:
        await seed_challenges(ProfileStore(session, retry_attempts=1))

    application = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = _override_session
    yield application
    application.dependency_overrides.clear()
    reset_catalog()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
