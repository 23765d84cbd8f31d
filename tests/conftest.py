"""Pytest configuration and shared fixtures."""

import os
from typing import AsyncIterator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("REDIS_URL", "memory://")
os.environ.setdefault("ENABLE_METRICS", "false")
os.environ.setdefault("LOG_FORMAT", "plain")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from aiocache import Cache
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import Base, get_db
from app.core.dependencies import get_redis_cache
from app.main import app

from tests.utils import create_roadmap


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roadmaps.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def cache() -> Cache:
    cache = Cache(Cache.MEMORY)
    await cache.clear()
    return cache


@pytest.fixture
async def roadmap(session_factory):
    """A public roadmap with two levels, three milestones and five challenges."""
    async with session_factory() as session:
        return await create_roadmap(session)


@pytest.fixture
async def async_client(session_factory, cache) -> AsyncIterator[AsyncClient]:
    """HTTPX client bound to the app, with the database and cache swapped out."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
