"""Pytest configuration and fixtures for postboard tests."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from postboard.core.context import RequestContext
from postboard.core.db import init_models
from postboard.core.security import create_access_token
from postboard.db.repositories import PostRepository, UserRepository


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def alice(session_factory):
    """Author U1."""
    async with session_factory() as session:
        return await UserRepository(session).create("Alice", "alice@example.com", "idp|alice")


@pytest_asyncio.fixture
async def bob(session_factory):
    """Another user U2."""
    async with session_factory() as session:
        return await UserRepository(session).create("Bob", "bob@example.com", "idp|bob")


@pytest.fixture
def alice_token(alice):
    return create_access_token({"sub": alice.external_id})


@pytest.fixture
def bob_token(bob):
    return create_access_token({"sub": bob.external_id})


@pytest.fixture
def post_repository(session):
    return PostRepository(session)


@pytest_asyncio.fixture
async def context(session):
    """Request context for one simulated request."""
    async with RequestContext(session) as ctx:
        yield ctx
