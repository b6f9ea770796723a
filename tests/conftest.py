"""Shared test fixtures for the chronicle test suite.

db_engine
    Fresh in-memory SQLite schema per test. StaticPool keeps every logical
    connection on the same database.

client
    AsyncClient wired to the FastAPI app with get_db overridden to use
    db_engine.

db
    An AsyncSession on the same engine. Use it to seed rows or to assert DB
    state written by an HTTP request.

Tests of the evaluator itself need no fixture.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chronicle.database import Base, get_db
from chronicle.main import app


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory):
    """AsyncClient wired to the app against the per-test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fixed_rolls() -> Callable[..., Callable[[int], int]]:
    """Build a roller that returns the given faces in order.

    Raises AssertionError if a face exceeds the requested die size.
    """

    def _make(*faces: int) -> Callable[[int], int]:
        it: Iterator[int] = iter(faces)

        def _roller(sides: int) -> int:
            face = next(it)
            assert 1 <= face <= sides, f"face {face} out of range for d{sides}"
            return face

        return _roller

    return _make
