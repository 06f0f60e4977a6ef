from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cardnexus.db.database import get_session
from cardnexus.main import app
from cardnexus.models.db import Base, CardDB, UserDB


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """Provide an async test client with overridden database session."""

    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


UserFactory = Callable[..., Awaitable[UserDB]]
CardFactory = Callable[..., Awaitable[CardDB]]


@pytest.fixture
def make_user(session: AsyncSession) -> UserFactory:
    """Insert a user into the test session (flushed, not committed)."""

    async def _make(username: str, **values: Any) -> UserDB:
        email = values.pop("email", f"{username}@example.com")
        user = UserDB(username=username, email=email, **values)
        session.add(user)
        await session.flush()
        return user

    return _make


@pytest.fixture
def make_card(session: AsyncSession) -> CardFactory:
    """Insert a card into the test session (flushed, not committed)."""

    async def _make(name: str, **values: Any) -> CardDB:
        values.setdefault("game_title", "ポケモンカード")
        card = CardDB(name=name, **values)
        session.add(card)
        await session.flush()
        return card

    return _make


@pytest.fixture
def api_card_record() -> dict[str, Any]:
    """A card as returned by the card API."""
    return {
        "id": "sv1-25",
        "name": "Charmander",
        "supertype": "Pokémon",
        "subtypes": ["Basic"],
        "hp": "70",
        "types": ["Fire"],
        "attacks": [
            {"name": "Ember", "cost": ["Fire"], "damage": "30", "text": "Discard an Energy."}
        ],
        "weaknesses": [{"type": "Water", "value": "×2"}],
        "retreatCost": ["Colorless"],
        "set": {"id": "sv1", "name": "Scarlet & Violet", "releaseDate": "2023/03/31"},
        "number": "25",
        "artist": "Ken Sugimori",
        "rarity": "Common",
        "regulationMark": "G",
        "legalities": {"standard": "Legal"},
        "images": {"small": "https://img/small.png", "large": "https://img/large.png"},
    }
