"""Shared fixtures: in-memory SQLite sessions and an in-memory store double."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.auth import UserSession
from app.database import Base
from app.exceptions import StoreUnavailable
from app.models.favorites import FavoriteItem  # noqa: F401 - registers the table


class MemoryStore:
    """In-memory double of :class:`app.repositories.favorites_store.FavoritesStore`.

    Every call yields to the event loop once before touching state, so
    concurrent callers interleave the way network round trips would.
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.failing = False
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self._ids = itertools.count(1)

    async def _round_trip(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.failing:
            raise StoreUnavailable()

    async def list_items(self, user_id: str) -> list[dict[str, Any]]:
        await self._round_trip("list")
        return [dict(item) for item in self.collections.get(user_id, [])]

    async def insert_item(self, user_id: str, fields: dict[str, Any]) -> str:
        await self._round_trip("insert")
        item_id = f"item-{next(self._ids)}"
        self.collections.setdefault(user_id, []).append(
            {"id": item_id, **fields, "created_at": datetime.now(timezone.utc).isoformat()}
        )
        return item_id

    async def delete_item(self, user_id: str, item_id: str) -> bool:
        await self._round_trip("delete")
        items = self.collections.get(user_id, [])
        self.collections[user_id] = [item for item in items if item["id"] != item_id]
        return True


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def alice() -> UserSession:
    return UserSession(user_id="user-alice")


@pytest.fixture
def bob() -> UserSession:
    return UserSession(user_id="user-bob")


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Single-connection in-memory SQLite engine with fresh tables."""

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
