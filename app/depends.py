from collections.abc import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import FAVORITES_FAIL_OPEN
from app.database import async_session_maker
from app.repositories.favorites import FavoritesRepository
from app.repositories.favorites_store import FavoritesStore


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


async def get_async_db(
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    """
    Yields an async database session for the duration of a request
    """
    async with session_factory() as session:
        yield session


async def get_favorites_repository(
        db: AsyncSession = Depends(get_async_db),
) -> FavoritesRepository:
    """
    Builds the favorites repository on top of the request's session
    """
    return FavoritesRepository(
        FavoritesStore(db),
        fail_open_on_lookup_error=FAVORITES_FAIL_OPEN,
    )
