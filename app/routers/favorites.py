import json

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.auth import UserSession, get_current_session
from app.config import FAVORITE_POLL_INTERVAL, FAVORITES_FAIL_OPEN
from app.depends import get_favorites_repository, get_session_factory
from app.exceptions import StoreUnavailable, FavoriteToggleError
from app.repositories.favorites import FavoritesRepository, ToggleResult
from app.repositories.favorites_store import SessionFactoryStore
from app.schemas.favorites import (
    BookData,
    FavoriteCreated,
    FavoriteRecord,
    FavoriteRemoved,
    FavoriteStatusOut,
    ToggleRequest,
)
from app.services.favorite_sync import FavoriteStatus, FavoriteWatcher


router = APIRouter(
    prefix="/favorites",
    tags=["favorites"],
)


@router.get("/", response_model=list[FavoriteRecord])
async def list_favorites(
        session: UserSession = Depends(get_current_session),
        repository: FavoritesRepository = Depends(get_favorites_repository),
):
    """
    Returns all favorites of the current user
    """
    return await repository.list(session)


@router.post("/", response_model=FavoriteCreated, status_code=status.HTTP_201_CREATED)
async def add_favorite(
        book: BookData,
        session: UserSession = Depends(get_current_session),
        repository: FavoritesRepository = Depends(get_favorites_repository),
):
    """
    Saves a book as a favorite. An existing favorite with the same key is not checked.
    """
    record_id = await repository.add(session, book)
    return FavoriteCreated(id=record_id)


@router.delete("/{record_id}", response_model=FavoriteRemoved)
async def remove_favorite(
        record_id: str,
        session: UserSession = Depends(get_current_session),
        repository: FavoritesRepository = Depends(get_favorites_repository),
):
    """
    Removes a favorite by record id; removing a missing record succeeds
    """
    success = await repository.remove(session, record_id)
    return FavoriteRemoved(success=success)


@router.get("/status", response_model=FavoriteStatusOut)
async def favorite_status(
        key: str = Query(..., min_length=1, description="Work key"),
        session: UserSession = Depends(get_current_session),
        repository: FavoritesRepository = Depends(get_favorites_repository),
):
    """
    Checks whether a book is among the current user's favorites
    """
    record_id = await repository.find_by_key(session, key)
    return FavoriteStatusOut(key=key, is_favorite=record_id is not None, record_id=record_id)


@router.post("/toggle", response_model=ToggleResult)
async def toggle_favorite(
        book: ToggleRequest,
        session: UserSession = Depends(get_current_session),
        repository: FavoritesRepository = Depends(get_favorites_repository),
):
    """
    Removes the book from favorites if it is there, adds it otherwise
    """
    try:
        return await repository.toggle_favorite(session, book.key, book)
    except StoreUnavailable as exc:
        raise FavoriteToggleError() from exc


@router.get("/watch")
async def watch_favorite(
        key: str = Query(..., min_length=1, description="Work key"),
        interval: float = Query(FAVORITE_POLL_INTERVAL, gt=0, le=60, description="Poll interval in seconds"),
        limit: int | None = Query(None, ge=1, description="Stop after this many events"),
        session: UserSession = Depends(get_current_session),
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """
    Streams the favorite status of a book as server-sent events.
    The store is polled every `interval` seconds until the client goes away.
    """
    repository = FavoritesRepository(
        SessionFactoryStore(session_factory),
        fail_open_on_lookup_error=FAVORITES_FAIL_OPEN,
    )
    watcher = FavoriteWatcher(repository, session, key, poll_interval=interval)

    def status_event(current: FavoriteStatus) -> str:
        payload = {"key": key, "status": current.value}
        return f"event: status\ndata: {json.dumps(payload)}\n\n"

    async def event_stream():
        try:
            # Clients render the checking state until the first lookup lands
            yield status_event(watcher.status)
            if limit == 1:
                return
            sent = 1

            await watcher.start()
            async for current in watcher.changes():
                yield status_event(current)
                sent += 1
                if limit is not None and sent >= limit:
                    break
        finally:
            await watcher.close()

    return StreamingResponse(event_stream(), media_type="text/event-stream")
