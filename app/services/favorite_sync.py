"""
Keeps a view's idea of "is this book a favorite" in line with the store.

The store has no push notifications, so every view re-queries it: once on
start, optionally on a fixed poll interval, and after each toggle. Two
views of the same book can disagree for up to one poll interval (watchers)
or one refresh delay (list views).
"""
import asyncio
import enum
import logging
from collections.abc import AsyncIterator
from typing import Any

from app.auth import UserSession
from app.config import FAVORITE_LIST_REFRESH_DELAY
from app.exceptions import StoreUnavailable, FavoriteToggleError
from app.repositories.favorites import FavoritesRepository, ToggleResult
from app.schemas.favorites import BookData

logger = logging.getLogger(__name__)


class FavoriteStatus(str, enum.Enum):
    CHECKING = "checking"
    FAVORITED = "favorited"
    NOT_FAVORITED = "not_favorited"


class FavoriteWatcher:
    """
    Tracks the favorite status of one book for one user.

    Status starts as CHECKING until the first lookup completes. Lookup
    failures degrade silently to NOT_FAVORITED; toggle failures raise
    FavoriteToggleError and leave the status untouched. After close() no
    late result is applied and the polling task is cancelled.
    """

    def __init__(
            self,
            repository: FavoritesRepository,
            session: UserSession,
            book_key: str,
            poll_interval: float | None = None,
    ):
        if poll_interval is not None and poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self.repository = repository
        self.session = session
        self.book_key = book_key
        self.poll_interval = poll_interval

        self.status = FavoriteStatus.CHECKING
        self.record_id: str | None = None

        self._alive = True
        self._toggling = False
        # Bumped by every toggle; lookups started under an older value are stale
        self._generation = 0
        self._poll_task: asyncio.Task | None = None
        self._changed = asyncio.Event()

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def is_favorite(self) -> bool:
        return self.status is FavoriteStatus.FAVORITED

    async def start(self) -> FavoriteStatus:
        """
        Runs the initial lookup and starts polling if an interval is set
        """
        await self.refresh()
        if self.poll_interval is not None and self._alive and self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll())
        return self.status

    async def refresh(self) -> FavoriteStatus:
        generation = self._generation
        try:
            record_id = await self.repository.find_by_key(self.session, self.book_key, fail_open=False)
        except StoreUnavailable:
            logger.warning(f"Status check failed, showing not favorited: user={self.session.user_id}, key={self.book_key}")
            record_id = None

        # A toggle started or finished since the lookup was issued owns the state
        if not self._toggling and generation == self._generation:
            self._apply(record_id)
        return self.status

    async def toggle(self, book: BookData | dict[str, Any] | None = None) -> ToggleResult:
        """
        Adds or removes the book, then records the new state
        """
        if not self._alive:
            raise FavoriteToggleError("This view is closed")
        if self._toggling:
            raise FavoriteToggleError("A favorite update is already in progress")

        self._toggling = True
        self._generation += 1
        try:
            result = await self.repository.toggle_favorite(self.session, self.book_key, book)
        except StoreUnavailable as exc:
            logger.error(f"Toggle failed: user={self.session.user_id}, key={self.book_key}: {exc}")
            raise FavoriteToggleError() from exc
        finally:
            self._toggling = False

        self._apply(result.record_id)
        return result

    async def changes(self) -> AsyncIterator[FavoriteStatus]:
        """
        Yields the current status, then each new status until closed.
        Only the latest status is kept, so a slow consumer skips over
        intermediate flaps instead of building a backlog.
        """
        last = None
        while True:
            if self.status is not last:
                last = self.status
                yield last
                continue
            if not self._alive:
                return
            await self._changed.wait()

    async def close(self) -> None:
        if not self._alive:
            return
        self._alive = False

        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._notify()

    async def __aenter__(self) -> "FavoriteWatcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _poll(self) -> None:
        while self._alive:
            await asyncio.sleep(self.poll_interval)
            await self.refresh()

    def _apply(self, record_id: str | None) -> None:
        if not self._alive:
            return

        status = FavoriteStatus.FAVORITED if record_id else FavoriteStatus.NOT_FAVORITED
        self.record_id = record_id
        if status is not self.status:
            self.status = status
            self._notify()

    def _notify(self) -> None:
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()


class FavoritesListView:
    """
    The favorites page: loads the whole list, and reloads all of it
    refresh_delay seconds after every toggle made from the page.
    """

    def __init__(
            self,
            repository: FavoritesRepository,
            session: UserSession,
            refresh_delay: float = FAVORITE_LIST_REFRESH_DELAY,
    ):
        self.repository = repository
        self.session = session
        self.refresh_delay = refresh_delay
        self.items: list[dict[str, Any]] = []

    async def load(self) -> list[dict[str, Any]]:
        self.items = await self.repository.list(self.session)
        return self.items

    async def toggle(self, book_key: str, book: BookData | dict[str, Any] | None = None) -> ToggleResult:
        try:
            result = await self.repository.toggle_favorite(self.session, book_key, book)
        except StoreUnavailable as exc:
            raise FavoriteToggleError() from exc

        # Give the write time to become visible before reloading
        await asyncio.sleep(self.refresh_delay)
        await self.load()
        return result
