"""Favorites repository: the user's favorite-book set on top of the store."""
import logging
from dataclasses import dataclass
from typing import Any

from app.auth import UserSession
from app.exceptions import StoreUnavailable
from app.repositories.favorites_store import FavoritesStore, SessionFactoryStore
from app.schemas.favorites import BookData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleResult:
    is_favorite: bool
    record_id: str | None


def _book_fields(book: BookData | dict[str, Any]) -> dict[str, Any]:
    if isinstance(book, BookData):
        return book.model_dump(exclude_unset=True)
    return BookData.model_validate(book).model_dump(exclude_unset=True)


class FavoritesRepository:
    """
    CRUD access to a user's favorites.

    list/add/remove always propagate StoreUnavailable. find_by_key and
    is_favorite fail open (None / False) when fail_open_on_lookup_error is
    set, and propagate otherwise.
    """

    def __init__(
            self,
            store: FavoritesStore | SessionFactoryStore,
            fail_open_on_lookup_error: bool = True,
    ):
        self.store = store
        self.fail_open_on_lookup_error = fail_open_on_lookup_error

    async def list(self, session: UserSession) -> list[dict[str, Any]]:
        """List all favorites of the user in insertion order."""
        return await self.store.list_items(session.require_user())

    async def add(self, session: UserSession, book: BookData | dict[str, Any]) -> str:
        """Insert a favorite and return its id. Existing records are not checked."""
        return await self.store.insert_item(session.require_user(), _book_fields(book))

    async def remove(self, session: UserSession, record_id: str) -> bool:
        """Delete a favorite by record id. Missing ids are not an error."""
        return await self.store.delete_item(session.require_user(), record_id)

    async def find_by_key(
            self,
            session: UserSession,
            book_key: str,
            fail_open: bool | None = None,
    ) -> str | None:
        """
        Return the id of the first favorite with this book key, or None
        """
        user_id = session.require_user()
        if fail_open is None:
            fail_open = self.fail_open_on_lookup_error

        try:
            items = await self.store.list_items(user_id)
        except StoreUnavailable:
            if not fail_open:
                raise
            logger.warning(f"Favorite lookup failed, assuming not favorited: user={user_id}, key={book_key}")
            return None

        return next((item["id"] for item in items if item.get("key") == book_key), None)

    async def is_favorite(self, session: UserSession, book_key: str) -> bool:
        return await self.find_by_key(session, book_key) is not None

    async def toggle_favorite(
            self,
            session: UserSession,
            book_key: str,
            book: BookData | dict[str, Any] | None = None,
    ) -> ToggleResult:
        """
        Remove the book if it is a favorite, add it otherwise.

        The lookup and the write are separate store calls: two toggles racing
        from "not favorited" will both add, leaving duplicate records.
        """
        # Never act on a failed lookup
        record_id = await self.find_by_key(session, book_key, fail_open=False)

        if record_id is not None:
            await self.remove(session, record_id)
            return ToggleResult(is_favorite=False, record_id=None)

        fields = _book_fields(book) if book is not None else {}
        fields["key"] = book_key
        new_id = await self.store.insert_item(session.require_user(), fields)
        return ToggleResult(is_favorite=True, record_id=new_id)
