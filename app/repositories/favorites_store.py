"""SQL-backed document store for per-user favorite items."""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import StoreUnavailable
from app.models.favorites import FavoriteItem

logger = logging.getLogger(__name__)


def item_to_document(item: FavoriteItem) -> dict[str, Any]:
    """
    Flattens a stored item into a document holding exactly the fields the
    caller supplied, plus id and created_at.
    """
    supplied = set(item.supplied_fields or ())
    document = {"id": item.id}
    for field in FavoriteItem.BOOK_FIELDS:
        if field in supplied:
            document[field] = getattr(item, field)

    created_at = item.created_at
    # SQLite hands back naive datetimes; values are always stored in UTC
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    document["created_at"] = created_at.isoformat()
    return document


class FavoritesStore:
    """
    The users/{user_id}/items collection: list-all, insert with a generated
    id and delete by id. Every failure surfaces as StoreUnavailable.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_items(self, user_id: str) -> list[dict[str, Any]]:
        try:
            result = await self.db.scalars(
                select(FavoriteItem)
                .where(FavoriteItem.user_id == user_id)
                .order_by(FavoriteItem.created_at)
            )
            items = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to list favorites: user={user_id}: {exc}")
            raise StoreUnavailable() from exc

        return [item_to_document(item) for item in items]

    async def insert_item(self, user_id: str, fields: dict[str, Any]) -> str:
        book_fields = {k: v for k, v in fields.items() if k in FavoriteItem.BOOK_FIELDS}
        item = FavoriteItem(
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
            supplied_fields=[f for f in FavoriteItem.BOOK_FIELDS if f in book_fields],
            **book_fields,
        )
        try:
            self.db.add(item)
            await self.db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to add favorite: user={user_id}: {exc}")
            await self._rollback()
            raise StoreUnavailable() from exc

        logger.info(f"Created favorite: user={user_id}, id={item.id}, key={item.key}")
        return item.id

    async def delete_item(self, user_id: str, item_id: str) -> bool:
        try:
            result = await self.db.execute(
                delete(FavoriteItem).where(
                    FavoriteItem.user_id == user_id,
                    FavoriteItem.id == item_id,
                )
            )
            await self.db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to remove favorite: user={user_id}, id={item_id}: {exc}")
            await self._rollback()
            raise StoreUnavailable() from exc

        if result.rowcount:
            logger.info(f"Removed favorite: user={user_id}, id={item_id}")
        else:
            logger.info(f"Favorite already gone: user={user_id}, id={item_id}")
        return True

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning(f"Rollback failed: {exc}")


class SessionFactoryStore:
    """
    Same collection, but each call runs in its own short-lived session so
    long-lived watchers always read committed state.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_items(self, user_id: str) -> list[dict[str, Any]]:
        async with self.session_factory() as db:
            return await FavoritesStore(db).list_items(user_id)

    async def insert_item(self, user_id: str, fields: dict[str, Any]) -> str:
        async with self.session_factory() as db:
            return await FavoritesStore(db).insert_item(user_id, fields)

    async def delete_item(self, user_id: str, item_id: str) -> bool:
        async with self.session_factory() as db:
            return await FavoritesStore(db).delete_item(user_id, item_id)
