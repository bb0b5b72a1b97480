import uuid
from datetime import datetime

from sqlalchemy import Integer, String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def new_item_id() -> str:
    return uuid.uuid4().hex


class FavoriteItem(Base):
    """
    Represents a favorite book saved by a user (users/{user_id}/items/{id}).
    Book metadata is copied in at save time and never refreshed.
    """
    __tablename__ = 'favorite_items'

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_item_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # No unique constraint on (user_id, key): duplicate favorites are possible
    key: Mapped[str | None] = mapped_column(String, nullable=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    author_name: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_i: Mapped[int | None] = mapped_column(Integer, nullable=True)
    first_publish_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Names of the book fields the caller supplied, explicit nulls included
    supplied_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Fields a caller may supply when adding a favorite
    BOOK_FIELDS = ("key", "title", "author_name", "cover_i", "first_publish_year")
