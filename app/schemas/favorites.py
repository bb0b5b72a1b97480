from pydantic import BaseModel, Field, ConfigDict


class BookData(BaseModel):
    """
    Catalog fields that can be copied into a favorite
    """
    key: str | None = Field(None, description="Work key, e.g. /works/OL45804W")
    title: str | None = Field(None, description="Book title")
    author_name: str | None = Field(None, description="First author")
    cover_i: int | None = Field(None, description="Open Library cover id")
    first_publish_year: int | None = Field(None, description="First publishing year")


class ToggleRequest(BookData):
    """
    Book to toggle; the key is required
    """
    key: str = Field(..., min_length=1, description="Work key, e.g. /works/OL45804W")


class FavoriteRecord(BookData):
    """
    A favorite book as stored for the user
    """
    id: str = Field(..., description="Record id")
    created_at: str = Field(..., description="Saved at (ISO-8601)")

    model_config = ConfigDict(from_attributes=True)


class FavoriteCreated(BaseModel):
    id: str = Field(..., description="Id of the new record")


class FavoriteRemoved(BaseModel):
    success: bool


class FavoriteStatusOut(BaseModel):
    """
    Favorite status of one book for the current user
    """
    key: str
    is_favorite: bool
    record_id: str | None = None
