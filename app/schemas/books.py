from pydantic import BaseModel, Field

from app.schemas.favorites import BookData


class BooksSearchItem(BookData):
    """
    A book in the search results, in the shape a favorite stores
    """
    pass


class BooksSearchList(BaseModel):
    """
    One page of search results
    """
    items: list[BooksSearchItem] = Field(..., description="Books on this page")
    total: int = Field(..., description="Books found with a cover")
    page: int = Field(..., description="Page number")
    page_size: int = Field(..., description="Books per page")
    total_pages: int = Field(..., description="Number of pages")


class Book(BookData):
    """
    Detailed information about a work
    """
    first_publish_date: str | None = Field(None, description="First publish date as given by the catalog")
    subjects: list[str] = Field(default_factory=list, description="Subjects")
    description: str | None = Field(None, description="Description")
    cover_url: str | None = Field(None, description="Large cover image URL")
