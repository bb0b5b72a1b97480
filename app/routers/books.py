from fastapi import APIRouter, Request, Query, HTTPException, status

from app.config import SEARCH_PAGE_SIZE
from app.schemas.books import Book as BookSchema, BooksSearchList

router = APIRouter(
    prefix="/books",
    tags=["books"],
)


@router.get("/search", response_model=BooksSearchList)
async def search_books(
    request: Request,
    q: str = Query("", description="Search query"),
    page: int = Query(1, ge=1),
    page_size: int = Query(SEARCH_PAGE_SIZE, ge=1, le=100),
):
    """
    Searches the catalog; only books with a cover are returned
    """
    # Return empty result for a blank query
    if not q.strip():
        return BooksSearchList(items=[], total=0, page=page, page_size=page_size, total_pages=0)

    service = request.app.state.open_library_service
    results = await service.search_books(q.strip(), page=page, page_size=page_size)
    return BooksSearchList(**results)


@router.get("/works/{work_id}", response_model=BookSchema)
async def get_book_by_work(work_id: str, request: Request):
    """
    Returns detailed book information by work OLID
    """
    service = request.app.state.open_library_service
    book_data = await service.get_work(work_id)

    if not book_data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="This book not found")

    return BookSchema(**book_data)
