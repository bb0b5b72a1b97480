import logging
import math
import re

import httpx

from app.config import OPEN_LIBRARY_URL
from app.exceptions import CatalogUnavailable

BASE_URL = OPEN_LIBRARY_URL
COVERS_URL = "https://covers.openlibrary.org/b/id"

# Search results are fetched once and paginated locally
SEARCH_FETCH_LIMIT = 100
SEARCH_FIELDS = "key,title,author_name,cover_i,first_publish_year"

logger = logging.getLogger(__name__)


def cover_url(cover_id: int | None, size: str = "M") -> str | None:
    if not cover_id:
        return None
    return f"{COVERS_URL}/{cover_id}-{size}.jpg"


def normalize_search_doc(doc: dict) -> dict:
    """
    Reduces an Open Library search document to the fields a favorite stores
    """
    authors = doc.get("author_name") or []
    return {
        "key": doc.get("key"),
        "title": doc.get("title"),
        "author_name": authors[0] if authors else None,
        "cover_i": doc.get("cover_i"),
        "first_publish_year": doc.get("first_publish_year"),
    }


def parse_year(value: str | None) -> int | None:
    if not value:
        return None
    match = re.search(r"\d{4}", value)
    return int(match.group()) if match else None


class OpenLibraryService:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def search_books(self, query: str, page: int = 1, page_size: int = 10) -> dict:
        """
        Searches Open Library and returns one page of results that have a cover
        """
        try:
            response = await self.client.get(
                "/search.json",
                params={"q": query, "limit": SEARCH_FETCH_LIMIT, "fields": SEARCH_FIELDS},
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as exc:
            logger.error(f"Open Library search failed: q={query!r}: {exc}")
            raise CatalogUnavailable("Search failed. Please try again.") from exc

        # Books without a cover are not shown
        books = [
            normalize_search_doc(doc)
            for doc in results.get("docs", [])
            if doc.get("cover_i") and doc.get("key")
        ]

        offset = (page - 1) * page_size
        return {
            "items": books[offset:offset + page_size],
            "total": len(books),
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(len(books) / page_size),
        }

    async def get_work(self, work_id: str) -> dict | None:
        """
        Returns detailed information about a book by work OLID
        """
        try:
            resp = await self.client.get(f"/works/{work_id}.json")
            if resp.status_code == httpx.codes.NOT_FOUND:
                return None
            resp.raise_for_status()
            work = resp.json()
        except httpx.HTTPError as exc:
            logger.error(f"Open Library work lookup failed: work={work_id}: {exc}")
            raise CatalogUnavailable() from exc

        # First author only
        author_name = None
        for a in work.get("authors", []):
            author_key = a.get("author", {}).get("key")
            if not author_key:
                continue
            try:
                author_resp = await self.client.get(f"{author_key}.json")
                author_resp.raise_for_status()
                author_name = author_resp.json().get("name")
            except httpx.HTTPError:
                logger.warning(f"Could not load author {author_key} for work {work_id}")
            break

        description = work.get("description")
        if isinstance(description, dict):
            description = description.get("value")

        covers = [c for c in work.get("covers") or [] if c and c > 0]
        first_publish_date = work.get("first_publish_date")

        return {
            "key": f"/works/{work_id}",
            "title": work.get("title"),
            "author_name": author_name,
            "cover_i": covers[0] if covers else None,
            "first_publish_year": parse_year(first_publish_date),
            "first_publish_date": first_publish_date,
            "subjects": work.get("subjects") or [],
            "description": description,
            "cover_url": cover_url(covers[0] if covers else None, size="L"),
        }
