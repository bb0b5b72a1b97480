import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import LOG_LEVEL, OPEN_LIBRARY_TIMEOUT
from app.database import engine, Base
from app.exceptions import FavoritesError
from app.routers import books, favorites
from app.services.open_library import OpenLibraryService, BASE_URL

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with httpx.AsyncClient(base_url=BASE_URL, timeout=OPEN_LIBRARY_TIMEOUT) as client:
        app.state.open_library_service = OpenLibraryService(client)
        logger.info("Book favorites API started")
        yield

    await engine.dispose()


app = FastAPI(title="Book Favorites API", lifespan=lifespan)

app.include_router(books.router)
app.include_router(favorites.router)


@app.exception_handler(FavoritesError)
async def favorites_error_handler(request: Request, exc: FavoritesError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.get("/")
async def root():
    return {"message": "Book Favorites API"}
