import os


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./favorites.db")

# JWT
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production-use-a-long-random-string")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Open Library
OPEN_LIBRARY_URL = os.getenv("OPEN_LIBRARY_URL", "https://openlibrary.org")
OPEN_LIBRARY_TIMEOUT = float(os.getenv("OPEN_LIBRARY_TIMEOUT", "10"))
SEARCH_PAGE_SIZE = int(os.getenv("SEARCH_PAGE_SIZE", "10"))

# Favorites synchronization
FAVORITE_POLL_INTERVAL = float(os.getenv("FAVORITE_POLL_INTERVAL", "1.0"))
FAVORITE_LIST_REFRESH_DELAY = float(os.getenv("FAVORITE_LIST_REFRESH_DELAY", "0.1"))
FAVORITES_FAIL_OPEN = _as_bool(os.getenv("FAVORITES_FAIL_OPEN", "true"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
