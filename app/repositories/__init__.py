from app.repositories.favorites import FavoritesRepository, ToggleResult
from app.repositories.favorites_store import FavoritesStore, SessionFactoryStore
