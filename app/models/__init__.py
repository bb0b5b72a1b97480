from app.models.favorites import FavoriteItem
