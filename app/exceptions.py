from fastapi import status


class FavoritesError(Exception):
    """
    Base class for application errors that map onto an HTTP error response
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__.strip()
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.error_code, "message": self.message}}


class StoreUnavailable(FavoritesError):
    """
    The favorites store could not be reached
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "STORE_UNAVAILABLE"


class Unauthenticated(FavoritesError):
    """
    No authenticated user for this request
    """
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"


class CatalogUnavailable(FavoritesError):
    """
    The book catalog could not be reached
    """
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "CATALOG_UNAVAILABLE"


class FavoriteToggleError(FavoritesError):
    """
    Operation failed, please try again
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "FAVORITE_TOGGLE_FAILED"
