from .catalog import (
    AlbumQuery,
    CatalogError,
    CatalogNetworkError,
    CatalogNotFound,
    CatalogRateLimited,
    CatalogSearch,
    CatalogTimeout,
)

__all__ = [
    "AlbumQuery",
    "CatalogError",
    "CatalogNetworkError",
    "CatalogNotFound",
    "CatalogRateLimited",
    "CatalogSearch",
    "CatalogTimeout",
]
