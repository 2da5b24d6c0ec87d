from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from ..models import RemoteAlbum, RemoteArtist


class CatalogError(Exception):
    """Base class for catalog lookups that could not be answered."""


class CatalogNotFound(CatalogError):
    """The catalog answered: the requested entity does not exist."""


class CatalogNetworkError(CatalogError):
    """The catalog could not be reached."""


class CatalogTimeout(CatalogNetworkError):
    """The catalog did not answer within the configured timeout."""


class CatalogRateLimited(CatalogError):
    """The catalog refused the request because of its rate limit."""


@dataclass(frozen=True, slots=True)
class AlbumQuery:
    album: str
    artist: Optional[str] = None
    year: Optional[int] = None

    def describe(self) -> str:
        parts = []
        if self.artist:
            parts.append(f"artist={self.artist!r}")
        parts.append(f"album={self.album!r}")
        if self.year:
            parts.append(f"year={self.year}")
        return " ".join(parts)


class CatalogSearch(Protocol):
    def search_artist(self, name: str) -> list[RemoteArtist]: ...

    def search_album(self, query: AlbumQuery) -> list[RemoteAlbum]: ...

    def get_artist_albums(self, artist_id: str) -> list[RemoteAlbum]: ...

    def get_album(self, album_id: str) -> RemoteAlbum: ...
