from __future__ import annotations

import logging
import socket
import threading
import time
import urllib.error
from typing import Any, Callable, Optional, TypeVar

import musicbrainzngs

from ..config import ProviderSettings
from ..heuristics import parse_year
from ..models import RemoteAlbum, RemoteArtist, RemoteTrack
from .catalog import (
    AlbumQuery,
    CatalogError,
    CatalogNetworkError,
    CatalogNotFound,
    CatalogRateLimited,
    CatalogTimeout,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

APP_NAME = "audio-curate"
APP_VERSION = "0.1"


class MusicBrainzCatalog:
    """CatalogSearch backed by the MusicBrainz web service.

    Search results carry no track lists; ``get_album`` fetches them.
    """

    def __init__(self, settings: ProviderSettings) -> None:
        self.settings = settings
        self._slots = threading.BoundedSemaphore(settings.max_concurrent_requests)
        musicbrainzngs.set_useragent(APP_NAME, APP_VERSION, contact=settings.musicbrainz_useragent)
        rate = settings.requests_per_second
        if rate >= 1:
            musicbrainzngs.set_rate_limit(1.0, int(rate))
        elif rate > 0:
            musicbrainzngs.set_rate_limit(1.0 / rate, 1)
        if socket.getdefaulttimeout() is None:
            # musicbrainzngs opens URLs without a timeout of its own.
            socket.setdefaulttimeout(settings.request_timeout_seconds)

    def search_artist(self, name: str) -> list[RemoteArtist]:
        if not name or not name.strip():
            return []
        response = self._call(
            lambda: musicbrainzngs.search_artists(artist=name, limit=self.settings.search_limit),
            label=f"artist search {name!r}",
        )
        artists: list[RemoteArtist] = []
        for entry in response.get("artist-list", []):
            artist_id = entry.get("id")
            if not artist_id:
                continue
            tags = sorted(
                entry.get("tag-list", []),
                key=lambda tag: -int(tag.get("count") or 0),
            )
            artists.append(
                RemoteArtist(
                    id=artist_id,
                    name=entry.get("name") or "",
                    popularity=_int_or_none(entry.get("ext:score")),
                    genres=tuple(tag.get("name") for tag in tags if tag.get("name")),
                )
            )
        return artists

    def search_album(self, query: AlbumQuery) -> list[RemoteAlbum]:
        if not query.album or not query.album.strip():
            return []
        fields: dict[str, Any] = {"release": query.album}
        if query.artist:
            fields["artist"] = query.artist
        if query.year:
            fields["date"] = str(query.year)
        response = self._call(
            lambda: musicbrainzngs.search_releases(limit=self.settings.search_limit, **fields),
            label=f"release search {query.describe()}",
        )
        return [album for album in (_release_to_album(e) for e in response.get("release-list", [])) if album]

    def get_artist_albums(self, artist_id: str) -> list[RemoteAlbum]:
        response = self._call(
            lambda: musicbrainzngs.browse_releases(artist=artist_id, release_type=["album"], limit=100),
            label=f"release browse {artist_id}",
        )
        albums: list[RemoteAlbum] = []
        for entry in response.get("release-list", []):
            album = _release_to_album(entry)
            if album is None:
                continue
            if not album.artist_name:
                album = RemoteAlbum(
                    id=album.id,
                    name=album.name,
                    artist_name=entry.get("artist-credit-phrase") or "",
                    release_year=album.release_year,
                    artist_id=artist_id,
                )
            albums.append(album)
        return albums

    def get_album(self, album_id: str) -> RemoteAlbum:
        response = self._call(
            lambda: musicbrainzngs.get_release_by_id(album_id, includes=["recordings", "artist-credits"]),
            label=f"release lookup {album_id}",
        )
        release = response.get("release") or {}
        album = _release_to_album(release)
        if album is None:
            raise CatalogNotFound(f"release {album_id} not found")
        tracks: list[RemoteTrack] = []
        for medium in release.get("medium-list", []):
            for track in medium.get("track-list", []):
                recording = track.get("recording") or {}
                length_ms = _int_or_none(track.get("length") or recording.get("length"))
                tracks.append(
                    RemoteTrack(
                        title=track.get("title") or recording.get("title") or "",
                        duration_seconds=round(length_ms / 1000) if length_ms else 0,
                        track_number=len(tracks) + 1,
                    )
                )
        return RemoteAlbum(
            id=album.id,
            name=album.name,
            artist_name=album.artist_name,
            release_year=album.release_year,
            track_list=tuple(tracks),
            artist_id=album.artist_id,
        )

    def _call(self, fn: Callable[[], T], *, label: str) -> T:
        retries = max(0, int(self.settings.network_retries))
        backoff = max(0.0, float(self.settings.network_retry_backoff_seconds))
        attempts = 1 + retries
        for attempt in range(1, attempts + 1):
            try:
                with self._slots:
                    return fn()
            except Exception as exc:
                error = self._translate(exc)
                if not isinstance(error, (CatalogNetworkError, CatalogRateLimited)) or attempt >= attempts:
                    if error is exc:
                        raise
                    raise error from exc
                sleep_for = backoff * (2 ** (attempt - 1))
                logger.debug("MusicBrainz %s failed (%s); retry %d in %.1fs", label, exc, attempt, sleep_for)
                if sleep_for:
                    time.sleep(sleep_for)
        raise CatalogError(f"MusicBrainz {label} failed")

    @staticmethod
    def _translate(exc: Exception) -> Exception:
        if isinstance(exc, CatalogError):
            return exc
        cause = getattr(exc, "cause", None) or exc
        if isinstance(exc, musicbrainzngs.ResponseError):
            code = getattr(cause, "code", None)
            if code == 404:
                return CatalogNotFound(str(exc))
            if code in (429, 503):
                return CatalogRateLimited(str(exc))
            return CatalogError(str(exc))
        if _is_timeout(cause):
            return CatalogTimeout(str(exc))
        if isinstance(exc, musicbrainzngs.NetworkError) or isinstance(
            exc, (socket.gaierror, urllib.error.URLError, ConnectionError)
        ):
            return CatalogNetworkError(str(exc))
        return exc


def _is_timeout(exc: object) -> bool:
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return True
    reason = getattr(exc, "reason", None)
    return isinstance(reason, (TimeoutError, socket.timeout))


def _release_to_album(entry: dict) -> Optional[RemoteAlbum]:
    release_id = entry.get("id")
    if not release_id:
        return None
    artist_name, artist_id = _first_artist(entry)
    return RemoteAlbum(
        id=release_id,
        name=entry.get("title") or "",
        artist_name=artist_name or entry.get("artist-credit-phrase") or "",
        release_year=parse_year(entry.get("date")),
        artist_id=artist_id,
    )


def _first_artist(entry: dict) -> tuple[Optional[str], Optional[str]]:
    for credit in entry.get("artist-credit", []) or []:
        if isinstance(credit, dict):
            artist = credit.get("artist") or {}
            name = credit.get("name") or artist.get("name")
            if name:
                return name, artist.get("id")
    return None, None


def _int_or_none(value: object) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
