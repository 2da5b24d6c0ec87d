from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from .config import LibrarySettings
from .exclusions import ExclusionMatcher
from .heuristics import parse_album_folder_name
from .models import LocalAlbumFolder, LocalTrackFile
from .tagging import TagCodec

logger = logging.getLogger(__name__)

DISC_FOLDER = re.compile(r"(?:^|\s)(disc|cd|disk)\s*\d", re.IGNORECASE)


def looks_like_disc_folder(name: str) -> bool:
    return bool(DISC_FOLDER.search(name))


class LibraryScanner:
    """Walks artist/album folders and builds LocalAlbumFolder snapshots."""

    def __init__(self, settings: LibrarySettings, codec: Optional[TagCodec] = None) -> None:
        self.settings = settings
        self.codec = codec or TagCodec()
        self._exts = {ext.lower() for ext in self.settings.include_extensions}
        # Album folder exclusions are applied later by the matcher so they still get a result.
        self._ignored_files = ExclusionMatcher(self.settings.ignore_file_patterns)

    def iter_artist_directories(self) -> Iterator[Path]:
        for root in self.settings.roots:
            if not root.exists():
                logger.warning("Library root %s does not exist", root)
                continue
            for entry in sorted(root.iterdir()):
                if entry.is_dir() and not entry.name.startswith("."):
                    yield entry

    def scan_artist(self, artist_dir: Path) -> list[LocalAlbumFolder]:
        albums: list[LocalAlbumFolder] = []
        if not artist_dir.is_dir():
            return albums
        for entry in sorted(artist_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            album = self.build_album(entry)
            if album:
                albums.append(album)
        return albums

    def build_album(self, directory: Path) -> Optional[LocalAlbumFolder]:
        files = self._audio_files(directory)
        if not files:
            logger.debug("No audio files in %s", directory)
            return None
        guess = parse_album_folder_name(directory.name)
        tracks = tuple(self.codec.read_tags(path) for path in files)
        return LocalAlbumFolder(
            path=directory,
            parsed_album_name=guess.album,
            parsed_year=guess.year,
            track_files=tracks,
        )

    def _audio_files(self, directory: Path) -> list[Path]:
        files = [p for p in sorted(directory.iterdir()) if p.is_file() and self._should_include(p)]
        for sub in sorted(directory.iterdir()):
            if sub.is_dir() and looks_like_disc_folder(sub.name):
                files.extend(p for p in sorted(sub.iterdir()) if p.is_file() and self._should_include(p))
        return files

    def _should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        return not self._ignored_files.is_excluded(path.name)
