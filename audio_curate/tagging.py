from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .models import LocalTrackFile, parse_int

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = {
    "title": "title",
    "artist": "artist",
    "album": "album",
    "album_artist": "albumartist",
    "track_number": "tracknumber",
    "date": "date",
}


class TagCodec:
    """Reads and writes the handful of tags the matcher cares about."""

    SUPPORTED_EXTS = {".mp3", ".flac", ".m4a", ".ogg"}

    def read_tags(self, path: Path) -> LocalTrackFile:
        empty = LocalTrackFile(path=path, file_name=path.name)
        if path.suffix.lower() not in self.SUPPORTED_EXTS:
            logger.debug("Skipping unsupported extension %s", path)
            return empty
        try:
            audio = MutagenFile(path, easy=True)
        except (MutagenError, OSError) as exc:
            logger.debug("Failed to read tags for %s: %s", path, exc)
            return empty
        if audio is None:
            return empty
        duration = None
        length = getattr(getattr(audio, "info", None), "length", None)
        if length:
            duration = int(round(length))
        tags = audio.tags or {}
        return LocalTrackFile(
            path=path,
            file_name=path.name,
            tag_title=_first(tags, "title"),
            tag_track_number=parse_int(_first(tags, "tracknumber")),
            duration_seconds=duration,
            tag_artist=_first(tags, "albumartist") or _first(tags, "artist"),
        )

    def write_tags(self, path: Path, fields: Mapping[str, object]) -> bool:
        if path.suffix.lower() not in self.SUPPORTED_EXTS:
            logger.debug("Skipping unsupported extension %s", path)
            return False
        changes = self._desired_map(fields)
        if not changes:
            return True
        try:
            audio = MutagenFile(path, easy=True)
            if audio is None:
                logger.warning("Unrecognised audio file %s", path)
                return False
            if audio.tags is None:
                audio.add_tags()
            for key, value in changes.items():
                audio[key] = value
            audio.save()
        except (MutagenError, OSError) as exc:
            logger.warning("Failed to write tags for %s: %s", path, exc)
            return False
        return True

    @staticmethod
    def _desired_map(fields: Mapping[str, object]) -> Dict[str, str]:
        mapping: Dict[str, str] = {}
        for name, value in fields.items():
            key = WRITABLE_FIELDS.get(name)
            if key is None:
                logger.debug("Ignoring unsupported tag field %s", name)
                continue
            if value is None:
                continue
            mapping[key] = value if isinstance(value, str) else str(value)
        return mapping


def _first(tags, key: str) -> Optional[str]:
    values = tags.get(key)
    if not values:
        return None
    value = values[0] if isinstance(values, list) else values
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    cleaned = str(value).strip()
    return cleaned or None
