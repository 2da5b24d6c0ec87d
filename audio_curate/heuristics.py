from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

YEAR_PATTERN = re.compile(r"(?<!\d)(19|20)\d{2}(?!\d)")
LEADING_YEAR_PATTERN = re.compile(
    r"^\s*[\[(]?(?P<year>(?:19|20)\d{2})[\])]?\s*(?:[-–—_.:]\s*)?(?P<album>.+)$"
)
TRAILING_YEAR_PATTERN = re.compile(
    r"^(?P<album>.+?)\s*(?:[-–—_]\s*)?[\[(](?P<year>(?:19|20)\d{2})[\])]\s*$"
)


@dataclass(slots=True)
class FolderGuess:
    album: str
    year: Optional[int] = None


def parse_year(value: object) -> Optional[int]:
    if value is None:
        return None
    text = str(value)
    if not text:
        return None
    match = YEAR_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(0))


def parse_album_folder_name(name: str) -> FolderGuess:
    """Split "1959 - Kind of Blue", "[1959] Kind of Blue" or "Kind of Blue (1959)"."""
    raw = (name or "").strip()
    match = LEADING_YEAR_PATTERN.match(raw)
    if match and _clean(match.group("album")):
        return FolderGuess(album=_clean(match.group("album")) or raw, year=int(match.group("year")))
    match = TRAILING_YEAR_PATTERN.match(raw)
    if match and _clean(match.group("album")):
        return FolderGuess(album=_clean(match.group("album")) or raw, year=int(match.group("year")))
    return FolderGuess(album=_clean(raw) or raw)


def canonical_folder_name(album: str, year: Optional[int]) -> str:
    cleaned = sanitize_path_component(album)
    if year:
        return f"{year} - {cleaned}"
    return cleaned


def sanitize_path_component(value: str) -> str:
    cleaned = re.sub(r'[\\/:*?"<>|]+', " ", value or "")
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" .")
    return cleaned or "Unknown Album"


def _clean(value: str | None) -> Optional[str]:
    if not value:
        return None
    cleaned = value.replace("_", " ").strip(" ._-")
    return cleaned or None
