from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class LocalTrackFile:
    path: Path
    file_name: str
    tag_title: Optional[str] = None
    tag_track_number: Optional[int] = None
    duration_seconds: Optional[int] = None
    tag_artist: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "path": str(self.path),
            "file_name": _serialize(self.file_name),
            "tag_title": _serialize(self.tag_title),
            "tag_track_number": self.tag_track_number,
            "duration_seconds": self.duration_seconds,
            "tag_artist": _serialize(self.tag_artist),
        }


@dataclass(frozen=True, slots=True)
class LocalAlbumFolder:
    path: Path
    parsed_album_name: str
    parsed_year: Optional[int] = None
    track_files: tuple[LocalTrackFile, ...] = ()

    @property
    def folder_name(self) -> str:
        return self.path.name

    def to_record(self) -> Dict[str, object]:
        return {
            "path": str(self.path),
            "parsed_album_name": _serialize(self.parsed_album_name),
            "parsed_year": self.parsed_year,
            "track_count": len(self.track_files),
        }


@dataclass(frozen=True, slots=True)
class RemoteArtist:
    id: str
    name: str
    popularity: Optional[int] = None
    genres: tuple[str, ...] = ()

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "popularity": self.popularity,
            "genres": list(self.genres),
        }


@dataclass(frozen=True, slots=True)
class RemoteTrack:
    title: str
    duration_seconds: int
    track_number: int

    def to_record(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "track_number": self.track_number,
        }


@dataclass(frozen=True, slots=True)
class RemoteAlbum:
    id: str
    name: str
    artist_name: str
    release_year: Optional[int] = None
    track_list: tuple[RemoteTrack, ...] = ()
    artist_id: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "artist_name": self.artist_name,
            "artist_id": self.artist_id,
            "release_year": self.release_year,
            "track_count": len(self.track_list),
        }


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def cap(self, ceiling: "ConfidenceTier") -> "ConfidenceTier":
        return self if self.rank <= ceiling.rank else ceiling


_TIER_RANK = {
    ConfidenceTier.NONE: 0,
    ConfidenceTier.LOW: 1,
    ConfidenceTier.MEDIUM: 2,
    ConfidenceTier.HIGH: 3,
}


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    remote_album: RemoteAlbum
    score: float
    artist_score: float
    year_bonus_applied: bool
    name_score: float = 0.0

    def to_record(self) -> Dict[str, object]:
        return {
            "remote_album": self.remote_album.to_record(),
            "score": round(self.score, 4),
            "name_score": round(self.name_score, 4),
            "artist_score": round(self.artist_score, 4),
            "year_bonus_applied": self.year_bonus_applied,
        }


@dataclass(frozen=True, slots=True)
class AlbumComparisonResult:
    folder: LocalAlbumFolder
    best: Optional[MatchCandidate]
    tier: ConfidenceTier
    candidates: tuple[MatchCandidate, ...] = ()
    query_tier: Optional[str] = None
    ambiguous: bool = False
    excluded: bool = False
    error: Optional[str] = None

    @property
    def score(self) -> float:
        return self.best.score if self.best else 0.0

    def to_record(self) -> Dict[str, object]:
        return {
            "record": "album_comparison",
            "folder": self.folder.to_record(),
            "best": self.best.to_record() if self.best else None,
            "score": round(self.score, 4),
            "tier": self.tier.value,
            "query_tier": self.query_tier,
            "ambiguous": self.ambiguous,
            "excluded": self.excluded,
            "error": self.error,
            "candidate_count": len(self.candidates),
        }


@dataclass(frozen=True, slots=True)
class TrackAlignment:
    local_track: LocalTrackFile
    remote_track: Optional[RemoteTrack]
    duration_delta_seconds: Optional[int]
    confidence: float

    @property
    def resolved(self) -> bool:
        return self.remote_track is not None

    def to_record(self) -> Dict[str, object]:
        return {
            "record": "track_alignment",
            "local_track": self.local_track.to_record(),
            "remote_track": self.remote_track.to_record() if self.remote_track else None,
            "duration_delta_seconds": self.duration_delta_seconds,
            "confidence": round(self.confidence, 4),
        }


class ActionKind(str, Enum):
    RENAME_FOLDER = "rename_folder"
    RETAG_TRACKS = "retag_tracks"
    REORDER_TRACKS = "reorder_tracks"
    NO_ACTION = "no_action"


@dataclass(frozen=True, slots=True)
class ProposedAction:
    kind: ActionKind
    tier: ConfidenceTier
    details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, object]:
        return {
            "record": "proposed_action",
            "kind": self.kind.value,
            "tier": self.tier.value,
            "details": _serialize(self.details),
        }


@dataclass(frozen=True, slots=True)
class ArtistResolution:
    artist: RemoteArtist
    confidence: float
    strategy: str
    candidates: tuple[RemoteArtist, ...] = ()

    def to_record(self) -> Dict[str, object]:
        return {
            "record": "artist_resolution",
            "artist": self.artist.to_record(),
            "confidence": round(self.confidence, 4),
            "strategy": self.strategy,
            "candidates": [artist.name for artist in self.candidates],
        }


class ProcessingError(Exception):
    """Raised when a folder cannot be processed but the run should keep going."""


def parse_int(value: object) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if "/" in cleaned:
            cleaned = cleaned.split("/", 1)[0].strip()
        if cleaned.isdecimal():
            return int(cleaned)
        return None
    try:
        as_str = str(value).strip()
    except Exception:
        return None
    if as_str.isdecimal():
        return int(as_str)
    return None


def _serialize(value: object) -> object:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    return value
