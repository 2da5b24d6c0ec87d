from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .durations import Strictness

EXECUTION_MODES = ("automatic", "manual", "smart")


class LibrarySettings(BaseModel):
    roots: List[Path] = Field(default_factory=list)
    include_extensions: List[str] = Field(default_factory=lambda: [".mp3", ".flac", ".m4a", ".ogg"])
    exclude_patterns: List[str] = Field(default_factory=list)
    ignore_file_patterns: List[str] = Field(default_factory=list)

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: List[str]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values or []]


class ProviderSettings(BaseModel):
    musicbrainz_useragent: str = "audio-curate/0.1 (unknown@example.com)"
    network_retries: int = 1
    network_retry_backoff_seconds: float = 0.5
    request_timeout_seconds: float = 15.0
    requests_per_second: float = 1.0
    max_concurrent_requests: int = 1
    search_limit: int = 10

    @field_validator("max_concurrent_requests", "search_limit")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)


class TierThresholds(BaseModel):
    high: float = 1.3
    medium: float = 0.6
    low: float = 0.3

    @model_validator(mode="after")
    def _ordered(self) -> "TierThresholds":
        if not self.high >= self.medium >= self.low:
            raise ValueError("tier thresholds must satisfy high >= medium >= low")
        return self


class MatchingSettings(BaseModel):
    year_bonus: float = 1.0
    artist_mismatch_threshold: float = 0.3
    artist_mismatch_cap: float = 0.25
    tie_epsilon: float = 0.01
    tiers: TierThresholds = TierThresholds()
    good_enough_confidence: float = 0.8
    voting_sample: int = 5
    vote_min_similarity: float = 0.6
    top_candidates: int = 5


class TrackSettings(BaseModel):
    tolerance: Strictness = Strictness.NORMAL
    title_weight: float = 0.3
    min_alignment_confidence: float = 0.5

    @field_validator("tolerance", mode="before")
    @classmethod
    def _lower_tolerance(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


class RunSettings(BaseModel):
    mode: str = "smart"
    worker_concurrency: int = 4
    records_path: Optional[Path] = None
    review_dir: Optional[Path] = None

    @field_validator("mode", mode="before")
    @classmethod
    def _known_mode(cls, value: str) -> str:
        mode = str(value or "").strip().lower()
        if mode not in EXECUTION_MODES:
            raise ValueError(f"mode must be one of {', '.join(EXECUTION_MODES)}")
        return mode

    @field_validator("records_path", "review_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    providers: ProviderSettings = ProviderSettings()
    matching: MatchingSettings = MatchingSettings()
    tracks: TrackSettings = TrackSettings()
    run: RunSettings = RunSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None
