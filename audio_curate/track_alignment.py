from __future__ import annotations

import logging
from typing import Optional, Sequence

from .config import TrackSettings
from .durations import DurationTolerance
from .match_utils import StringSimilarity, combine_similarity
from .models import LocalTrackFile, RemoteTrack, TrackAlignment

logger = logging.getLogger(__name__)


class TrackDurationMatcher:
    """Aligns local files to a remote track list by duration.

    Assignment is greedy in local order: each local track claims the closest
    unclaimed remote track whose delta fits that remote track's tolerance
    window, with title similarity breaking ties. Tracks without a fit stay
    unresolved (``remote_track=None``, confidence 0).
    """

    def __init__(
        self,
        settings: Optional[TrackSettings] = None,
        tolerance: Optional[DurationTolerance] = None,
        similarity: Optional[StringSimilarity] = None,
    ) -> None:
        self.settings = settings or TrackSettings()
        self.tolerance = tolerance or DurationTolerance(self.settings.tolerance)
        self.similarity = similarity or StringSimilarity()

    def align(
        self,
        local_tracks: Sequence[LocalTrackFile],
        remote_tracks: Sequence[RemoteTrack],
    ) -> list[TrackAlignment]:
        pool = list(range(len(remote_tracks)))
        alignments: list[TrackAlignment] = []
        for local in local_tracks:
            pick = self._closest(local, remote_tracks, pool)
            if pick is None:
                alignments.append(
                    TrackAlignment(local_track=local, remote_track=None, duration_delta_seconds=None, confidence=0.0)
                )
                continue
            index, delta, title_ratio = pick
            pool.remove(index)
            remote = remote_tracks[index]
            alignments.append(
                TrackAlignment(
                    local_track=local,
                    remote_track=remote,
                    duration_delta_seconds=delta,
                    confidence=self._confidence(remote, delta, title_ratio),
                )
            )
        unresolved_count = sum(1 for a in alignments if a.remote_track is None)
        if unresolved_count:
            logger.info("%d of %d local tracks have no remote match within tolerance", unresolved_count, len(alignments))
        return alignments

    def _closest(
        self,
        local: LocalTrackFile,
        remote_tracks: Sequence[RemoteTrack],
        pool: list[int],
    ) -> Optional[tuple[int, int, Optional[float]]]:
        if local.duration_seconds is None:
            return None
        best: Optional[tuple[int, float, int]] = None
        best_pick: Optional[tuple[int, int, Optional[float]]] = None
        for index in pool:
            remote = remote_tracks[index]
            if remote.duration_seconds <= 0:
                # Unknown catalog length.
                continue
            delta = local.duration_seconds - remote.duration_seconds
            if not self.tolerance.within(remote.duration_seconds, delta):
                continue
            title_ratio = self._title_ratio(local, remote)
            key = (abs(delta), -(title_ratio or 0.0), index)
            if best is None or key < best:
                best = key
                best_pick = (index, delta, title_ratio)
        return best_pick

    def _title_ratio(self, local: LocalTrackFile, remote: RemoteTrack) -> Optional[float]:
        if not local.tag_title or not remote.title:
            return None
        return self.similarity.similarity(local.tag_title, remote.title)

    def _confidence(self, remote: RemoteTrack, delta: int, title_ratio: Optional[float]) -> float:
        window = self.tolerance.tolerance_for(remote.duration_seconds) or 1
        duration_conf = max(0.0, 1.0 - abs(delta) / window)
        weight = self.settings.title_weight
        combined = combine_similarity(
            title_ratio,
            duration_conf,
            title_weight=weight,
            duration_weight=1.0 - weight,
        )
        return duration_conf if combined is None else combined


def unresolved(alignments: Sequence[TrackAlignment]) -> list[TrackAlignment]:
    return [a for a in alignments if a.remote_track is None]


def needs_reorder(alignments: Sequence[TrackAlignment]) -> bool:
    """True when aligned files carry track numbers that disagree with the catalog."""
    for alignment in alignments:
        remote = alignment.remote_track
        if remote is None:
            continue
        if alignment.local_track.tag_track_number != remote.track_number:
            return True
    return False
