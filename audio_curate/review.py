from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Sequence

from .heuristics import sanitize_path_component
from .models import AlbumComparisonResult, TrackAlignment

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = (
    "file",
    "tag_track",
    "tag_title",
    "duration",
    "remote_track",
    "remote_title",
    "remote_duration",
    "delta",
    "confidence",
)


def export_alignment(
    review_dir: Path,
    result: AlbumComparisonResult,
    alignments: Sequence[TrackAlignment],
) -> Path:
    """Write an editable tab-separated mapping of local files to catalog tracks."""
    review_dir.mkdir(parents=True, exist_ok=True)
    artist = result.best.remote_album.artist_name if result.best else "unknown"
    name = sanitize_path_component(f"{artist} - {result.folder.folder_name}")
    target = review_dir / f"{name}.tsv"
    with target.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle, delimiter="\t")
        writer.writerow(REVIEW_COLUMNS)
        for alignment in alignments:
            local = alignment.local_track
            remote = alignment.remote_track
            writer.writerow(
                [
                    local.file_name,
                    _blank(local.tag_track_number),
                    _blank(local.tag_title),
                    _blank(local.duration_seconds),
                    _blank(remote.track_number if remote else None),
                    _blank(remote.title if remote else None),
                    _blank(remote.duration_seconds if remote else None),
                    _blank(alignment.duration_delta_seconds),
                    f"{alignment.confidence:.2f}",
                ]
            )
    logger.info("Wrote review mapping %s", target)
    return target


def _blank(value: object) -> str:
    return "" if value is None else str(value)
