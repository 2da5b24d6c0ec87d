from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional

from .album_matching import AlbumMatchPipeline
from .album_scoring import AlbumScorer
from .artist_resolution import ArtistResolver
from .config import Settings
from .decisions import DecisionEngine, DecisionSource, DecisionUnit, Outcome, UnitState, propose_actions
from .executor import ActionExecutor
from .match_utils import StringSimilarity
from .models import (
    AlbumComparisonResult,
    ConfidenceTier,
    LocalAlbumFolder,
    ProcessingError,
    RemoteAlbum,
    RemoteArtist,
    TrackAlignment,
)
from .providers.catalog import CatalogError, CatalogSearch
from .records import JsonlRecordWriter
from .review import export_alignment
from .scanner import LibraryScanner
from .track_alignment import TrackDurationMatcher, needs_reorder, unresolved

logger = logging.getLogger(__name__)


class LibraryCurator:
    """Runs one curation pass over artist folders: resolve, match, align, decide, apply."""

    def __init__(
        self,
        settings: Settings,
        client: CatalogSearch,
        *,
        scanner: Optional[LibraryScanner] = None,
        decision_source: Optional[DecisionSource] = None,
        executor: Optional[ActionExecutor] = None,
        records: Optional[JsonlRecordWriter] = None,
        mode: Optional[str] = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.similarity = StringSimilarity()
        self.scanner = scanner or LibraryScanner(settings.library)
        self.scorer = AlbumScorer(settings.matching, self.similarity)
        self.resolver = ArtistResolver(settings.matching, self.scorer, self.similarity)
        self.pipeline = AlbumMatchPipeline(client, settings.matching, self.scorer)
        self.matcher = TrackDurationMatcher(settings.tracks, similarity=self.similarity)
        self.engine = DecisionEngine(mode or settings.run.mode, decision_source)
        self.executor = executor or ActionExecutor(dry_run=True)
        self.records = records
        if self.records is None and settings.run.records_path:
            self.records = JsonlRecordWriter(settings.run.records_path)
        self.skip_reasons: dict[str, str] = {}
        self._skip_lock = Lock()

    def run(self, artist_dirs: Iterable[Path]) -> list[DecisionUnit]:
        units: list[DecisionUnit] = []
        for artist_dir in artist_dirs:
            if self.engine.cancelled:
                logger.info("Run cancelled; %s not processed", artist_dir)
                break
            units.extend(self.process_artist(artist_dir))
        return units

    def process_artist(self, artist_dir: Path) -> list[DecisionUnit]:
        albums = self.scanner.scan_artist(artist_dir)
        if not albums:
            logger.info("No album folders under %s", artist_dir)
            return []
        try:
            artist = self._resolve_artist(artist_dir.name, albums)
        except CatalogError as exc:
            logger.warning("Could not resolve artist %s: %s", artist_dir.name, exc)
            self._record_skip(str(artist_dir), f"artist lookup failed: {exc}")
            return []
        results = self._compare(albums, artist)
        units = [self._score_unit(result) for result in results]
        for unit in self.engine.process(units):
            self._finish_unit(unit)
        return units

    def _resolve_artist(self, folder_name: str, albums: list[LocalAlbumFolder]) -> RemoteArtist:
        resolution = self.resolver.resolve(folder_name, self.client, albums)
        if resolution is None:
            logger.info("Artist %s not found in catalog; matching against the folder name", folder_name)
            return RemoteArtist(id="", name=folder_name)
        self._write(resolution)
        logger.info(
            "Artist %s -> %s (%s, %.2f)",
            folder_name,
            resolution.artist.name,
            resolution.strategy,
            resolution.confidence,
        )
        return resolution.artist

    def _compare(self, albums: list[LocalAlbumFolder], artist: RemoteArtist) -> list[AlbumComparisonResult]:
        exclusions = self.settings.library.exclude_patterns
        concurrency = self.settings.run.worker_concurrency
        if concurrency > 1 and len(albums) > 1:
            return asyncio.run(
                self.pipeline.compare_albums_async(
                    albums, artist, exclusions, worker_concurrency=concurrency
                )
            )
        return self.pipeline.compare_albums(albums, artist, exclusions)

    def _score_unit(self, result: AlbumComparisonResult) -> DecisionUnit:
        unit = DecisionUnit(key=str(result.folder.path))
        alignments = self.align(result)
        actions = propose_actions(
            result,
            alignments,
            min_alignment_confidence=self.settings.tracks.min_alignment_confidence,
            similarity=self.similarity,
        )
        unit.mark_scored(result, alignments, actions)
        self._write(result)
        if self.records is not None:
            self.records.write_all(alignments)
        return unit

    def align(self, result: AlbumComparisonResult) -> list[TrackAlignment]:
        if result.best is None or result.tier is ConfidenceTier.NONE:
            return []
        album = self._with_tracks(result.best.remote_album)
        if not album.track_list:
            return []
        alignments = self.matcher.align(result.folder.track_files, album.track_list)
        missing = unresolved(alignments)
        if needs_reorder(alignments):
            logger.info("Track order differs from catalog in %s", result.folder.folder_name)
        if missing:
            logger.info(
                "%d track(s) in %s need manual review",
                len(missing),
                result.folder.folder_name,
            )
        review_dir = self.settings.run.review_dir
        if review_dir and (missing or needs_reorder(alignments)):
            export_alignment(review_dir, result, alignments)
        return alignments

    def _with_tracks(self, album: RemoteAlbum) -> RemoteAlbum:
        if album.track_list:
            return album
        try:
            return self.client.get_album(album.id)
        except CatalogError as exc:
            logger.warning("Could not fetch track list for %s: %s", album.name, exc)
            return album

    def _finish_unit(self, unit: DecisionUnit) -> None:
        self._write(unit)
        if unit.state is not UnitState.DECIDED or unit.decision is None:
            return
        if unit.decision.outcome is Outcome.SKIP:
            self._record_skip(unit.key, unit.decision.reason)
            return
        try:
            applied = self.executor.apply(unit)
        except ProcessingError as exc:
            logger.warning("%s", exc)
            self._record_skip(unit.key, str(exc))
            return
        if applied:
            logger.info("Applied %s to %s", ", ".join(kind.value for kind in applied), unit.key)

    def _record_skip(self, key: str, reason: str) -> None:
        with self._skip_lock:
            self.skip_reasons[key] = reason

    def _write(self, item) -> None:
        if self.records is not None:
            self.records.write(item)

    def report_skips(self) -> None:
        with self._skip_lock:
            entries = list(self.skip_reasons.items())
            self.skip_reasons.clear()
        if not entries:
            return
        print("\n\033[33mFolders skipped:\033[0m")
        for key, reason in sorted(entries):
            print(f" - {key}: {reason}")
