from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence

from .album_scoring import AlbumScorer, tier_for_score
from .config import MatchingSettings
from .exclusions import ExclusionMatcher
from .models import (
    AlbumComparisonResult,
    ConfidenceTier,
    LocalAlbumFolder,
    RemoteAlbum,
    RemoteArtist,
)
from .providers.catalog import AlbumQuery, CatalogError, CatalogNotFound, CatalogSearch

logger = logging.getLogger(__name__)


class AlbumMatchPipeline:
    """Compares every local album folder of one artist against the catalog.

    Always yields exactly one result per input folder, in input order.
    """

    def __init__(
        self,
        client: CatalogSearch,
        settings: Optional[MatchingSettings] = None,
        scorer: Optional[AlbumScorer] = None,
    ) -> None:
        self.client = client
        self.settings = settings or MatchingSettings()
        self.scorer = scorer or AlbumScorer(self.settings)

    def compare_albums(
        self,
        local_folders: Sequence[LocalAlbumFolder],
        resolved_artist: Optional[RemoteArtist],
        exclusions: Iterable[str] = (),
    ) -> list[AlbumComparisonResult]:
        patterns = list(exclusions or ())
        return [self.compare_album(folder, resolved_artist, patterns) for folder in local_folders]

    async def compare_albums_async(
        self,
        local_folders: Sequence[LocalAlbumFolder],
        resolved_artist: Optional[RemoteArtist],
        exclusions: Iterable[str] = (),
        *,
        worker_concurrency: int = 4,
    ) -> list[AlbumComparisonResult]:
        patterns = list(exclusions or ())
        semaphore = asyncio.Semaphore(max(1, worker_concurrency))
        loop = asyncio.get_running_loop()

        async def _one(folder: LocalAlbumFolder) -> AlbumComparisonResult:
            async with semaphore:
                return await loop.run_in_executor(
                    None, self.compare_album, folder, resolved_artist, patterns
                )

        return list(await asyncio.gather(*(_one(folder) for folder in local_folders)))

    def compare_album(
        self,
        folder: LocalAlbumFolder,
        resolved_artist: Optional[RemoteArtist],
        exclusions: Sequence[str] = (),
    ) -> AlbumComparisonResult:
        if ExclusionMatcher(exclusions).is_excluded(folder.folder_name):
            logger.info("Skipping excluded folder %s", folder.folder_name)
            return AlbumComparisonResult(folder=folder, best=None, tier=ConfidenceTier.NONE, excluded=True)
        artist_name = resolved_artist.name if resolved_artist else None
        try:
            query_tier, remote_albums = self._collect_candidates(folder, artist_name)
            scored = self.scorer.score_all(folder, remote_albums, artist_name)
            selection = self.scorer.select_best(scored)
        except CatalogError as exc:
            logger.warning("Catalog lookup failed for %s: %s", folder.folder_name, exc)
            return AlbumComparisonResult(
                folder=folder,
                best=None,
                tier=ConfidenceTier.NONE,
                error=f"{type(exc).__name__}: {exc}",
            )
        except Exception as exc:
            logger.exception("Failed to compare %s", folder.folder_name)
            return AlbumComparisonResult(
                folder=folder,
                best=None,
                tier=ConfidenceTier.NONE,
                error=f"{type(exc).__name__}: {exc}",
            )
        if selection.best is None:
            logger.info("No catalog candidate for %s", folder.folder_name)
            return AlbumComparisonResult(
                folder=folder,
                best=None,
                tier=ConfidenceTier.NONE,
                query_tier=query_tier,
            )
        tier = tier_for_score(selection.best.score, self.settings.tiers)
        if selection.ambiguous:
            logger.warning(
                "Ambiguous match for %s: %s",
                folder.folder_name,
                ", ".join(
                    f"{c.remote_album.name} ({c.remote_album.release_year or '?'}, {c.score:.2f})"
                    for c in selection.ranked[:3]
                ),
            )
            tier = tier.cap(ConfidenceTier.LOW)
        logger.debug(
            "Best match for %s: %s (%.2f, %s)",
            folder.folder_name,
            selection.best.remote_album.name,
            selection.best.score,
            tier.value,
        )
        return AlbumComparisonResult(
            folder=folder,
            best=selection.best,
            tier=tier,
            candidates=selection.ranked,
            query_tier=query_tier,
            ambiguous=selection.ambiguous,
        )

    def _collect_candidates(
        self, folder: LocalAlbumFolder, artist_name: Optional[str]
    ) -> tuple[Optional[str], list[RemoteAlbum]]:
        for name, query in build_queries(folder, artist_name):
            try:
                results = list(self.client.search_album(query))
            except CatalogNotFound:
                results = []
            if results:
                logger.debug("Query %s (%s) returned %d albums", name, query.describe(), len(results))
                return name, results
        return None, []


def build_queries(
    folder: LocalAlbumFolder, artist_name: Optional[str]
) -> list[tuple[str, AlbumQuery]]:
    album = folder.parsed_album_name
    queries: list[tuple[str, AlbumQuery]] = []
    if artist_name and folder.parsed_year:
        queries.append(("artist_album_year", AlbumQuery(album=album, artist=artist_name, year=folder.parsed_year)))
    if artist_name:
        queries.append(("artist_album", AlbumQuery(album=album, artist=artist_name)))
    queries.append(("album", AlbumQuery(album=album)))
    return queries
