from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .album_scoring import AlbumScorer
from .config import MatchingSettings
from .match_utils import StringSimilarity
from .models import ArtistResolution, LocalAlbumFolder, RemoteAlbum, RemoteArtist
from .providers.catalog import AlbumQuery, CatalogNotFound, CatalogSearch

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    folder_name: str
    albums: tuple[LocalAlbumFolder, ...]
    client: CatalogSearch
    prior: tuple[ArtistResolution, ...] = ()


@dataclass(frozen=True, slots=True)
class StrategyOutcome:
    resolution: Optional[ArtistResolution]
    saw_results: bool


Strategy = Callable[[ResolutionContext], StrategyOutcome]

NO_RESULTS = StrategyOutcome(resolution=None, saw_results=False)


class ArtistResolver:
    """Finds the catalog artist behind a local artist folder.

    Strategies run in order (direct search, first-album guess, album voting,
    catalog evaluation) and stop at the first one whose confidence reaches
    ``good_enough_confidence``. Otherwise the most confident candidate of any
    strategy wins. Catalog transport errors propagate to the caller.
    """

    def __init__(
        self,
        settings: Optional[MatchingSettings] = None,
        scorer: Optional[AlbumScorer] = None,
        similarity: Optional[StringSimilarity] = None,
    ) -> None:
        self.settings = settings or MatchingSettings()
        self.similarity = similarity or StringSimilarity()
        self.scorer = scorer or AlbumScorer(self.settings, self.similarity)
        self.strategies: list[tuple[str, Strategy]] = [
            ("direct", self._direct_search),
            ("first_album", self._first_album_guess),
            ("voting", self._album_voting),
            ("catalog", self._catalog_evaluation),
        ]

    def resolve(
        self,
        local_artist_folder_name: str,
        search_client: CatalogSearch,
        local_albums: Sequence[LocalAlbumFolder] = (),
    ) -> Optional[ArtistResolution]:
        found: list[ArtistResolution] = []
        saw_results = False
        for name, strategy in self.strategies:
            ctx = ResolutionContext(
                folder_name=local_artist_folder_name,
                albums=tuple(local_albums),
                client=search_client,
                prior=tuple(found),
            )
            outcome = strategy(ctx)
            saw_results = saw_results or outcome.saw_results
            resolution = outcome.resolution
            if resolution is None:
                logger.debug("Artist strategy %s found nothing for %s", name, local_artist_folder_name)
                continue
            logger.debug(
                "Artist strategy %s suggests %s (%.2f) for %s",
                name,
                resolution.artist.name,
                resolution.confidence,
                local_artist_folder_name,
            )
            found.append(resolution)
            if resolution.confidence >= self.settings.good_enough_confidence:
                return resolution
        if not found:
            if saw_results:
                logger.info("No usable artist candidate for %s", local_artist_folder_name)
            return None
        best = found[0]
        for resolution in found[1:]:
            if resolution.confidence > best.confidence:
                best = resolution
        logger.info(
            "Best artist guess for %s is %s via %s (confidence %.2f, below %.2f)",
            local_artist_folder_name,
            best.artist.name,
            best.strategy,
            best.confidence,
            self.settings.good_enough_confidence,
        )
        return best

    def _direct_search(self, ctx: ResolutionContext) -> StrategyOutcome:
        results = _search_artist(ctx.client, ctx.folder_name)
        if not results:
            return NO_RESULTS
        scored = [
            (self.similarity.similarity(ctx.folder_name, artist.name), index, artist)
            for index, artist in enumerate(results)
        ]
        top = max(score for score, _, _ in scored)
        contenders = [item for item in scored if top - item[0] <= self.settings.tie_epsilon]
        contenders.sort(key=lambda item: (-(item[2].popularity or 0), item[1]))
        confidence, _, artist = contenders[0]
        ranked = sorted(scored, key=lambda item: (-item[0], item[1]))
        return StrategyOutcome(
            resolution=ArtistResolution(
                artist=artist,
                confidence=confidence,
                strategy="direct",
                candidates=tuple(item[2] for item in ranked[: self.settings.top_candidates]),
            ),
            saw_results=True,
        )

    def _first_album_guess(self, ctx: ResolutionContext) -> StrategyOutcome:
        if not ctx.albums:
            return NO_RESULTS
        first = ctx.albums[0]
        results = _search_album(ctx.client, AlbumQuery(album=first.parsed_album_name))
        if not results:
            return NO_RESULTS
        best_album: Optional[RemoteAlbum] = None
        best_score = -1.0
        for album in results:
            score = self.similarity.similarity(first.parsed_album_name, album.name)
            if first.parsed_year is not None and album.release_year == first.parsed_year:
                score += self.settings.tie_epsilon
            if score > best_score:
                best_album, best_score = album, score
        if best_album is None or not best_album.artist_name:
            return StrategyOutcome(resolution=None, saw_results=True)
        album_similarity = min(1.0, best_score)
        folder_similarity = self.similarity.similarity(ctx.folder_name, best_album.artist_name)
        artist = _artist_for_album(ctx.client, best_album, self.similarity)
        return StrategyOutcome(
            resolution=ArtistResolution(
                artist=artist,
                confidence=album_similarity * (0.6 + 0.4 * folder_similarity),
                strategy="first_album",
                candidates=(artist,),
            ),
            saw_results=True,
        )

    def _album_voting(self, ctx: ResolutionContext) -> StrategyOutcome:
        sample = ctx.albums[: max(1, self.settings.voting_sample)]
        if not sample:
            return NO_RESULTS
        votes: dict[str, int] = {}
        similarity_sums: dict[str, float] = {}
        exemplars: dict[str, RemoteAlbum] = {}
        saw_results = False
        for local in sample:
            results = _search_album(ctx.client, AlbumQuery(album=local.parsed_album_name))
            if not results:
                continue
            saw_results = True
            best_per_artist: dict[str, float] = {}
            for album in results:
                key = self.similarity.normalize(album.artist_name)
                if not key:
                    continue
                score = self.similarity.similarity(local.parsed_album_name, album.name)
                if score < self.settings.vote_min_similarity:
                    continue
                if score > best_per_artist.get(key, -1.0):
                    best_per_artist[key] = score
                exemplars.setdefault(key, album)
            for key, score in best_per_artist.items():
                votes[key] = votes.get(key, 0) + 1
                similarity_sums[key] = similarity_sums.get(key, 0.0) + score
        if not votes:
            return StrategyOutcome(resolution=None, saw_results=saw_results)
        order = list(votes)
        ranking = sorted(
            order,
            key=lambda key: (-votes[key], -similarity_sums[key], order.index(key)),
        )
        winner = ranking[0]
        logger.debug(
            "Album voting for %s: %s",
            ctx.folder_name,
            ", ".join(f"{exemplars[key].artist_name}={votes[key]}" for key in ranking),
        )
        artist = _artist_for_album(ctx.client, exemplars[winner], self.similarity)
        candidates = tuple(
            [artist]
            + [
                _artist_stub(exemplars[key])
                for key in ranking[1 : self.settings.top_candidates]
            ]
        )
        return StrategyOutcome(
            resolution=ArtistResolution(
                artist=artist,
                confidence=similarity_sums[winner] / len(sample),
                strategy="voting",
                candidates=candidates,
            ),
            saw_results=True,
        )

    def _catalog_evaluation(self, ctx: ResolutionContext) -> StrategyOutcome:
        if not ctx.albums:
            return NO_RESULTS
        candidates: list[RemoteArtist] = []
        seen: set[str] = set()
        for resolution in ctx.prior:
            for artist in (resolution.artist, *resolution.candidates):
                if not artist.id or artist.id in seen:
                    continue
                seen.add(artist.id)
                candidates.append(artist)
        if not candidates:
            return NO_RESULTS
        best: Optional[tuple[float, RemoteArtist]] = None
        saw_results = False
        for artist in candidates:
            catalog = _artist_albums(ctx.client, artist.id)
            if not catalog:
                continue
            saw_results = True
            total = 0.0
            for local in ctx.albums:
                scored = [self.scorer.score(local, remote, artist.name) for remote in catalog]
                total += min(1.0, max((c.score for c in scored), default=0.0))
            aggregate = total / len(ctx.albums)
            logger.debug("Catalog fit for %s: %s=%.2f", ctx.folder_name, artist.name, aggregate)
            if best is None or aggregate > best[0]:
                best = (aggregate, artist)
        if best is None:
            return StrategyOutcome(resolution=None, saw_results=saw_results)
        return StrategyOutcome(
            resolution=ArtistResolution(
                artist=best[1],
                confidence=best[0],
                strategy="catalog",
                candidates=tuple(candidates),
            ),
            saw_results=True,
        )


def _search_artist(client: CatalogSearch, name: str) -> list[RemoteArtist]:
    try:
        return list(client.search_artist(name))
    except CatalogNotFound:
        return []


def _search_album(client: CatalogSearch, query: AlbumQuery) -> list[RemoteAlbum]:
    try:
        return list(client.search_album(query))
    except CatalogNotFound:
        return []


def _artist_albums(client: CatalogSearch, artist_id: str) -> list[RemoteAlbum]:
    try:
        return list(client.get_artist_albums(artist_id))
    except CatalogNotFound:
        return []


def _artist_stub(album: RemoteAlbum) -> RemoteArtist:
    return RemoteArtist(id=album.artist_id or "", name=album.artist_name)


def _artist_for_album(
    client: CatalogSearch, album: RemoteAlbum, similarity: StringSimilarity
) -> RemoteArtist:
    if album.artist_id:
        return _artist_stub(album)
    for artist in _search_artist(client, album.artist_name):
        if similarity.similarity(artist.name, album.artist_name) >= 0.95:
            return artist
    return _artist_stub(album)
