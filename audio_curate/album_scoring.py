from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .config import MatchingSettings, TierThresholds
from .match_utils import StringSimilarity
from .models import ConfidenceTier, LocalAlbumFolder, MatchCandidate, RemoteAlbum

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Selection:
    best: Optional[MatchCandidate]
    ranked: tuple[MatchCandidate, ...]
    ambiguous: bool = False


class AlbumScorer:
    """Scores one remote album against one local album folder.

    The name similarity is the base score. An exact year match adds a fixed
    bonus, so a perfect match with the right year lands near 2.0 and outranks
    same-named reissues. When the remote artist does not resemble the
    inferred artist the total is pushed under the acceptance floor no matter
    how good the title is.
    """

    def __init__(
        self,
        settings: Optional[MatchingSettings] = None,
        similarity: Optional[StringSimilarity] = None,
    ) -> None:
        self.settings = settings or MatchingSettings()
        self.similarity = similarity or StringSimilarity()

    def score(
        self,
        local: LocalAlbumFolder,
        candidate: RemoteAlbum,
        inferred_artist_name: Optional[str],
    ) -> MatchCandidate:
        settings = self.settings
        name_score = 0.0
        if candidate.name and candidate.name.strip():
            name_score = self.similarity.similarity(local.parsed_album_name, candidate.name)
        else:
            logger.debug("Candidate %s has no usable name", candidate.id)

        if inferred_artist_name and inferred_artist_name.strip():
            artist_score = self.similarity.similarity(inferred_artist_name, candidate.artist_name)
        else:
            # Nothing to compare against; no artist constraint.
            artist_score = 1.0

        total = name_score
        year_bonus_applied = False
        if local.parsed_year is not None and local.parsed_year == candidate.release_year:
            total += settings.year_bonus
            year_bonus_applied = True

        if artist_score < settings.artist_mismatch_threshold:
            # A year match never lifts a wrong-artist candidate above its name score.
            penalized = min(name_score, settings.artist_mismatch_cap) * (0.5 + artist_score)
            logger.debug(
                "Artist mismatch for %s: %r vs %r (artist %.2f), score %.2f -> %.2f",
                local.folder_name,
                inferred_artist_name,
                candidate.artist_name,
                artist_score,
                total,
                penalized,
            )
            total = penalized

        return MatchCandidate(
            remote_album=candidate,
            score=total,
            artist_score=artist_score,
            year_bonus_applied=year_bonus_applied,
            name_score=name_score,
        )

    def score_all(
        self,
        local: LocalAlbumFolder,
        candidates: Iterable[RemoteAlbum],
        inferred_artist_name: Optional[str],
    ) -> list[MatchCandidate]:
        scored: list[MatchCandidate] = []
        for candidate in candidates:
            result = self.score(local, candidate, inferred_artist_name)
            if result.score == 0.0:
                logger.debug(
                    "Dropping zero-score candidate %s (%s) for %s",
                    candidate.id,
                    candidate.name,
                    local.folder_name,
                )
                continue
            scored.append(result)
        return scored

    def select_best(self, scored: Sequence[MatchCandidate]) -> Selection:
        """Pick the winner; near-ties go to year match, then artist score, then input order."""
        if not scored:
            return Selection(best=None, ranked=())
        epsilon = self.settings.tie_epsilon
        ordered = sorted(
            enumerate(scored),
            key=lambda item: (-item[1].score, item[0]),
        )
        top_score = ordered[0][1].score
        contenders = [item for item in ordered if top_score - item[1].score <= epsilon]
        contenders.sort(
            key=lambda item: (
                not item[1].year_bonus_applied,
                -item[1].artist_score,
                item[0],
            )
        )
        best = contenders[0][1]
        ambiguous = False
        if len(contenders) > 1:
            runner_up = contenders[1][1]
            ambiguous = (
                runner_up.year_bonus_applied == best.year_bonus_applied
                and abs(runner_up.artist_score - best.artist_score) <= epsilon
                and not self._equivalent(runner_up.remote_album, best.remote_album)
            )
        ranked = [best] + [
            candidate for _, candidate in ordered if candidate is not best
        ]
        limit = max(1, self.settings.top_candidates)
        return Selection(best=best, ranked=tuple(ranked[:limit]), ambiguous=ambiguous)

    def _equivalent(self, first: RemoteAlbum, second: RemoteAlbum) -> bool:
        # Editions of one album (same title, artist and year) are not a real ambiguity.
        if first.id == second.id:
            return True
        return (
            self.similarity.normalize(first.name) == self.similarity.normalize(second.name)
            and self.similarity.normalize(first.artist_name)
            == self.similarity.normalize(second.artist_name)
            and first.release_year == second.release_year
        )


def tier_for_score(score: float, thresholds: Optional[TierThresholds] = None) -> ConfidenceTier:
    thresholds = thresholds or TierThresholds()
    if score >= thresholds.high:
        return ConfidenceTier.HIGH
    if score >= thresholds.medium:
        return ConfidenceTier.MEDIUM
    if score >= thresholds.low:
        return ConfidenceTier.LOW
    return ConfidenceTier.NONE
