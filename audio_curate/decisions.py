from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence

from .heuristics import canonical_folder_name
from .match_utils import StringSimilarity
from .models import (
    ActionKind,
    AlbumComparisonResult,
    ConfidenceTier,
    ProposedAction,
    TrackAlignment,
)
from .prompt_io import PromptIO

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    SMART = "smart"


class UnitState(str, Enum):
    UNEVALUATED = "unevaluated"
    SCORED = "scored"
    DECIDED = "decided"


class Choice(str, Enum):
    ACCEPT = "accept"
    SKIP = "skip"
    QUIT = "quit"


class Outcome(str, Enum):
    APPLY = "apply"
    SKIP = "skip"


class InvalidTransition(ValueError):
    """A decision unit was moved out of order through its states."""


@dataclass(frozen=True, slots=True)
class Decision:
    outcome: Outcome
    reason: str
    decided_by: str

    def to_record(self) -> dict[str, object]:
        return {"outcome": self.outcome.value, "reason": self.reason, "decided_by": self.decided_by}


@dataclass(slots=True)
class DecisionUnit:
    key: str
    state: UnitState = UnitState.UNEVALUATED
    result: Optional[AlbumComparisonResult] = None
    alignments: tuple[TrackAlignment, ...] = ()
    actions: tuple[ProposedAction, ...] = ()
    decision: Optional[Decision] = None

    @property
    def tier(self) -> ConfidenceTier:
        return self.result.tier if self.result else ConfidenceTier.NONE

    @property
    def error(self) -> Optional[str]:
        return self.result.error if self.result else None

    def mark_scored(
        self,
        result: AlbumComparisonResult,
        alignments: Iterable[TrackAlignment] = (),
        actions: Iterable[ProposedAction] = (),
    ) -> None:
        if self.state is not UnitState.UNEVALUATED:
            raise InvalidTransition(f"{self.key}: cannot score a unit in state {self.state.value}")
        self.result = result
        self.alignments = tuple(alignments)
        self.actions = tuple(actions)
        self.state = UnitState.SCORED

    def mark_decided(self, decision: Decision) -> None:
        if self.state is not UnitState.SCORED:
            raise InvalidTransition(f"{self.key}: cannot decide a unit in state {self.state.value}")
        self.decision = decision
        self.state = UnitState.DECIDED

    def to_record(self) -> dict[str, object]:
        return {
            "record": "decision",
            "key": self.key,
            "state": self.state.value,
            "tier": self.tier.value,
            "error": self.error,
            "actions": [action.to_record() for action in self.actions],
            "decision": self.decision.to_record() if self.decision else None,
        }


class DecisionSource(Protocol):
    def choose(self, unit: DecisionUnit, options: Sequence[Choice]) -> Choice: ...


_CHOICE_INPUTS = {
    "a": Choice.ACCEPT,
    "accept": Choice.ACCEPT,
    "y": Choice.ACCEPT,
    "s": Choice.SKIP,
    "skip": Choice.SKIP,
    "n": Choice.SKIP,
    "q": Choice.QUIT,
    "quit": Choice.QUIT,
}


class PromptDecisionSource:
    """Asks a human through a PromptIO; re-prompts until the answer is usable."""

    def __init__(self, prompt_io: PromptIO) -> None:
        self.prompt_io = prompt_io

    def choose(self, unit: DecisionUnit, options: Sequence[Choice]) -> Choice:
        for line in describe_unit(unit):
            self.prompt_io.print(line)
        labels = " / ".join(f"[{opt.value[0]}]{opt.value[1:]}" for opt in options)
        while True:
            answer = self.prompt_io.input(f"{labels}: ").strip().lower()
            choice = _CHOICE_INPUTS.get(answer)
            if choice is None:
                self.prompt_io.print(f"Invalid selection {answer!r}.")
                continue
            if choice not in options:
                self.prompt_io.print(f"{choice.value.capitalize()} is not available here.")
                continue
            return choice


class DecisionEngine:
    """Moves scored units to a terminal decision according to the execution mode.

    automatic: high/medium apply, low/none skip.
    manual: every unit goes to the decision source.
    smart: high applies, medium/low go to the decision source, none skips.

    A quit from the decision source cancels the engine; units not yet decided
    stay in the scored state.
    """

    def __init__(self, mode: ExecutionMode | str, source: Optional[DecisionSource] = None) -> None:
        self.mode = ExecutionMode(mode)
        if self.mode is not ExecutionMode.AUTOMATIC and source is None:
            raise ValueError(f"{self.mode.value} mode needs a decision source")
        self.source = source
        self.cancelled = False

    def process(self, units: Iterable[DecisionUnit]) -> list[DecisionUnit]:
        processed: list[DecisionUnit] = []
        for unit in units:
            processed.append(unit)
            if self.cancelled:
                continue
            if unit.state is UnitState.DECIDED:
                continue
            self.decide(unit)
        return processed

    def decide(self, unit: DecisionUnit) -> Optional[Decision]:
        if self.cancelled:
            return None
        if unit.state is not UnitState.SCORED:
            raise InvalidTransition(f"{unit.key}: cannot decide a unit in state {unit.state.value}")
        decision = self._policy(unit)
        if decision is None:
            decision = self._ask(unit)
            if decision is None:
                return None
        unit.mark_decided(decision)
        if decision.outcome is Outcome.SKIP:
            logger.info("Skipping %s: %s", unit.key, decision.reason)
        else:
            logger.debug("Applying %s: %s", unit.key, decision.reason)
        return decision

    def _policy(self, unit: DecisionUnit) -> Optional[Decision]:
        tier = unit.tier
        if unit.error:
            if self.mode is ExecutionMode.MANUAL:
                return None
            return Decision(Outcome.SKIP, f"error: {unit.error}", "policy")
        if self.mode is ExecutionMode.MANUAL:
            return None
        if self.mode is ExecutionMode.AUTOMATIC:
            if tier in (ConfidenceTier.HIGH, ConfidenceTier.MEDIUM):
                return Decision(Outcome.APPLY, f"{tier.value} confidence", "policy")
            return Decision(Outcome.SKIP, f"{tier.value} confidence", "policy")
        if tier is ConfidenceTier.HIGH:
            return Decision(Outcome.APPLY, "high confidence", "policy")
        if tier is ConfidenceTier.NONE:
            return Decision(Outcome.SKIP, "no confident match", "policy")
        return None

    def _ask(self, unit: DecisionUnit) -> Optional[Decision]:
        assert self.source is not None
        options: tuple[Choice, ...]
        if unit.error or (unit.result is not None and unit.result.best is None):
            options = (Choice.SKIP, Choice.QUIT)
        else:
            options = (Choice.ACCEPT, Choice.SKIP, Choice.QUIT)
        choice = self.source.choose(unit, options)
        if choice is Choice.QUIT:
            logger.warning("Stopped by user at %s", unit.key)
            self.cancelled = True
            return None
        if choice is Choice.ACCEPT:
            return Decision(Outcome.APPLY, "accepted by user", "user")
        return Decision(Outcome.SKIP, "skipped by user", "user")


def describe_unit(unit: DecisionUnit) -> list[str]:
    lines = [f"\n{unit.key}"]
    result = unit.result
    if result is not None and result.best is not None:
        album = result.best.remote_album
        lines.append(
            f"  match: {album.artist_name} - {album.name} ({album.release_year or '?'})"
            f"  score={result.best.score:.2f} artist={result.best.artist_score:.2f}"
            f" tier={result.tier.value}{' (ambiguous)' if result.ambiguous else ''}"
        )
    else:
        lines.append("  match: none")
    if unit.error:
        lines.append(f"  error: {unit.error}")
    for action in unit.actions:
        if action.kind is ActionKind.NO_ACTION:
            continue
        lines.append(f"  - {action.kind.value}: {_summarize_details(action)}")
    return lines


def _summarize_details(action: ProposedAction) -> str:
    details = action.details
    if action.kind is ActionKind.RENAME_FOLDER:
        return f"{details.get('from')} -> {details.get('to')}"
    tracks = details.get("tracks") or []
    return f"{len(tracks)} track(s)"


def propose_actions(
    result: AlbumComparisonResult,
    alignments: Sequence[TrackAlignment] = (),
    *,
    min_alignment_confidence: float = 0.5,
    similarity: Optional[StringSimilarity] = None,
) -> list[ProposedAction]:
    """Turn a comparison (and optional track alignment) into corrective actions."""
    tier = result.tier
    if result.best is None or result.excluded or result.error:
        reason = "excluded" if result.excluded else result.error or "no match"
        return [ProposedAction(ActionKind.NO_ACTION, tier, {"reason": reason})]
    similarity = similarity or StringSimilarity()
    album = result.best.remote_album
    actions: list[ProposedAction] = []

    folder = result.folder
    target_name = canonical_folder_name(album.name, album.release_year)
    if folder.path.name != target_name:
        actions.append(
            ProposedAction(
                ActionKind.RENAME_FOLDER,
                tier,
                {"from": str(folder.path), "to": str(folder.path.with_name(target_name))},
            )
        )

    trusted = [
        a
        for a in alignments
        if a.remote_track is not None and a.confidence >= min_alignment_confidence
    ]
    reorder = [
        {
            "path": str(a.local_track.path),
            "from": a.local_track.tag_track_number,
            "to": a.remote_track.track_number,
        }
        for a in trusted
        if a.local_track.tag_track_number != a.remote_track.track_number
    ]
    if reorder:
        actions.append(ProposedAction(ActionKind.REORDER_TRACKS, tier, {"tracks": reorder}))
    retag = [
        {
            "path": str(a.local_track.path),
            "from": a.local_track.tag_title,
            "to": a.remote_track.title,
        }
        for a in trusted
        if similarity.normalize(a.local_track.tag_title) != similarity.normalize(a.remote_track.title)
    ]
    if retag:
        actions.append(
            ProposedAction(
                ActionKind.RETAG_TRACKS,
                tier,
                {"tracks": retag, "album": album.name, "artist": album.artist_name},
            )
        )
    if not actions:
        actions.append(ProposedAction(ActionKind.NO_ACTION, tier, {"reason": "already correct"}))
    return actions
