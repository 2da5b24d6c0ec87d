from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .decisions import DecisionUnit, Outcome
from .fs_utils import safe_rename
from .models import ActionKind, ProcessingError, ProposedAction
from .tagging import TagCodec

logger = logging.getLogger(__name__)

# Track actions reference file paths inside the folder, so they run before the rename.
APPLY_ORDER = (ActionKind.RETAG_TRACKS, ActionKind.REORDER_TRACKS, ActionKind.RENAME_FOLDER)


class ActionExecutor:
    def __init__(self, codec: Optional[TagCodec] = None, *, dry_run: bool = False) -> None:
        self.codec = codec or TagCodec()
        self.dry_run = dry_run

    def apply(self, unit: DecisionUnit) -> list[ActionKind]:
        if unit.decision is None or unit.decision.outcome is not Outcome.APPLY:
            return []
        applied: list[ActionKind] = []
        for kind in APPLY_ORDER:
            for action in unit.actions:
                if action.kind is not kind:
                    continue
                if self.dry_run:
                    logger.info("[dry-run] %s %s", kind.value, unit.key)
                elif not self._apply_action(action):
                    continue
                applied.append(kind)
        return applied

    def _apply_action(self, action: ProposedAction) -> bool:
        details = action.details
        if action.kind is ActionKind.RENAME_FOLDER:
            src = Path(details["from"])
            dst = Path(details["to"])
            try:
                safe_rename(src, dst)
            except OSError as exc:
                raise ProcessingError(f"Could not rename {src} to {dst}: {exc}") from exc
            logger.info("Renamed %s -> %s", src.name, dst.name)
            return True
        if action.kind is ActionKind.REORDER_TRACKS:
            return self._write_tracks(details, "track_number")
        if action.kind is ActionKind.RETAG_TRACKS:
            extra = {"album": details.get("album"), "album_artist": details.get("artist")}
            return self._write_tracks(details, "title", extra)
        return False

    def _write_tracks(self, details: dict, field: str, extra: Optional[dict] = None) -> bool:
        written = 0
        tracks = details.get("tracks") or []
        for entry in tracks:
            fields = dict(extra or {})
            fields[field] = entry.get("to")
            if self.codec.write_tags(Path(entry["path"]), fields):
                written += 1
        if written < len(tracks):
            logger.warning("Updated %d of %d tracks (%s)", written, len(tracks), field)
        return written > 0
