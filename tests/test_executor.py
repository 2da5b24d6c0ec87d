import tempfile
import unittest
from pathlib import Path

from audio_curate.decisions import Decision, DecisionUnit, Outcome
from audio_curate.executor import ActionExecutor
from audio_curate.models import (
    ActionKind,
    AlbumComparisonResult,
    ConfidenceTier,
    ProcessingError,
    ProposedAction,
)
from audio_curate.tagging import TagCodec

from catalog_fakes import local_folder


class _RecordingCodec(TagCodec):
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.writes: list[tuple[Path, dict]] = []

    def write_tags(self, path, fields):
        self.writes.append((path, dict(fields)))
        return self.ok


def _unit(actions, outcome=Outcome.APPLY) -> DecisionUnit:
    unit = DecisionUnit(key="/music/x")
    result = AlbumComparisonResult(folder=local_folder("x", "x"), best=None, tier=ConfidenceTier.HIGH)
    unit.mark_scored(result, (), actions)
    unit.mark_decided(Decision(outcome, "test", "policy"))
    return unit


class TestActionExecutor(unittest.TestCase):
    def test_applies_track_actions_before_rename(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            src = Path(tmpdir) / "Kind of Blue (1959)"
            src.mkdir()
            track = src / "01.flac"
            track.write_bytes(b"")
            dst = Path(tmpdir) / "1959 - Kind of Blue"
            actions = [
                ProposedAction(ActionKind.RENAME_FOLDER, ConfidenceTier.HIGH, {"from": str(src), "to": str(dst)}),
                ProposedAction(
                    ActionKind.RETAG_TRACKS,
                    ConfidenceTier.HIGH,
                    {
                        "tracks": [{"path": str(track), "from": None, "to": "So What"}],
                        "album": "Kind of Blue",
                        "artist": "Miles Davis",
                    },
                ),
                ProposedAction(
                    ActionKind.REORDER_TRACKS,
                    ConfidenceTier.HIGH,
                    {"tracks": [{"path": str(track), "from": 3, "to": 1}]},
                ),
            ]
            codec = _RecordingCodec()
            applied = ActionExecutor(codec).apply(_unit(actions))
            self.assertEqual(
                applied,
                [ActionKind.RETAG_TRACKS, ActionKind.REORDER_TRACKS, ActionKind.RENAME_FOLDER],
            )
            self.assertTrue(dst.is_dir())
            self.assertFalse(src.exists())
        self.assertEqual(
            codec.writes,
            [
                (track, {"album": "Kind of Blue", "album_artist": "Miles Davis", "title": "So What"}),
                (track, {"track_number": 1}),
            ],
        )

    def test_dry_run_touches_nothing(self) -> None:
        codec = _RecordingCodec()
        actions = [
            ProposedAction(ActionKind.RENAME_FOLDER, ConfidenceTier.HIGH, {"from": "/nope/a", "to": "/nope/b"}),
            ProposedAction(ActionKind.NO_ACTION, ConfidenceTier.HIGH, {"reason": "already correct"}),
        ]
        with self.assertLogs("audio_curate.executor", level="INFO"):
            applied = ActionExecutor(codec, dry_run=True).apply(_unit(actions))
        self.assertEqual(applied, [ActionKind.RENAME_FOLDER])
        self.assertEqual(codec.writes, [])

    def test_skipped_unit_is_not_applied(self) -> None:
        actions = [ProposedAction(ActionKind.RENAME_FOLDER, ConfidenceTier.LOW, {"from": "/a", "to": "/b"})]
        self.assertEqual(ActionExecutor(_RecordingCodec()).apply(_unit(actions, Outcome.SKIP)), [])

    def test_rename_onto_existing_folder_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            src = Path(tmpdir) / "a"
            dst = Path(tmpdir) / "b"
            src.mkdir()
            dst.mkdir()
            actions = [
                ProposedAction(ActionKind.RENAME_FOLDER, ConfidenceTier.HIGH, {"from": str(src), "to": str(dst)})
            ]
            with self.assertRaises(ProcessingError):
                ActionExecutor(_RecordingCodec()).apply(_unit(actions))

    def test_failed_tag_writes_are_not_reported_as_applied(self) -> None:
        actions = [
            ProposedAction(
                ActionKind.REORDER_TRACKS,
                ConfidenceTier.HIGH,
                {"tracks": [{"path": "/music/x/01.flac", "from": 2, "to": 1}]},
            )
        ]
        with self.assertLogs("audio_curate.executor", level="WARNING"):
            applied = ActionExecutor(_RecordingCodec(ok=False)).apply(_unit(actions))
        self.assertEqual(applied, [])


if __name__ == "__main__":
    unittest.main()
