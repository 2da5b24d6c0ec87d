import io
import logging
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from audio_curate.cli import LibraryLogFormatter, build_parser, configure_logging, main
from audio_curate.models import RemoteArtist
from audio_curate.records import read_records

from catalog_fakes import FakeCatalog, remote_album


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        root_logger = logging.getLogger()
        handlers, level = list(root_logger.handlers), root_logger.level

        def _restore() -> None:
            root_logger.handlers[:] = handlers
            root_logger.setLevel(level)

        self.addCleanup(_restore)

    def test_parser_commands(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["run", "--mode", "manual", "/music/Miles Davis"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.mode, "manual")
        self.assertEqual(args.artists, [Path("/music/Miles Davis")])
        args = parser.parse_args(["align", "/music/a/b", "--release-id", "r1"])
        self.assertEqual(args.release_id, "r1")
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            parser.parse_args(["run", "--mode", "sometimes"])

    def test_warning_collector_strips_library_roots(self) -> None:
        collector = configure_logging("INFO", [Path("/music")])
        logging.getLogger("audio_curate.test").warning("Could not read /music/Miles Davis/x.flac")
        self.assertEqual(collector.lines, ["W | audio_curate.test | Could not read Miles Davis/x.flac"])

    def test_formatter_strips_nested_roots_and_colors(self) -> None:
        formatter = LibraryLogFormatter([Path("/music"), Path("/music/jazz")], color=True)
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "/music/jazz/A/B", None, None)
        self.assertEqual(formatter.format(record), "\033[31mE | x | A/B\033[0m")

    def test_scan_writes_records_without_touching_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir) / "library"
            album = root / "Miles Davis" / "Kind of Blue (1959)"
            album.mkdir(parents=True)
            (album / "01.flac").write_bytes(b"")
            config = Path(tmpdir) / "config.yaml"
            config.write_text(f"library:\n  roots: ['{root}']\nrun:\n  worker_concurrency: 1\n", encoding="utf-8")
            records = Path(tmpdir) / "records.jsonl"
            client = FakeCatalog(
                artists=[RemoteArtist(id="a1", name="Miles Davis")],
                albums=[remote_album("r1", "Kind of Blue", "Miles Davis", 1959, artist_id="a1")],
            )
            with patch("audio_curate.cli.MusicBrainzCatalog", lambda settings: client), redirect_stdout(io.StringIO()):
                main(["--config", str(config), "--log-level", "WARNING", "--records", str(records), "scan"])
            self.assertTrue(album.is_dir())
            tiers = [r["tier"] for r in read_records(records) if r.get("record") == "album_comparison"]
        self.assertEqual(tiers, ["high"])


if __name__ == "__main__":
    unittest.main()
