from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional

from .config import EXECUTION_MODES, Settings, find_config
from .curator import LibraryCurator
from .decisions import PromptDecisionSource
from .executor import ActionExecutor
from .models import ProcessingError
from .prompt_io import ConsolePromptIO
from .providers.catalog import CatalogError
from .providers.musicbrainz import MusicBrainzCatalog
from .scanner import LibraryScanner
from .track_alignment import TrackDurationMatcher

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class LibraryLogFormatter(logging.Formatter):
    """Strips library roots from messages so album paths stay readable."""

    def __init__(self, roots: Iterable[Path], *, color: bool = False) -> None:
        super().__init__(LOG_FORMAT)
        # Longest first so nested roots are stripped whole.
        self.prefixes = sorted({str(root) for root in roots if str(root)}, key=len, reverse=True)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        for prefix in self.prefixes:
            text = text.replace(prefix + os.sep, "").replace(prefix, "")
        if self.color and record.levelno in LEVEL_COLORS:
            return f"{LEVEL_COLORS[record.levelno]}{text}{C_RESET}"
        return text


class WarningCollector(logging.Handler):
    """Keeps warnings and errors for the end-of-run summary."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.lines.append(self.format(record))
        except Exception:  # pragma: no cover
            self.handleError(record)


def configure_logging(level_name: str, roots: Iterable[Path]) -> WarningCollector:
    roots = list(roots)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    console = logging.StreamHandler()
    console.setFormatter(LibraryLogFormatter(roots, color=sys.stderr.isatty()))
    root_logger.addHandler(console)

    collector = WarningCollector()
    collector.setFormatter(LibraryLogFormatter(roots))
    root_logger.addHandler(collector)

    for noisy in ("musicbrainzngs", "urllib3.connectionpool"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return collector


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Match artist/album folders against MusicBrainz and fix them")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--records",
        type=Path,
        help="Write comparison/alignment/decision records to this file (JSON Lines)",
    )
    parser.add_argument("--review-dir", type=Path, help="Write track mapping files for manual review here")

    subparsers = parser.add_subparsers(dest="command", required=True)
    scan_parser = subparsers.add_parser("scan", help="Propose corrections without touching files")
    scan_parser.add_argument("artists", nargs="*", type=Path, help="Artist folders (default: library roots)")
    run_parser = subparsers.add_parser("run", help="Decide and apply corrections")
    run_parser.add_argument("artists", nargs="*", type=Path, help="Artist folders (default: library roots)")
    run_parser.add_argument("--mode", choices=EXECUTION_MODES, default=None, help="Override run.mode")
    align_parser = subparsers.add_parser("align", help="Show how an album folder lines up with a release")
    align_parser.add_argument("album", type=Path, help="Album folder")
    align_parser.add_argument("--release-id", required=True, help="MusicBrainz release id")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config_path = find_config(args.config)
    settings = Settings.load(config_path) if config_path else Settings()
    if args.records:
        settings.run.records_path = args.records.expanduser().resolve()
    if args.review_dir:
        settings.run.review_dir = args.review_dir.expanduser().resolve()

    warnings = configure_logging(args.log_level, [root.resolve() for root in settings.library.roots])
    client = MusicBrainzCatalog(settings.providers)
    curator: LibraryCurator | None = None
    try:
        match args.command:
            case "scan":
                curator = LibraryCurator(settings, client, mode="automatic", executor=ActionExecutor(dry_run=True))
                curator.run(_artist_dirs(args.artists, curator.scanner))
            case "run":
                mode = args.mode or settings.run.mode
                source = PromptDecisionSource(ConsolePromptIO()) if mode != "automatic" else None
                curator = LibraryCurator(
                    settings,
                    client,
                    mode=mode,
                    decision_source=source,
                    executor=ActionExecutor(dry_run=False),
                )
                curator.run(_artist_dirs(args.artists, curator.scanner))
            case "align":
                _print_alignment(settings, client, args.album, args.release_id)
            case _:
                parser.error("Unknown command")
    except (CatalogError, ProcessingError) as exc:
        raise SystemExit(f"error: {exc}") from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
    finally:
        if curator:
            curator.report_skips()
        if warnings.lines:
            print("\n\033[33mWarnings/errors during this run:\033[0m")
            for line in warnings.lines:
                print(f" - {line}")


def _artist_dirs(explicit: list[Path], scanner: LibraryScanner) -> list[Path]:
    if explicit:
        return [path.expanduser().resolve() for path in explicit]
    return list(scanner.iter_artist_directories())


def _print_alignment(settings: Settings, client: MusicBrainzCatalog, album_dir: Path, release_id: str) -> None:
    folder = LibraryScanner(settings.library).build_album(album_dir.expanduser().resolve())
    if folder is None:
        raise ProcessingError(f"No audio files in {album_dir}")
    album = client.get_album(release_id)
    print(f"{album.artist_name} - {album.name} ({album.release_year or '?'})")
    for alignment in TrackDurationMatcher(settings.tracks).align(folder.track_files, album.track_list):
        remote = alignment.remote_track
        target = f"{remote.track_number:02d} {remote.title}" if remote else "-- unresolved --"
        delta = "" if alignment.duration_delta_seconds is None else f"{alignment.duration_delta_seconds:+d}s"
        print(f"  {alignment.local_track.file_name:<40} -> {target:<40} {delta:>6} {alignment.confidence:.2f}")


if __name__ == "__main__":  # pragma: no cover
    main()
