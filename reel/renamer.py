#!/usr/bin/env python3
"""
Reel - Media File Renamer

Renames video files using TMDB metadata and a naming pattern.
"""
import argparse
import logging
import os
import sys
from pathlib import Path

from .formatter import generate_filename
from .matcher import apply_match_results, batch_match_files, build_batch_requests
from .models import MediaFile, RenamePattern
from .scanner import scan_path
from .settings import AppSettings, SettingsError, load_api_key

log = logging.getLogger(__name__)


class RenameError(Exception):
    """Raised when a rename batch stops early.

    ``completed`` holds the (old filename, new filename) pairs that were
    already moved; they are not rolled back.
    """

    def __init__(self, message: str, completed: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.completed = completed or []


def _same_path(a: Path, b: Path) -> bool:
    return os.path.abspath(a) == os.path.abspath(b)


def rename_files(
    files: list[tuple[str | Path, str]],
    output_dir: str | Path | None = None,
) -> list[tuple[str, str]]:
    """
    Move files to their new names.

    Args:
        files: (old path, new filename) pairs
        output_dir: Target directory; defaults to each file's own folder

    Returns:
        (old filename, new filename) for every file actually moved

    Raises:
        RenameError: On the first collision or filesystem error.  Files
                     moved before it stay moved.
    """
    renamed: list[tuple[str, str]] = []

    for old_path, new_filename in files:
        old_path = Path(old_path)
        if output_dir is not None:
            new_path = Path(output_dir) / new_filename
        else:
            new_path = old_path.parent / new_filename

        if _same_path(old_path, new_path):
            continue

        # Check if destination exists
        if new_path.exists():
            log.warning("Rename collision at %s", new_path)
            raise RenameError(f"Destination already exists: {new_path}", renamed)

        try:
            new_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenameError(f"Failed to create directory: {e}", renamed) from e

        try:
            old_path.rename(new_path)
        except OSError as e:
            raise RenameError(f"Failed to rename {old_path}: {e}", renamed) from e

        log.debug("Renamed %s -> %s", old_path, new_path)
        renamed.append((old_path.name, new_filename))

    return renamed


def print_diff(old_name: str, new_name: str) -> None:
    """Print a rename diff."""
    print(f"  {old_name}")
    print(f"  -> {new_name}")


def print_error(old_name: str, error: str) -> None:
    """Print error message."""
    print(f"  [ERROR] {old_name}")
    print(f"          {error}")


def _save_settings(settings: AppSettings) -> None:
    try:
        settings.save()
    except SettingsError as e:
        log.warning("%s", e)


def _plan(files: list[MediaFile], pattern: RenamePattern) -> None:
    """Fill in a new name for every file, from metadata or the filename alone."""
    for f in files:
        if f.new_filename is None:
            f.new_filename = generate_filename(
                f.media_type, f.parsed_info, f.matched_metadata, pattern, f.extension,
            )


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="reel",
        description="Rename video files using TMDB metadata."
    )
    parser.add_argument(
        "path",
        type=Path,
        help="File or directory to process"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )
    parser.add_argument(
        "--use-tmdb",
        action="store_true",
        help="Use TMDB for metadata lookup"
    )
    parser.add_argument(
        "--pattern",
        choices=[p.name for p in RenamePattern.all_patterns()],
        default=None,
        help="Naming pattern (default: last used, else Default)"
    )
    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=None,
        help="Move renamed files into this directory"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be renamed without actually renaming"
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="TMDB API key (default: environment, .env, saved settings)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug information"
    )

    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not parsed_args.path.exists():
        print(f"Error: Path does not exist: {parsed_args.path}")
        return 1

    settings = AppSettings.load()
    pattern = RenamePattern.by_name(parsed_args.pattern or settings.selected_pattern)

    files = scan_path(parsed_args.path, parsed_args.recursive)
    if not files:
        print("No video files found.")
        return 0

    for f in files:
        f.detect()
        f.is_selected = True

    settings.last_input_directory = str(files[0].path.parent)
    settings.selected_pattern = pattern.name
    _save_settings(settings)

    print(f"Found {len(files)} video file(s)")

    if parsed_args.use_tmdb:
        api_key = parsed_args.api_key or load_api_key(settings)
        if not api_key:
            print("Error: TMDB API key not set (use --api-key or TMDB_API_KEY)")
            return 1
        results = batch_match_files(api_key, build_batch_requests(files))
        matched = apply_match_results(files, results, pattern)
        print(f"Matched {matched}/{len(results)} file(s) on TMDB")
        for result in results:
            if not result.success:
                print_error(files[result.index].filename, result.error or "Unknown error")

    _plan(files, pattern)

    pairs = [
        (f.path, f.new_filename)
        for f in files
        if f.is_selected and f.new_filename
        and (parsed_args.output_dir is not None or f.new_filename != f.filename)
    ]
    print()
    for old_path, new_name in pairs:
        print_diff(old_path.name, new_name)

    if parsed_args.dry_run:
        print("-" * 50)
        print(f"Would rename: {len(pairs)} files")
        return 0

    if not pairs:
        print("No files to rename.")
        return 0

    try:
        renamed = rename_files(pairs, parsed_args.output_dir)
    except RenameError as e:
        print("-" * 50)
        print(f"Rename error: {e}")
        print(f"Renamed before the error: {len(e.completed)} files")
        return 1

    if parsed_args.output_dir is not None:
        settings.last_output_directory = str(parsed_args.output_dir)
        _save_settings(settings)

    print("-" * 50)
    print(f"Renamed: {len(renamed)} files")
    return 0


if __name__ == "__main__":
    sys.exit(main())
