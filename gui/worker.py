"""Background workers for Reel GUI operations.

Each worker is a QObject meant to be moved to a QThread; the thread's
``started`` signal is connected to ``run``.  Results are emitted once, after
the whole operation, so the UI can apply them in one step.
"""
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from reel.matcher import batch_match_files, build_batch_requests
from reel.models import MediaFile
from reel.renamer import RenameError, rename_files
from reel.scanner import scan_directory, scan_files
from reel.tmdb import TMDBClient, verify_api_key


class ScanWorker(QObject):
    """Worker for scanning folders/files and parsing filenames."""

    # Signals
    started = Signal()
    log = Signal(str)
    files_found = Signal(object)  # list[MediaFile]
    error = Signal(str)

    def __init__(self, folder: str | Path | None = None, files: list | None = None):
        """
        Args:
            folder: Directory to scan recursively
            files: Explicit file paths (used when no folder is given)
        """
        super().__init__()
        self.folder = Path(folder) if folder else None
        self.files = files or []

    def run(self):
        """Execute the scan."""
        try:
            self.started.emit()
            if self.folder is not None:
                self.log.emit(f"Scanning: {self.folder}")
                found = scan_directory(self.folder)
            else:
                found = scan_files(self.files)

            for media_file in found:
                media_file.detect()
                media_file.is_selected = True

            self.log.emit(f"Found {len(found)} video file(s)")
            self.files_found.emit(found)

        except Exception as e:
            self.error.emit(str(e))


class VerifyKeyWorker(QObject):
    """Worker that checks an API key against TMDB."""

    started = Signal()
    verified = Signal(bool)

    def __init__(self, api_key: str):
        super().__init__()
        self.api_key = api_key

    def run(self):
        self.started.emit()
        self.verified.emit(verify_api_key(self.api_key))


class MatchWorker(QObject):
    """Worker for batch TMDB matching of unmatched files."""

    started = Signal()
    log = Signal(str)
    match_completed = Signal(object)  # list[MatchResult]
    error = Signal(str)

    def __init__(self, api_key: str, files: list[MediaFile], client_factory=TMDBClient):
        super().__init__()
        self.api_key = api_key
        self.files = files
        self.client_factory = client_factory

    def run(self):
        """Match every file that has no metadata yet."""
        try:
            self.started.emit()
            pending = build_batch_requests(self.files)
            self.log.emit(f"Matching {len(pending)} file(s)...")

            results = batch_match_files(self.api_key, pending, self.client_factory)

            ok = sum(1 for r in results if r.success)
            self.log.emit(f"Matched {ok}/{len(results)} file(s)")
            self.match_completed.emit(results)

        except Exception as e:
            self.error.emit(str(e))


class RenameWorker(QObject):
    """Worker for executing file renames."""

    started = Signal()
    log = Signal(str)
    rename_completed = Signal(object)  # list[(old name, new name)]
    error = Signal(str)

    def __init__(
        self,
        items: list[tuple[Path, str]],
        output_dir: str | Path | None = None,
    ):
        """
        Args:
            items: (old path, new filename) pairs
            output_dir: Optional target directory
        """
        super().__init__()
        self.items = items
        self.output_dir = output_dir

    def run(self):
        """Execute the rename operation."""
        try:
            self.started.emit()
            renamed = rename_files(self.items, self.output_dir)
            for old_name, new_name in renamed:
                self.log.emit(f"Renamed: {old_name} -> {new_name}")
            self.rename_completed.emit(renamed)

        except RenameError as e:
            for old_name, new_name in e.completed:
                self.log.emit(f"Renamed: {old_name} -> {new_name}")
            self.log.emit(f"[ERROR] {e}")
            self.error.emit(str(e))
        except Exception as e:
            self.error.emit(str(e))
