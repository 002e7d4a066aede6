"""File discovery for video files."""
import logging
import os
from pathlib import Path

from .models import MediaFile

log = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {
    'mkv', 'mp4', 'avi', 'mov', 'wmv', 'flv', 'webm',
    'm4v', 'mpg', 'mpeg', 'ts', 'm2ts',
}


def is_video_file(filepath: str | Path) -> bool:
    """Check if file is a video file based on extension."""
    return Path(filepath).suffix.lstrip('.').lower() in VIDEO_EXTENSIONS


def _sorted_unique(paths: list[Path]) -> list[MediaFile]:
    seen = set()
    files = []
    for path in paths:
        key = os.path.normcase(os.path.abspath(path))
        if key in seen:
            continue
        seen.add(key)
        files.append(MediaFile.from_path(path))
    files.sort(key=lambda f: f.filename.lower())
    return files


def scan_directory(path: str | Path, recursive: bool = True) -> list[MediaFile]:
    """
    Find all video files under a directory.

    Symlinked directories are followed when recursing.

    Args:
        path: Directory to scan
        recursive: Whether to descend into subdirectories

    Returns:
        MediaFile list sorted case-insensitively by filename
    """
    root = Path(path)
    if not root.is_dir():
        return []

    found = []
    if recursive:
        for dirpath, _dirnames, filenames in os.walk(root, followlinks=True):
            for name in filenames:
                item = Path(dirpath) / name
                if item.is_file() and is_video_file(item):
                    found.append(item)
    else:
        for item in root.iterdir():
            if item.is_file() and is_video_file(item):
                found.append(item)

    log.debug("Found %d video file(s) in %s", len(found), root)
    return _sorted_unique(found)


def scan_files(paths: list[str | Path]) -> list[MediaFile]:
    """Filter an explicit file list (e.g. from a file picker) to video files."""
    found = [Path(p) for p in paths if Path(p).is_file() and is_video_file(p)]
    return _sorted_unique(found)


def scan_path(path: str | Path, recursive: bool = True) -> list[MediaFile]:
    """Scan a directory, or wrap a single file."""
    path = Path(path)
    if path.is_file():
        return scan_files([path])
    return scan_directory(path, recursive)
