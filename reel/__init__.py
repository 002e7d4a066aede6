"""
Reel - Media File Renamer

Parses video filenames, matches them against TMDB and renames them
using a naming pattern.
"""
from .models import (
    MediaType,
    ParsedMediaInfo,
    MediaMetadata,
    SearchResult,
    BatchFileInfo,
    MatchResult,
    RenamePattern,
    MediaFile,
)
from .cleaner import clean_title
from .parser import parse_filename, split_extension
from .scanner import scan_directory, scan_files, is_video_file
from .tmdb import TMDBClient, TMDBError, verify_api_key, search_media
from .formatter import generate_filename, generate_preview, sanitize_filename
from .matcher import (
    batch_match_files,
    apply_search_result,
    build_batch_requests,
    apply_match_results,
)
from .renamer import rename_files, RenameError

__version__ = "0.1.0"
__all__ = [
    "MediaType",
    "ParsedMediaInfo",
    "MediaMetadata",
    "SearchResult",
    "BatchFileInfo",
    "MatchResult",
    "RenamePattern",
    "MediaFile",
    "clean_title",
    "parse_filename",
    "split_extension",
    "scan_directory",
    "scan_files",
    "is_video_file",
    "TMDBClient",
    "TMDBError",
    "verify_api_key",
    "search_media",
    "generate_filename",
    "generate_preview",
    "sanitize_filename",
    "batch_match_files",
    "apply_search_result",
    "build_batch_requests",
    "apply_match_results",
    "rename_files",
    "RenameError",
]
