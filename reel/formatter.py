"""Formatter module for generating final file names."""
import re

from .models import MediaFile, MediaMetadata, MediaType, ParsedMediaInfo, RenamePattern


# Characters not allowed in Windows filenames: / \ : * ? " < > |
INVALID_CHARS = re.compile(r'[/\\:*?"<>|]')

# Applied in order after substitution; later rules rely on earlier ones
CLEANUP_REPLACEMENTS = [
    (" - .", "."),
    (" -.", "."),
    ("  - ", " "),
    (" -  ", " "),
]


def _collapse_spaces(text: str) -> str:
    while "  " in text:
        text = text.replace("  ", " ")
    return text


def sanitize_filename(name: str) -> str:
    """
    Remove characters that are invalid in file names.

    Args:
        name: The name to sanitize

    Returns:
        Sanitized name with repeated spaces collapsed and ends trimmed
    """
    return _collapse_spaces(INVALID_CHARS.sub('', name)).strip()


def _local_metadata(parsed: ParsedMediaInfo | None) -> MediaMetadata:
    """Stand-in metadata built from the filename alone."""
    parsed = parsed or ParsedMediaInfo()
    return MediaMetadata(tmdb_id=0, title=parsed.title)


def _substitute_number(result: str, name: str, value: int | None) -> str:
    if value is not None:
        result = result.replace(f"{{{name}:02}}", f"{value:02d}")
        return result.replace(f"{{{name}}}", str(value))
    result = result.replace(f"{{{name}:02}}", "")
    return result.replace(f"{{{name}}}", "")


def generate_filename(
    media_type: MediaType,
    parsed: ParsedMediaInfo | None,
    metadata: MediaMetadata | None,
    pattern: RenamePattern,
    extension: str,
) -> str:
    """
    Render a new filename from a rename pattern.

    Metadata fields win; parsed fields fill the gaps.  Placeholders with
    no value on either side are removed and the separators they leave
    behind are cleaned up.  Without metadata, the parsed title stands in
    for the metadata title.

    Args:
        media_type: Picks the TV or movie template (Unknown uses movie)
        parsed: Fields parsed from the original filename
        metadata: TMDB metadata, if matched
        pattern: Rename pattern to use
        extension: Original extension, without the dot

    Returns:
        The new filename including extension
    """
    if metadata is None:
        metadata = _local_metadata(parsed)
    parsed = parsed or ParsedMediaInfo()

    if media_type == MediaType.TV_SHOW:
        result = pattern.tv_pattern
    else:
        result = pattern.movie_pattern

    result = result.replace("{title}", sanitize_filename(metadata.title))

    year = metadata.year if metadata.year is not None else parsed.year
    if year is not None:
        result = result.replace("{year}", str(year))
    else:
        result = result.replace("{year}", "")
        # Empty parentheses left behind
        result = result.replace(" ()", "").replace("()", "")

    show = metadata.show_name if metadata.show_name is not None else metadata.title
    result = result.replace("{show}", sanitize_filename(show))

    season = metadata.season_number if metadata.season_number is not None else parsed.season
    result = _substitute_number(result, "season", season)

    episode = metadata.episode_number if metadata.episode_number is not None else parsed.episode
    result = _substitute_number(result, "episode", episode)

    episode_title = metadata.episode_title
    if episode_title is None:
        episode_title = parsed.episode_title
    if episode_title is not None:
        result = result.replace("{episode_title}", sanitize_filename(episode_title))
    else:
        result = result.replace("{episode_title}", "")

    result = result.strip()
    for old, new in CLEANUP_REPLACEMENTS:
        result = result.replace(old, new)
    result = _collapse_spaces(result)
    if result.endswith(" -"):
        result = result[:-2]

    return f"{result.strip()}.{extension}"


def generate_preview(files: list[MediaFile], pattern: RenamePattern) -> list[tuple[str, str]]:
    """(old filename, new filename) for every file with matched metadata."""
    return [
        (f.filename, generate_filename(
            f.media_type, f.parsed_info, f.matched_metadata, pattern, f.extension,
        ))
        for f in files
        if f.matched_metadata is not None
    ]
