"""Parser module for extracting media information from file names."""
import re

from .cleaner import clean_title
from .models import MediaType, ParsedMediaInfo


# Season + episode patterns (order matters - first match wins)
SEASON_EPISODE_PATTERNS = [
    # S01E01 / s1e1
    re.compile(r'[sS](\d{1,2})[eE](\d{1,2})', re.IGNORECASE),
    # 1x01
    re.compile(r'(\d{1,2})[xX](\d{1,2})', re.IGNORECASE),
    # Season 1 Episode 1
    re.compile(r'Season\s*(\d{1,2}).*?Episode\s*(\d{1,2})', re.IGNORECASE),
]

# Episode-only patterns; season is assumed to be 1
EPISODE_ONLY_PATTERNS = [
    # Episode 1, Episode 01
    re.compile(r'Episode\s*(\d{1,3})', re.IGNORECASE),
    # Ep 1, Ep.1, Ep01
    re.compile(r'\bEp\.?\s*(\d{1,3})', re.IGNORECASE),
    # E01 (standalone)
    re.compile(r'\bE(\d{1,3})\b', re.IGNORECASE),
]

# Movie title followed by a (possibly parenthesised) 4-digit year
MOVIE_YEAR_PATTERN = re.compile(r'(.+?)[\s.\-_]+\(?(\d{4})\)?')

MIN_YEAR = 1900
MAX_YEAR = 2030

# Tag patterns: (pattern, canonical label), first match in list order wins
QUALITY_PATTERNS = [
    (r'\b2160p\b', '2160p'),
    (r'\b4k\b', '4K'),
    (r'\buhd\b', 'UHD'),
    (r'\b1080p\b', '1080p'),
    (r'\b720p\b', '720p'),
    (r'\b480p\b', '480p'),
]

SOURCE_PATTERNS = [
    (r'\bbluray\b', 'BluRay'),
    (r'\bbdrip\b', 'BDRip'),
    (r'\bweb-?dl\b', 'WEB-DL'),
    (r'\bwebrip\b', 'WEBRip'),
    (r'\bhdtv\b', 'HDTV'),
    (r'\bdvdrip\b', 'DVDRip'),
]

CODEC_PATTERNS = [
    (r'\bx265\b', 'x265'),
    (r'\bhevc\b', 'HEVC'),
    (r'\bh\.?265\b', 'H.265'),
    (r'\bx264\b', 'x264'),
    (r'\bh\.?264\b', 'H.264'),
    (r'\bavc\b', 'AVC'),
]

AUDIO_PATTERNS = [
    (r'\bdts-?hd\b', 'DTS-HD'),
    (r'\batmos\b', 'Atmos'),
    (r'\btruehd\b', 'TrueHD'),
    (r'\bdts\b', 'DTS'),
    (r'\bac3\b', 'AC3'),
    (r'\baac\b', 'AAC'),
    (r'\bflac\b', 'FLAC'),
]

# Release group: trailing "-GROUP"
RELEASE_GROUP_PATTERN = re.compile(r'-([A-Za-z0-9]+)$')

# Tokens that look like a release group but are not
GROUP_FALSE_POSITIVES = {'720p', '1080p', '2160p', 'x264', 'x265', 'hevc', 'aac', 'dts'}


def split_extension(filename: str) -> tuple[str, str]:
    """
    Strip the extension and normalize separators.

    Only the final dot-delimited segment is treated as the extension.

    Returns:
        (stem, normalized_stem) where every '.', '_' and '-' in the stem
        is replaced by a single space.
    """
    stem = filename.rsplit('.', 1)[0] if '.' in filename else filename
    normalized = stem.replace('.', ' ').replace('_', ' ').replace('-', ' ')
    return stem, normalized


def _first_label(text: str, patterns: list[tuple[str, str]]) -> str | None:
    for pattern, label in patterns:
        if re.search(pattern, text, re.IGNORECASE):
            return label
    return None


def extract_quality_info(text: str, info: ParsedMediaInfo) -> None:
    """
    Fill quality, source, codec, audio and release group on *info*.

    Each category takes the first pattern in its list that matches
    anywhere in *text*.  The release group only matches a literal
    trailing dash, so it never fires on separator-normalized text.
    """
    info.quality = _first_label(text, QUALITY_PATTERNS)
    info.source = _first_label(text, SOURCE_PATTERNS)
    info.codec = _first_label(text, CODEC_PATTERNS)
    info.audio = _first_label(text, AUDIO_PATTERNS)

    match = RELEASE_GROUP_PATTERN.search(text.strip())
    if match:
        group = match.group(1)
        if group.lower() not in GROUP_FALSE_POSITIVES:
            info.group = group


def _fill_titles(text: str, match: re.Match, info: ParsedMediaInfo) -> None:
    info.title = clean_title(text[:match.start()].strip())
    after = text[match.end():].strip()
    if after:
        episode_title = clean_title(after)
        if episode_title:
            info.episode_title = episode_title


def parse_filename(filename: str) -> tuple[MediaType, ParsedMediaInfo]:
    """
    Parse a media filename into a classification and extracted fields.

    Tries season+episode patterns, then episode-only patterns, then a
    movie-with-year pattern, and finally falls back to the whole stem as
    an unclassified title.

    Args:
        filename: File name including its extension

    Returns:
        (media_type, parsed_info)
    """
    _, cleaned = split_extension(filename)
    info = ParsedMediaInfo()

    for pattern in SEASON_EPISODE_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            info.season = int(match.group(1))
            info.episode = int(match.group(2))
            _fill_titles(cleaned, match, info)
            extract_quality_info(cleaned, info)
            return MediaType.TV_SHOW, info

    for pattern in EPISODE_ONLY_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            info.season = 1
            info.episode = int(match.group(1))
            _fill_titles(cleaned, match, info)
            extract_quality_info(cleaned, info)
            return MediaType.TV_SHOW, info

    match = MOVIE_YEAR_PATTERN.search(cleaned)
    if match:
        year = int(match.group(2))
        if MIN_YEAR <= year <= MAX_YEAR:
            info.title = clean_title(match.group(1))
            info.year = year
            extract_quality_info(cleaned, info)
            return MediaType.MOVIE, info

    # Fallback: whole stem is the title
    info.title = clean_title(cleaned)
    extract_quality_info(cleaned, info)
    return MediaType.UNKNOWN, info
