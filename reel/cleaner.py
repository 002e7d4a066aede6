"""Title cleaning for parsed filename fragments.

Strips scene-release noise (resolution, source, codec, audio and edition
tags, bracketed and parenthesised spans) from a candidate title so it can
be stored and used as a TMDB query.  Cleaning is idempotent: running it on
its own output changes nothing.
"""

import re

# ---------------------------------------------------------------------------
# Pattern groups
# ---------------------------------------------------------------------------

_RESOLUTION = r'\b(720p|1080p|2160p|4k|uhd)\b'

_SOURCE = r'\b(bluray|bdrip|brrip|webrip|web-dl|hdtv|dvdrip|hdrip)\b'

_CODEC = r'\b(x264|x265|h264|h265|hevc|avc|xvid)\b'

_AUDIO = r'\b(aac|ac3|dts|dts-hd|atmos|truehd|flac|mp3)\b'

_EDITION = r"\b(proper|repack|extended|unrated|director'?s\s+cut)\b"

_CHANNELS = r'\b(multi|dual|5\.1|7\.1)\b'

# Bracketed / parenthesised spans (non-greedy, anything inside)
_BRACKETS = r'\[.*?\]'
_PARENS = r'\(.*?\)'

# Applied in order; each match is replaced by a single space
_ALL_NOISE = [
    re.compile(_RESOLUTION, re.IGNORECASE),
    re.compile(_SOURCE, re.IGNORECASE),
    re.compile(_CODEC, re.IGNORECASE),
    re.compile(_AUDIO, re.IGNORECASE),
    re.compile(_EDITION, re.IGNORECASE),
    re.compile(_CHANNELS, re.IGNORECASE),
    re.compile(_BRACKETS),
    re.compile(_PARENS),
]

_WHITESPACE = re.compile(r'\s+')


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def clean_title(title: str) -> str:
    """Remove release noise from a candidate title.

    Args:
        title: Free text, usually a slice of a normalized filename stem.

    Returns:
        The title with tags and bracketed spans removed and whitespace
        collapsed.  May be empty.
    """
    cleaned = title
    for pattern in _ALL_NOISE:
        cleaned = pattern.sub(' ', cleaned)
    return _WHITESPACE.sub(' ', cleaned).strip()
