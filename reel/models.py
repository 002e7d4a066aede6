"""Data models for the reel package."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class MediaType(Enum):
    """Inferred category of a media file."""
    UNKNOWN = "unknown"
    MOVIE = "movie"
    TV_SHOW = "tv"

    @property
    def display_name(self) -> str:
        return {
            MediaType.UNKNOWN: "Unknown",
            MediaType.MOVIE: "Movie",
            MediaType.TV_SHOW: "TV Show",
        }[self]

    @property
    def short_name(self) -> str:
        return {
            MediaType.UNKNOWN: "?",
            MediaType.MOVIE: "M",
            MediaType.TV_SHOW: "TV",
        }[self]


@dataclass
class ParsedMediaInfo:
    """Information extracted from a filename."""
    title: str = ""
    year: int | None = None
    season: int | None = None
    episode: int | None = None
    episode_title: str | None = None
    quality: str | None = None   # e.g. "1080p", "4K"
    source: str | None = None    # e.g. "BluRay", "WEB-DL"
    codec: str | None = None     # e.g. "x264", "HEVC"
    audio: str | None = None     # e.g. "DTS", "AAC"
    group: str | None = None     # release group


@dataclass
class MediaMetadata:
    """Canonical metadata from TMDB."""
    tmdb_id: int
    title: str
    original_title: str | None = None
    year: int | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float | None = None
    genres: list[str] = field(default_factory=list)

    # TV only
    season_number: int | None = None
    episode_number: int | None = None
    episode_title: str | None = None
    air_date: str | None = None
    show_name: str | None = None


@dataclass
class SearchResult:
    """A single ranked TMDB search hit."""
    tmdb_id: int
    title: str
    year: int | None
    media_type: MediaType
    overview: str | None = None
    poster_path: str | None = None
    vote_average: float | None = None


@dataclass
class EpisodeDetails:
    """Episode-level fields, before merging with the show."""
    name: str
    overview: str | None = None
    still_path: str | None = None
    air_date: str | None = None
    vote_average: float | None = None


@dataclass
class BatchFileInfo:
    """One lookup request for the batch matcher.

    ``index`` is an opaque key the caller uses to map results back to its
    own file list.
    """
    index: int
    title: str
    year: int | None = None
    season: int | None = None
    episode: int | None = None
    media_type: MediaType = MediaType.UNKNOWN


@dataclass
class MatchResult:
    """Outcome of one lookup request: metadata or a readable error."""
    index: int
    metadata: MediaMetadata | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.metadata is not None


@dataclass(frozen=True)
class RenamePattern:
    """Named pair of rename templates."""
    name: str
    movie_pattern: str
    tv_pattern: str

    @classmethod
    def default(cls) -> "RenamePattern":
        return cls(
            name="Default",
            movie_pattern="{title} ({year})",
            tv_pattern="{show} - S{season:02}E{episode:02} - {episode_title}",
        )

    @classmethod
    def plex(cls) -> "RenamePattern":
        return cls(
            name="Plex",
            movie_pattern="{title} ({year})",
            tv_pattern="{show} - s{season:02}e{episode:02} - {episode_title}",
        )

    @classmethod
    def jellyfin(cls) -> "RenamePattern":
        return cls(
            name="Jellyfin",
            movie_pattern="{title} ({year})",
            tv_pattern="{show} S{season:02}E{episode:02} {episode_title}",
        )

    @classmethod
    def all_patterns(cls) -> list["RenamePattern"]:
        return [cls.default(), cls.plex(), cls.jellyfin()]

    @classmethod
    def by_name(cls, name: str | None) -> "RenamePattern":
        """Look up a preset by name, falling back to the default one."""
        for pattern in cls.all_patterns():
            if name and pattern.name.lower() == name.lower():
                return pattern
        return cls.default()


@dataclass
class MediaFile:
    """A video file in the working list."""
    path: Path
    filename: str
    extension: str
    size_bytes: int = 0
    media_type: MediaType = MediaType.UNKNOWN
    parsed_info: ParsedMediaInfo | None = None
    matched_metadata: MediaMetadata | None = None
    new_filename: str | None = None
    is_selected: bool = False

    @classmethod
    def from_path(cls, path: str | Path) -> "MediaFile":
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return cls(
            path=path,
            filename=path.name,
            extension=path.suffix.lstrip("."),
            size_bytes=size,
        )

    def detect(self) -> None:
        """Parse the filename and (re)set the classification."""
        # Local import: parser depends on this module
        from .parser import parse_filename

        self.media_type, self.parsed_info = parse_filename(self.filename)

    def set_media_type(self, media_type: MediaType) -> None:
        """Manual override; parsed info is left as is."""
        self.media_type = media_type

    def formatted_size(self) -> str:
        size = float(self.size_bytes)
        if size >= 1024 ** 3:
            return f"{size / 1024 ** 3:.2f} GB"
        if size >= 1024 ** 2:
            return f"{size / 1024 ** 2:.1f} MB"
        if size >= 1024:
            return f"{size / 1024:.0f} KB"
        return f"{self.size_bytes} B"
