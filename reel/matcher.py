"""Batch metadata matching against TMDB.

Movies (and unclassified files) are looked up one at a time.  TV episodes
are grouped by show title so the show is searched and fetched once per
group; the per-episode requests then run concurrently in small batches
with a pause between batches to stay under TMDB's rate limit.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable

from .formatter import generate_filename
from .models import (
    BatchFileInfo,
    EpisodeDetails,
    MatchResult,
    MediaFile,
    MediaMetadata,
    MediaType,
    RenamePattern,
    SearchResult,
)
from .tmdb import TMDBClient, TMDBError

log = logging.getLogger(__name__)

EPISODE_BATCH_SIZE = 5
COURTESY_DELAY = 0.1  # seconds after each movie and each episode batch

NO_API_KEY = "TMDB API key not set"
NO_TITLE = "No title parsed"
NO_RESULTS = "No results found"

ClientFactory = Callable[[str], TMDBClient]


def merge_episode(
    show: MediaMetadata,
    episode: EpisodeDetails,
    season: int,
    episode_number: int,
) -> MediaMetadata:
    """Combine show-level metadata with one episode's details."""
    return MediaMetadata(
        tmdb_id=show.tmdb_id,
        title=show.title,
        original_title=show.original_title,
        year=show.year,
        overview=episode.overview,
        poster_path=episode.still_path or show.poster_path,
        backdrop_path=show.backdrop_path,
        vote_average=(
            episode.vote_average if episode.vote_average is not None
            else show.vote_average
        ),
        genres=list(show.genres),
        season_number=season,
        episode_number=episode_number,
        episode_title=episode.name,
        air_date=episode.air_date,
        show_name=show.show_name,
    )


def _with_numbers(show: MediaMetadata, season: int | None, episode: int | None) -> MediaMetadata:
    """Copy of the show metadata with season/episode overlaid."""
    return replace(
        show,
        genres=list(show.genres),
        season_number=season,
        episode_number=episode,
    )


def _fetch_episode(
    client: TMDBClient,
    show: MediaMetadata,
    season: int | None,
    episode: int | None,
) -> MediaMetadata:
    """
    Episode metadata for an already resolved show.

    Falls back to the show's own metadata (with the requested numbers)
    when the episode can't be fetched.
    """
    if season is None or episode is None:
        return _with_numbers(show, show.season_number, show.episode_number)
    try:
        details = client.get_episode_details(show.tmdb_id, season, episode)
    except TMDBError as e:
        log.debug("Episode S%02dE%02d of %s unavailable: %s", season, episode, show.title, e)
        return _with_numbers(show, season, episode)
    return merge_episode(show, details, season, episode)


# ---------------------------------------------------------------------------
# Batch matching
# ---------------------------------------------------------------------------

def _match_movie(client: TMDBClient, request: BatchFileInfo) -> MatchResult:
    try:
        results = client.search_movies(request.title, request.year)
        if not results:
            return MatchResult(request.index, error=NO_RESULTS)
        metadata = client.get_movie_details(results[0].tmdb_id)
    except TMDBError as e:
        return MatchResult(request.index, error=str(e))
    return MatchResult(request.index, metadata=metadata)


def _match_show_group(
    client: TMDBClient,
    episodes: list[BatchFileInfo],
    pool: ThreadPoolExecutor,
    batch_size: int,
    delay: float,
) -> list[MatchResult]:
    first = episodes[0]

    # Search for the show and fetch its details ONCE
    try:
        found = client.search_tv(first.title, first.year)
        if not found:
            log.warning("No TMDB results for show '%s' (%d file(s))", first.title, len(episodes))
            return [MatchResult(ep.index, error=NO_RESULTS) for ep in episodes]
        show = client.get_tv_details(found[0].tmdb_id)
    except TMDBError as e:
        log.warning("Lookup failed for show '%s': %s", first.title, e)
        return [MatchResult(ep.index, error=str(e)) for ep in episodes]

    results = []
    for start in range(0, len(episodes), batch_size):
        chunk = episodes[start:start + batch_size]
        futures = [
            (ep.index, pool.submit(_fetch_episode, client, show, ep.season, ep.episode))
            for ep in chunk
        ]
        for index, future in futures:
            results.append(MatchResult(index, metadata=future.result()))
        time.sleep(delay)
    return results


def batch_match_files(
    api_key: str,
    files: list[BatchFileInfo],
    client_factory: ClientFactory = TMDBClient,
    delay: float = COURTESY_DELAY,
    batch_size: int = EPISODE_BATCH_SIZE,
) -> list[MatchResult]:
    """
    Look up metadata for a set of parsed files.

    Every request yields exactly one result, in no particular order.
    Failures are reported per request; a failed show lookup is reported
    for every episode of that show.

    Args:
        api_key: TMDB credential, already resolved by the caller
        files: Lookup requests
        client_factory: Builds the gateway client from the credential
        delay: Pause after each movie and each episode batch
        batch_size: Episodes fetched concurrently per batch

    Returns:
        One MatchResult per request
    """
    if not api_key:
        return [MatchResult(f.index, error=NO_API_KEY) for f in files]

    client = client_factory(api_key)
    results: list[MatchResult] = []

    # Separate movies and TV shows
    movies: list[BatchFileInfo] = []
    shows: dict[str, list[BatchFileInfo]] = {}
    for request in files:
        if not request.title:
            results.append(MatchResult(request.index, error=NO_TITLE))
            continue
        if request.media_type == MediaType.TV_SHOW:
            shows.setdefault(request.title.lower(), []).append(request)
        else:
            movies.append(request)

    log.info(
        "Matching %d movie(s) and %d show(s) with %d episode(s)",
        len(movies), len(shows), sum(len(g) for g in shows.values()),
    )

    for request in movies:
        results.append(_match_movie(client, request))
        time.sleep(delay)

    if shows:
        with ThreadPoolExecutor(max_workers=batch_size) as pool:
            for episodes in shows.values():
                results.extend(_match_show_group(client, episodes, pool, batch_size, delay))

    return results


# ---------------------------------------------------------------------------
# Single-result application
# ---------------------------------------------------------------------------

def fetch_metadata(
    client: TMDBClient,
    result: SearchResult,
    season: int | None = None,
    episode: int | None = None,
) -> MediaMetadata:
    """
    Full metadata for a search result chosen by the user.

    Raises:
        TMDBError: If the movie or show details can't be fetched.
    """
    if result.media_type == MediaType.TV_SHOW:
        show = client.get_tv_details(result.tmdb_id)
        if season is not None and episode is not None:
            return _fetch_episode(client, show, season, episode)
        return show
    return client.get_movie_details(result.tmdb_id)


def apply_search_result(
    api_key: str,
    result: SearchResult,
    targets: list[tuple[int, int | None, int | None]],
    client_factory: ClientFactory = TMDBClient,
) -> list[MatchResult]:
    """
    Fetch metadata for one search result on behalf of several files.

    Args:
        api_key: TMDB credential
        result: The chosen search hit
        targets: (index, season, episode) per file

    Returns:
        One MatchResult per target
    """
    if not api_key:
        return [MatchResult(index, error=NO_API_KEY) for index, _, _ in targets]
    if not targets:
        return []

    client = client_factory(api_key)

    def fetch(target: tuple[int, int | None, int | None]) -> MatchResult:
        index, season, episode = target
        try:
            return MatchResult(index, metadata=fetch_metadata(client, result, season, episode))
        except TMDBError as e:
            return MatchResult(index, error=str(e))

    with ThreadPoolExecutor(max_workers=EPISODE_BATCH_SIZE) as pool:
        return list(pool.map(fetch, targets))


# ---------------------------------------------------------------------------
# File list glue
# ---------------------------------------------------------------------------

def build_batch_requests(files: list[MediaFile]) -> list[BatchFileInfo]:
    """
    Lookup requests for every file that has no metadata yet.

    TV files whose parsed title is empty borrow the parent folder name
    (e.g. "Show/S01E01.mkv").
    """
    pending = []
    for index, file in enumerate(files):
        if file.matched_metadata is not None:
            continue
        parsed = file.parsed_info
        title = parsed.title if parsed else ""
        if not title and file.media_type == MediaType.TV_SHOW:
            title = file.path.parent.name
        pending.append(BatchFileInfo(
            index=index,
            title=title,
            year=parsed.year if parsed else None,
            season=parsed.season if parsed else None,
            episode=parsed.episode if parsed else None,
            media_type=file.media_type,
        ))
    return pending


def apply_match_results(
    files: list[MediaFile],
    results: list[MatchResult],
    pattern: RenamePattern,
) -> int:
    """
    Store successful results and their rendered filenames on the files.

    Returns:
        Number of files updated
    """
    updated = 0
    for result in results:
        if not result.success or not 0 <= result.index < len(files):
            continue
        file = files[result.index]
        file.matched_metadata = result.metadata
        file.new_filename = generate_filename(
            file.media_type, file.parsed_info, result.metadata, pattern, file.extension,
        )
        updated += 1
    return updated
