"""TMDB API client module."""
import logging
import time
from typing import Any

import requests

from .models import EpisodeDetails, MediaMetadata, MediaType, SearchResult

log = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
DEFAULT_RETRIES = 3
RETRY_DELAY = 1.0
MAX_RETRY_AFTER = 60.0
DEFAULT_LANGUAGE = "en-US"


class TMDBError(Exception):
    """Exception raised for TMDB API errors."""
    pass


def _year_from_date(date: str | None) -> int | None:
    """'1999-03-31' -> 1999; anything unparsable -> None."""
    if not date:
        return None
    try:
        return int(date.split('-')[0])
    except ValueError:
        return None


def _retry_after(value: str | None) -> float:
    """Seconds to wait from a Retry-After header; HTTP-dates use RETRY_DELAY."""
    if value is None:
        return RETRY_DELAY
    try:
        return max(0.0, min(float(value), MAX_RETRY_AFTER))
    except ValueError:
        return RETRY_DELAY


class TMDBClient:
    """Client for TMDB API."""

    def __init__(
        self,
        api_key: str,
        language: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB API key.
            language: TMDB API language tag (e.g. "en-US"). Falls back to
                      DEFAULT_LANGUAGE when *None*.
            timeout: Per-request timeout in seconds.
            retries: Attempts per request on timeouts and rate limiting.

        Raises:
            TMDBError: If API key is empty
        """
        if not api_key:
            raise TMDBError("TMDB API key not set")
        self.api_key = api_key
        self.language = language or DEFAULT_LANGUAGE
        self.timeout = timeout
        self.retries = max(1, retries)

    def _request(self, endpoint: str, params: dict | None = None) -> Any:
        """
        Make a GET request to the TMDB API and decode the JSON body.

        Args:
            endpoint: API endpoint (e.g., '/search/movie')
            params: Query parameters

        Returns:
            Decoded JSON response

        Raises:
            TMDBError: "Network error: ..." on transport or HTTP failures,
                       "Parse error: ..." when the body is not JSON.
        """
        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params = {
            "api_key": self.api_key,
            "language": self.language,
            **(params or {})
        }

        # Log the request (hide API key)
        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        last_error = "no response"
        for attempt in range(self.retries):
            try:
                response = requests.get(url, params=all_params, timeout=self.timeout)
            except requests.exceptions.Timeout as e:
                last_error = str(e) or "timeout"
                log.debug("Timeout (attempt %d/%d)", attempt + 1, self.retries)
                if attempt < self.retries - 1:
                    time.sleep(RETRY_DELAY)
                continue
            except requests.exceptions.RequestException as e:
                raise TMDBError(f"Network error: {e}") from e

            log.debug("Response status: %s", response.status_code)

            if response.status_code == 429:  # Rate limited
                last_error = "429 Too Many Requests"
                if attempt < self.retries - 1:
                    retry_after = _retry_after(response.headers.get("Retry-After"))
                    log.debug("Rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                continue

            try:
                response.raise_for_status()
            except requests.exceptions.HTTPError as e:
                raise TMDBError(f"Network error: {e}") from e

            try:
                return response.json()
            except ValueError as e:
                raise TMDBError(f"Parse error: {e}") from e

        raise TMDBError(f"Network error: {last_error}")

    def verify_api_key(self) -> bool:
        """Check the key against the configuration endpoint."""
        try:
            self._request("/configuration")
        except TMDBError:
            return False
        return True

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _search(
        self,
        endpoint: str,
        query: str,
        extra: dict | None,
        convert,
    ) -> list[SearchResult]:
        params: dict[str, Any] = {"query": query, "include_adult": "false"}
        params.update(extra or {})
        data = self._request(endpoint, params)
        try:
            results = [convert(r) for r in data["results"]]
        except (KeyError, TypeError) as e:
            raise TMDBError(f"Parse error: missing field {e}") from e
        return [r for r in results if r is not None]

    def search_movies(self, query: str, year: int | None = None) -> list[SearchResult]:
        """Search movies, ranked as TMDB returns them."""
        extra = {"year": year} if year else None
        return self._search("/search/movie", query, extra, self._movie_result)

    def search_tv(self, query: str, year: int | None = None) -> list[SearchResult]:
        """Search TV shows, ranked as TMDB returns them."""
        extra = {"first_air_date_year": year} if year else None
        return self._search("/search/tv", query, extra, self._tv_result)

    def search_multi(self, query: str) -> list[SearchResult]:
        """Search movies and TV shows together; other kinds are dropped."""
        def convert(r: dict) -> SearchResult | None:
            kind = r.get("media_type")
            if kind == "movie":
                return self._movie_result(r)
            if kind == "tv":
                return self._tv_result(r)
            return None

        return self._search("/search/multi", query, None, convert)

    @staticmethod
    def _movie_result(r: dict) -> SearchResult:
        return SearchResult(
            tmdb_id=r["id"],
            title=r.get("title") or r.get("name") or "",
            year=_year_from_date(r.get("release_date")),
            media_type=MediaType.MOVIE,
            overview=r.get("overview"),
            poster_path=r.get("poster_path"),
            vote_average=r.get("vote_average"),
        )

    @staticmethod
    def _tv_result(r: dict) -> SearchResult:
        return SearchResult(
            tmdb_id=r["id"],
            title=r.get("name") or r.get("title") or "",
            year=_year_from_date(r.get("first_air_date")),
            media_type=MediaType.TV_SHOW,
            overview=r.get("overview"),
            poster_path=r.get("poster_path"),
            vote_average=r.get("vote_average"),
        )

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    def get_movie_details(self, movie_id: int) -> MediaMetadata:
        """Full metadata for a movie."""
        data = self._request(f"/movie/{movie_id}")
        try:
            return MediaMetadata(
                tmdb_id=data["id"],
                title=data["title"],
                original_title=data.get("original_title"),
                year=_year_from_date(data.get("release_date")),
                overview=data.get("overview"),
                poster_path=data.get("poster_path"),
                backdrop_path=data.get("backdrop_path"),
                vote_average=data.get("vote_average"),
                genres=[g["name"] for g in data.get("genres") or []],
            )
        except (KeyError, TypeError) as e:
            raise TMDBError(f"Parse error: missing field {e}") from e

    def get_tv_details(self, tv_id: int) -> MediaMetadata:
        """Full metadata for a TV show; ``show_name`` is set."""
        data = self._request(f"/tv/{tv_id}")
        try:
            return MediaMetadata(
                tmdb_id=data["id"],
                title=data["name"],
                original_title=data.get("original_name"),
                year=_year_from_date(data.get("first_air_date")),
                overview=data.get("overview"),
                poster_path=data.get("poster_path"),
                backdrop_path=data.get("backdrop_path"),
                vote_average=data.get("vote_average"),
                genres=[g["name"] for g in data.get("genres") or []],
                show_name=data["name"],
            )
        except (KeyError, TypeError) as e:
            raise TMDBError(f"Parse error: missing field {e}") from e

    def get_episode_details(self, tv_id: int, season: int, episode: int) -> EpisodeDetails:
        """
        Episode-level fields only.

        The caller merges these with the show's metadata, so the show is
        not fetched again for every episode.
        """
        data = self._request(f"/tv/{tv_id}/season/{season}/episode/{episode}")
        try:
            return EpisodeDetails(
                name=data["name"],
                overview=data.get("overview"),
                still_path=data.get("still_path"),
                air_date=data.get("air_date"),
                vote_average=data.get("vote_average"),
            )
        except (KeyError, TypeError) as e:
            raise TMDBError(f"Parse error: missing field {e}") from e


def verify_api_key(api_key: str) -> bool:
    """Return whether *api_key* authorizes TMDB calls."""
    if not api_key:
        return False
    return TMDBClient(api_key).verify_api_key()


def search_media(
    api_key: str,
    query: str,
    media_type: MediaType,
    year: int | None = None,
) -> list[SearchResult]:
    """
    Search by title, choosing the endpoint from the classification.

    Unknown files use the multi search (year is ignored there).

    Raises:
        TMDBError: On an empty key or any request failure.
    """
    client = TMDBClient(api_key)
    if media_type == MediaType.MOVIE:
        return client.search_movies(query, year)
    if media_type == MediaType.TV_SHOW:
        return client.search_tv(query, year)
    return client.search_multi(query)
