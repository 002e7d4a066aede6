"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import threading
from collections import Counter

import pytest

from reel.models import EpisodeDetails, MediaMetadata, MediaType, SearchResult
from reel.tmdb import TMDBError


class FakeTMDBClient:
    """In-memory stand-in for TMDBClient that counts every call.

    ``movies`` and ``shows`` map a lower-cased query to a list of
    MediaMetadata (empty list = no results, TMDBError = search fails).
    ``episodes`` maps (tv_id, season, episode) to EpisodeDetails or an
    exception to raise.
    """

    def __init__(
        self,
        movies: dict | None = None,
        shows: dict | None = None,
        episodes: dict | None = None,
    ) -> None:
        self.movies = movies or {}
        self.shows = shows or {}
        self.episodes = episodes or {}
        self.calls: Counter[str] = Counter()
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    @staticmethod
    def _lookup(table: dict, query: str) -> list:
        found = table.get(query.lower(), [])
        if isinstance(found, Exception):
            raise found
        return found

    def search_movies(self, title: str, year: int | None = None) -> list[SearchResult]:
        self._count("search_movies")
        return [
            SearchResult(m.tmdb_id, m.title, m.year, MediaType.MOVIE)
            for m in self._lookup(self.movies, title)
        ]

    def get_movie_details(self, movie_id: int) -> MediaMetadata:
        self._count("get_movie_details")
        for entries in self.movies.values():
            if isinstance(entries, Exception):
                continue
            for m in entries:
                if m.tmdb_id == movie_id:
                    if m.overview == "FAIL":
                        raise TMDBError("Network error: details down")
                    return m
        raise TMDBError("Network error: 404")

    def search_tv(self, title: str, year: int | None = None) -> list[SearchResult]:
        self._count("search_tv")
        return [
            SearchResult(s.tmdb_id, s.title, s.year, MediaType.TV_SHOW)
            for s in self._lookup(self.shows, title)
        ]

    def get_tv_details(self, tv_id: int) -> MediaMetadata:
        self._count("get_tv_details")
        for entries in self.shows.values():
            if isinstance(entries, Exception):
                continue
            for s in entries:
                if s.tmdb_id == tv_id:
                    return s
        raise TMDBError("Network error: 404")

    def get_episode_details(self, tv_id: int, season: int, episode: int) -> EpisodeDetails:
        self._count("get_episode_details")
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            found = self.episodes.get((tv_id, season, episode))
            if found is None:
                raise TMDBError("Network error: 404 Not Found")
            if isinstance(found, Exception):
                raise found
            return found
        finally:
            with self._lock:
                self.in_flight -= 1


def breaking_bad_show() -> MediaMetadata:
    return MediaMetadata(
        tmdb_id=1396,
        title="Breaking Bad",
        original_title="Breaking Bad",
        year=2008,
        poster_path="/show.jpg",
        vote_average=8.9,
        genres=["Drama", "Crime"],
        show_name="Breaking Bad",
    )


def matrix_movie() -> MediaMetadata:
    return MediaMetadata(
        tmdb_id=603,
        title="The Matrix",
        original_title="The Matrix",
        year=1999,
        genres=["Action", "Science Fiction"],
    )


@pytest.fixture
def fake_client() -> FakeTMDBClient:
    return FakeTMDBClient(
        movies={"the matrix": [matrix_movie()]},
        shows={"breaking bad": [breaking_bad_show()]},
        episodes={
            (1396, 1, 1): EpisodeDetails(name="Pilot", still_path="/pilot.jpg", air_date="2008-01-20"),
            (1396, 1, 2): EpisodeDetails(name="Cat's in the Bag...", air_date="2008-01-27"),
            (1396, 1, 3): EpisodeDetails(name="...And the Bag's in the River", vote_average=8.1),
        },
    )


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """No API key in the environment, no .env files, settings under tmp."""
    for name in ("TMDB_API_KEY", "REEL_TMDB_API_KEY"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    config = tmp_path / "config" / "settings.json"
    monkeypatch.setattr("reel.settings.settings_path", lambda: config)
    return config


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
