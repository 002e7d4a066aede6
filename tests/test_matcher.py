"""Tests for batch matching and result application."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeTMDBClient, breaking_bad_show, matrix_movie
from reel import matcher
from reel.matcher import (
    NO_API_KEY,
    NO_RESULTS,
    NO_TITLE,
    apply_match_results,
    apply_search_result,
    batch_match_files,
    build_batch_requests,
    fetch_metadata,
)
from reel.models import (
    BatchFileInfo,
    EpisodeDetails,
    MediaFile,
    MediaType,
    RenamePattern,
    SearchResult,
)
from reel.tmdb import TMDBError


class FakeTime:
    """Records courtesy delays instead of sleeping."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture
def fake_time(monkeypatch: pytest.MonkeyPatch) -> FakeTime:
    fake = FakeTime()
    monkeypatch.setattr(matcher, "time", fake)
    return fake


def run(client: FakeTMDBClient, files: list[BatchFileInfo], **kwargs):
    return batch_match_files("key", files, client_factory=lambda _key: client, **kwargs)


def episode(index: int, season: int | None, number: int | None, title: str = "Breaking Bad") -> BatchFileInfo:
    return BatchFileInfo(index, title, None, season, number, MediaType.TV_SHOW)


def by_index(results):
    return {r.index: r for r in results}


class TestCredential:
    """Missing API key."""

    def test_every_request_fails_without_network(self) -> None:
        def factory(_key):
            raise AssertionError("client must not be built")

        files = [
            BatchFileInfo(0, "The Matrix", 1999, media_type=MediaType.MOVIE),
            episode(1, 1, 1),
        ]
        results = batch_match_files("", files, client_factory=factory)

        assert {r.index for r in results} == {0, 1}
        assert all(r.error == NO_API_KEY for r in results)


class TestMovies:
    """Individual lookup path."""

    def test_match_top_result(self, fake_client, fake_time) -> None:
        results = run(fake_client, [BatchFileInfo(7, "The Matrix", 1999, media_type=MediaType.MOVIE)])

        assert len(results) == 1
        assert results[0].index == 7
        assert results[0].metadata.title == "The Matrix"
        assert fake_client.calls["get_movie_details"] == 1

    def test_unknown_goes_through_movie_path(self, fake_client, fake_time) -> None:
        results = run(fake_client, [BatchFileInfo(0, "the matrix", media_type=MediaType.UNKNOWN)])
        assert results[0].success
        assert fake_client.calls["search_movies"] == 1
        assert fake_client.calls["search_tv"] == 0

    def test_no_results(self, fake_client, fake_time) -> None:
        results = run(fake_client, [BatchFileInfo(0, "Nothing Here", media_type=MediaType.MOVIE)])
        assert results[0].error == NO_RESULTS
        assert fake_client.calls["get_movie_details"] == 0

    def test_errors_stay_per_request(self, fake_time) -> None:
        broken = matrix_movie()
        broken.tmdb_id = 99
        broken.overview = "FAIL"
        client = FakeTMDBClient(movies={
            "the matrix": [matrix_movie()],
            "broken": [broken],
            "offline": TMDBError("Network error: connection refused"),
        })
        files = [
            BatchFileInfo(0, "broken", media_type=MediaType.MOVIE),
            BatchFileInfo(1, "offline", media_type=MediaType.MOVIE),
            BatchFileInfo(2, "The Matrix", media_type=MediaType.MOVIE),
        ]
        results = by_index(run(client, files))

        assert results[0].error == "Network error: details down"
        assert results[1].error == "Network error: connection refused"
        assert results[2].success

    def test_delay_after_each_movie(self, fake_client, fake_time) -> None:
        files = [BatchFileInfo(i, "The Matrix", media_type=MediaType.MOVIE) for i in range(3)]
        run(fake_client, files, delay=0.25)
        assert fake_time.sleeps == [0.25, 0.25, 0.25]


class TestShows:
    """Grouped lookup path."""

    def test_show_resolved_once_per_group(self, fake_client, fake_time) -> None:
        files = [
            episode(0, 1, 1, "Breaking Bad"),
            episode(1, 1, 2, "breaking bad"),
            episode(2, 1, 3, "BREAKING BAD"),
        ]
        results = by_index(run(fake_client, files))

        assert fake_client.calls["search_tv"] == 1
        assert fake_client.calls["get_tv_details"] == 1
        assert fake_client.calls["get_episode_details"] == 3
        assert results[0].metadata.episode_title == "Pilot"
        assert results[1].metadata.episode_title == "Cat's in the Bag..."
        assert results[2].metadata.episode_number == 3

    def test_episode_merged_with_show(self, fake_client, fake_time) -> None:
        results = run(fake_client, [episode(0, 1, 1), episode(1, 1, 3)])
        merged = by_index(results)

        pilot = merged[0].metadata
        assert pilot.tmdb_id == 1396
        assert pilot.show_name == "Breaking Bad"
        assert pilot.year == 2008
        assert pilot.poster_path == "/pilot.jpg"
        assert pilot.vote_average == 8.9
        assert pilot.genres == ["Drama", "Crime"]
        assert pilot.air_date == "2008-01-20"
        assert (pilot.season_number, pilot.episode_number) == (1, 1)

        third = merged[1].metadata
        assert third.poster_path == "/show.jpg"
        assert third.vote_average == 8.1

    def test_missing_episode_falls_back_to_show(self, fake_client, fake_time) -> None:
        fake_client.episodes[(1396, 5, 9)] = TMDBError("Parse error: bad body")
        results = by_index(run(fake_client, [episode(0, 5, 9), episode(1, 6, 1)]))

        for index, numbers in ((0, (5, 9)), (1, (6, 1))):
            metadata = results[index].metadata
            assert metadata is not None
            assert metadata.title == "Breaking Bad"
            assert metadata.episode_title is None
            assert (metadata.season_number, metadata.episode_number) == numbers

    def test_episode_without_numbers_gets_show(self, fake_client, fake_time) -> None:
        results = run(fake_client, [episode(0, None, None)])
        assert results[0].metadata.title == "Breaking Bad"
        assert fake_client.calls["get_episode_details"] == 0

    def test_show_search_failure_fans_out(self, fake_time) -> None:
        client = FakeTMDBClient(shows={"lost": TMDBError("Network error: timeout")})
        files = [episode(i, 1, i + 1, "Lost") for i in range(4)]
        results = run(client, files)

        assert len(results) == 4
        assert {r.error for r in results} == {"Network error: timeout"}
        assert client.calls["search_tv"] == 1

    def test_show_without_results_fans_out(self, fake_client, fake_time) -> None:
        files = [episode(0, 1, 1, "Unknown Show"), episode(1, 1, 2, "unknown show")]
        results = run(fake_client, files)
        assert [r.error for r in results] == [NO_RESULTS, NO_RESULTS]
        assert fake_client.calls["get_tv_details"] == 0

    def test_batches_bounded_and_paced(self, fake_client, fake_time) -> None:
        for n in range(1, 13):
            fake_client.episodes[(1396, 2, n)] = EpisodeDetails(name=f"Episode {n}")
        files = [episode(n, 2, n) for n in range(1, 13)]

        results = run(fake_client, files, delay=0.5, batch_size=5)

        assert len(results) == 12
        assert fake_client.max_in_flight <= 5
        # 12 episodes in batches of 5 -> 3 batches, one pause after each
        assert fake_time.sleeps == [0.5, 0.5, 0.5]


class TestCompleteness:
    """Exactly one result per request."""

    def test_mixed_batch(self, fake_client, fake_time) -> None:
        files = [
            BatchFileInfo(10, "The Matrix", 1999, media_type=MediaType.MOVIE),
            BatchFileInfo(11, "", media_type=MediaType.MOVIE),
            episode(12, 1, 1),
            episode(13, 1, 2, "breaking BAD"),
            episode(14, 1, 1, ""),
            BatchFileInfo(15, "Nope", media_type=MediaType.UNKNOWN),
            episode(16, 3, 3, "Other Show"),
        ]
        results = run(fake_client, files)

        indices = [r.index for r in results]
        assert sorted(indices) == [10, 11, 12, 13, 14, 15, 16]
        errors = {r.index: r.error for r in results}
        assert errors[11] == NO_TITLE
        assert errors[14] == NO_TITLE
        assert errors[15] == NO_RESULTS
        assert errors[16] == NO_RESULTS
        assert errors[12] is None and errors[13] is None

    def test_empty_input(self, fake_client, fake_time) -> None:
        assert run(fake_client, []) == []


class TestFetchMetadata:
    """Applying a chosen search result."""

    def test_movie(self, fake_client) -> None:
        result = SearchResult(603, "The Matrix", 1999, MediaType.MOVIE)
        assert fetch_metadata(fake_client, result).title == "The Matrix"

    def test_unknown_is_fetched_as_movie(self, fake_client) -> None:
        result = SearchResult(603, "The Matrix", 1999, MediaType.UNKNOWN)
        assert fetch_metadata(fake_client, result).tmdb_id == 603
        assert fake_client.calls["get_movie_details"] == 1

    def test_show_with_episode(self, fake_client) -> None:
        result = SearchResult(1396, "Breaking Bad", 2008, MediaType.TV_SHOW)
        metadata = fetch_metadata(fake_client, result, 1, 2)
        assert metadata.episode_title == "Cat's in the Bag..."

    def test_show_without_numbers(self, fake_client) -> None:
        result = SearchResult(1396, "Breaking Bad", 2008, MediaType.TV_SHOW)
        metadata = fetch_metadata(fake_client, result)
        assert metadata.season_number is None
        assert fake_client.calls["get_episode_details"] == 0

    def test_apply_search_result_to_several_files(self, fake_client) -> None:
        result = SearchResult(1396, "Breaking Bad", 2008, MediaType.TV_SHOW)
        results = apply_search_result(
            "key", result, [(0, 1, 1), (4, 1, 2)], client_factory=lambda _key: fake_client,
        )
        titles = {r.index: r.metadata.episode_title for r in results}
        assert titles == {0: "Pilot", 4: "Cat's in the Bag..."}

    def test_apply_search_result_without_key(self) -> None:
        result = SearchResult(1, "X", None, MediaType.MOVIE)
        results = apply_search_result("", result, [(0, None, None), (1, None, None)])
        assert [r.error for r in results] == [NO_API_KEY, NO_API_KEY]

    def test_apply_search_result_error(self) -> None:
        result = SearchResult(1, "X", None, MediaType.MOVIE)
        results = apply_search_result(
            "key", result, [(3, None, None)], client_factory=lambda _key: FakeTMDBClient(),
        )
        assert results[0].index == 3
        assert results[0].error == "Network error: 404"


class TestFileListGlue:
    """build_batch_requests / apply_match_results."""

    def _files(self, tmp_path: Path) -> list[MediaFile]:
        show_dir = tmp_path / "Breaking Bad"
        show_dir.mkdir()
        paths = [
            tmp_path / "The.Matrix.1999.1080p.mkv",
            show_dir / "S01E02.mkv",
            tmp_path / "already.matched.mkv",
        ]
        files = []
        for path in paths:
            path.write_bytes(b"x")
            media_file = MediaFile.from_path(path)
            media_file.detect()
            files.append(media_file)
        files[2].matched_metadata = matrix_movie()
        return files

    def test_build_requests(self, tmp_path: Path) -> None:
        requests = build_batch_requests(self._files(tmp_path))

        assert [r.index for r in requests] == [0, 1]
        movie, show = requests
        assert (movie.title, movie.year, movie.media_type) == ("The Matrix", 1999, MediaType.MOVIE)
        assert show.title == "Breaking Bad"
        assert (show.season, show.episode, show.media_type) == (1, 2, MediaType.TV_SHOW)

    def test_apply_results(self, tmp_path: Path, fake_client, fake_time) -> None:
        files = self._files(tmp_path)
        results = run(fake_client, build_batch_requests(files))

        updated = apply_match_results(files, results, RenamePattern.default())

        assert updated == 2
        assert files[0].new_filename == "The Matrix (1999).mkv"
        assert files[1].new_filename == "Breaking Bad - S01E02 - Cat's in the Bag....mkv"
        assert files[1].matched_metadata.show_name == "Breaking Bad"

    def test_failed_results_leave_files_alone(self, tmp_path: Path) -> None:
        files = self._files(tmp_path)
        results = batch_match_files("", build_batch_requests(files))
        assert apply_match_results(files, results, RenamePattern.default()) == 0
        assert files[0].new_filename is None
