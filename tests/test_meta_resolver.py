from __future__ import annotations

import copy

import requests

from conftest import make_response, make_session
from http_client import CachedFetcher
from meta_resolver import MetaResolver, build_cinemeta_url, build_mdblist_url
from metrics import metrics

CINEMETA_PATH = "/meta/movie/tt0111161.json"
PRIMARY = {"meta": {"id": "tt0111161", "type": "movie", "name": "The Shawshank Redemption", "description": "Plot."}}


def _resolver(cache, routes: dict, api_key: str | None = "KEY") -> tuple[MetaResolver, object]:
    session = make_session(routes)
    return MetaResolver(CachedFetcher(cache, session=session), api_key=api_key), session


def _requested_urls(session) -> list[str]:
    return [c.args[0] for c in session.get.call_args_list]


def test_build_urls_encode_components() -> None:
    assert build_cinemeta_url("movie", "tt1:2/3", base="https://c.test") == "https://c.test/meta/movie/tt1%3A2%2F3.json"
    assert build_mdblist_url("a&b=c", "tt1", base="https://m.test") == "https://m.test/?apikey=a%26b%3Dc&i=tt1"


def test_enrichment_prepends_ratings_block(cache) -> None:
    resolver, session = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=KEY&i=tt0111161": make_response(200, {"imdb": 8.5, "tomato": 94, "metacritic": None}),
    })

    result = resolver.resolve("movie", "tt0111161")

    assert result.meta["description"] == "Ratings\nIMDb: 8.5\nRotten Tomatoes: 94%\n\nPlot."
    assert result.meta["name"] == "The Shawshank Redemption"
    assert _requested_urls(session) == [
        "https://v3-cinemeta.strem.io/meta/movie/tt0111161.json",
        "https://mdblist.com/api/?apikey=KEY&i=tt0111161",
    ]
    assert metrics.get_counter("meta_results", labels={"outcome": "enriched"}) == 1


def test_no_api_key_returns_primary_unmodified(cache) -> None:
    resolver, session = _resolver(cache, {CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY))}, api_key=None)

    result = resolver.resolve("movie", "tt0111161")

    assert result.meta == PRIMARY["meta"]
    assert result.meta["description"] == "Plot."
    assert session.get.call_count == 1
    assert resolver.ratings_enabled is False


def test_ratings_error_status_returns_primary_unmodified(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=": make_response(429, text="Too Many Requests"),
    })

    result = resolver.resolve("movie", "tt0111161")

    assert result.meta == PRIMARY["meta"]


def test_ratings_malformed_body_returns_primary_unmodified(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=": make_response(200, text="not json"),
    })

    assert resolver.resolve("movie", "tt0111161").meta == PRIMARY["meta"]


def test_ratings_transport_error_returns_primary_unmodified(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=": requests.exceptions.Timeout("read timed out"),
    })

    assert resolver.resolve("movie", "tt0111161").meta == PRIMARY["meta"]


def test_empty_ratings_leave_description_untouched(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=": make_response(200, {"trakt": None, "imdb": ""}),
    })

    assert resolver.resolve("movie", "tt0111161").meta["description"] == "Plot."


def test_primary_failure_yields_null_meta_without_ratings_call(cache) -> None:
    resolver, session = _resolver(cache, {
        CINEMETA_PATH: make_response(500, text="upstream down"),
        "apikey=": make_response(200, {"imdb": 8.5}),
    })

    result = resolver.resolve("movie", "tt0111161")

    assert result.to_dict() == {"meta": None}
    assert not any("apikey=" in url for url in _requested_urls(session))


def test_primary_without_meta_is_returned_as_is(cache) -> None:
    resolver, session = _resolver(cache, {CINEMETA_PATH: make_response(200, {"meta": None})})

    assert resolver.resolve("movie", "tt0111161").to_dict() == {"meta": None}
    assert session.get.call_count == 1


def test_missing_description_becomes_ratings_block(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, {"meta": {"id": "tt0111161"}}),
        "apikey=": make_response(200, {"ratings": {"imdb": 9.3}}),
    })

    assert resolver.resolve("movie", "tt0111161").meta["description"] == "Ratings\nIMDb: 9.3"


def test_numeric_description_is_kept_below_ratings(cache) -> None:
    resolver, _ = _resolver(cache, {
        CINEMETA_PATH: make_response(200, {"meta": {"id": "tt0111161", "description": 1984}}),
        "apikey=": make_response(200, {"imdb": 8.5}),
    })

    assert resolver.resolve("movie", "tt0111161").meta["description"] == "Ratings\nIMDb: 8.5\n\n1984"


def test_cached_primary_record_is_not_mutated(cache) -> None:
    resolver, session = _resolver(cache, {
        CINEMETA_PATH: make_response(200, copy.deepcopy(PRIMARY)),
        "apikey=": make_response(200, {"imdb": 8.5}),
    })

    first = resolver.resolve("movie", "tt0111161")
    second = resolver.resolve("movie", "tt0111161")

    assert first.meta["description"] == second.meta["description"] == "Ratings\nIMDb: 8.5\n\nPlot."
    assert session.get.call_count == 2
