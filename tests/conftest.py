from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from cache import MemoryCache
from http_client import CachedFetcher
from metrics import metrics


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(status_code: int = 200, payload=None, text: str | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    response.text = text
    if payload is not None:
        response.json.return_value = payload
    else:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    return response


def make_session(routes: dict) -> MagicMock:
    """Session whose get() answers by URL substring; unmatched URLs get a 404."""
    session = MagicMock()

    def _get(url, **kwargs):
        for fragment, response in routes.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response
        return make_response(404, text="not found")

    session.get.side_effect = _get
    return session


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def fetcher_factory(cache: MemoryCache):
    def _factory(routes: dict) -> CachedFetcher:
        return CachedFetcher(cache, session=make_session(routes))

    return _factory
