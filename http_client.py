"""
HTTP client and cached JSON fetcher for upstream providers.

Provides:
- A pooled requests session with a fixed identifying User-Agent
- A zero-retry policy (one attempt per upstream call)
- CachedFetcher: GET + JSON decode, memoized per URL in a MemoryCache
- FetchError / ParseError carrying status, URL and a body snippet
- FetchResult: success/failure value for callers that must not raise
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cache import MemoryCache
from constants import USER_AGENT, DEFAULT_UPSTREAM_TIMEOUT, ERROR_BODY_SNIPPET_LENGTH
from metrics import metrics

logger = logging.getLogger(__name__)

_APIKEY_PATTERN = re.compile(r'(apikey=)[^&]*', re.IGNORECASE)


def redact_url(url: str) -> str:
    """Mask the value of an ``apikey`` query parameter for logging."""
    return _APIKEY_PATTERN.sub(r'\1***', url)


# =============================================================================
# Errors and Results
# =============================================================================

class FetchError(Exception):
    """
    Upstream request failed.

    Attributes:
        url: Request URL (unredacted, this is the cache key)
        status_code: HTTP status, or None for transport failures
        body_snippet: First characters of the response body
    """

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        body_snippet: str = "",
        reason: str = "",
    ):
        self.url = url
        self.status_code = status_code
        self.body_snippet = body_snippet[:ERROR_BODY_SNIPPET_LENGTH]
        if status_code is not None:
            message = f"Fetch failed {status_code} for {redact_url(url)} :: {self.body_snippet}"
        else:
            message = f"Fetch failed for {redact_url(url)} :: {reason}"
        super().__init__(message)


class ParseError(FetchError):
    """Upstream answered with success but the body was not valid JSON."""

    def __init__(self, url: str, status_code: int, body_snippet: str = ""):
        super().__init__(url, status_code, body_snippet)
        self.args = (
            f"Invalid JSON ({status_code}) from {redact_url(url)} :: {self.body_snippet}",
        )


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of a non-raising fetch.

    Exactly one of value/error is meaningful: check ``ok`` first.
    """
    value: Any = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "FetchResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult":
        return cls(error=error)


# =============================================================================
# Session
# =============================================================================

def create_session(user_agent: str = USER_AGENT) -> requests.Session:
    """
    Create a pooled session that never retries.

    Args:
        user_agent: User-Agent header sent with every request

    Returns:
        Configured requests.Session
    """
    session = requests.Session()

    # One attempt per upstream call; requests follows redirects itself
    retry_strategy = Retry(total=0, raise_on_status=False)

    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=20,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": user_agent,
        "Accept": "application/json",
    })
    return session


# =============================================================================
# Cached Fetcher
# =============================================================================

class CachedFetcher:
    """
    GET-and-decode JSON with per-URL memoization.

    The full URL, query string included, is the cache key. Two URLs that
    differ textually are cached separately. Failures are never cached.
    Concurrent misses for the same URL may each go upstream.

    Usage:
        fetcher = CachedFetcher(MemoryCache())
        record = fetcher.get("https://v3-cinemeta.strem.io/meta/movie/tt0111161.json")
        result = fetcher.fetch(url)
        if result.ok:
            use(result.value)
    """

    def __init__(
        self,
        cache: MemoryCache,
        session: requests.Session = None,
        timeout: Optional[float] = DEFAULT_UPSTREAM_TIMEOUT,
    ):
        """
        Initialize the fetcher.

        Args:
            cache: Cache instance holding decoded responses
            session: Optional shared session, a pooled one is created otherwise
            timeout: Per-request timeout in seconds, None for no timeout
        """
        self.cache = cache
        self.timeout = timeout
        self.session = session or create_session()

    def get(self, url: str, upstream: str = "upstream") -> Any:
        """
        Return the decoded JSON body for url, from cache when live.

        Args:
            url: Fully-formed request URL
            upstream: Label for logs and metrics

        Returns:
            Decoded JSON value

        Raises:
            FetchError: Transport failure or non-2xx status
            ParseError: 2xx status with a body that is not JSON
        """
        entry = self.cache.read(url)
        if entry is not None:
            logger.debug(
                f"Cache hit: {redact_url(url)}",
                extra={'upstream': upstream, 'cache_hit': True},
            )
            metrics.inc("cache_hits", labels={"upstream": upstream})
            return entry.value

        metrics.inc("cache_misses", labels={"upstream": upstream})

        try:
            with metrics.timer("upstream_duration_ms", labels={"upstream": upstream}):
                response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            metrics.inc("upstream_errors", labels={"upstream": upstream})
            raise FetchError(url, reason=str(e)) from e

        if not 200 <= response.status_code < 300:
            metrics.inc("upstream_errors", labels={"upstream": upstream})
            raise FetchError(url, response.status_code, response.text or "")

        try:
            value = response.json()
        except ValueError as e:
            metrics.inc("upstream_errors", labels={"upstream": upstream})
            raise ParseError(url, response.status_code, response.text or "") from e

        self.cache.write(url, value)
        logger.debug(
            f"Fetched {redact_url(url)} -> {response.status_code}",
            extra={'upstream': upstream, 'cache_hit': False, 'status_code': response.status_code},
        )
        return value

    def fetch(self, url: str, upstream: str = "upstream") -> FetchResult:
        """
        Like get(), but report failures as a FetchResult instead of raising.
        """
        try:
            return FetchResult.success(self.get(url, upstream=upstream))
        except FetchError as e:
            return FetchResult.failure(e)
