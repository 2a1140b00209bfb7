"""
Meta resolution: Cinemeta record + optional MDBList ratings.

Lookup flow for resolve(type, id):
    1. Cinemeta meta record (required; failure -> {"meta": None})
    2. No MDBList key configured -> Cinemeta record as-is
    3. MDBList ratings (best effort; any failure -> Cinemeta record as-is)
    4. Ratings block prepended to the description

No step is retried. The ratings lookup never makes a request fail.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from constants import CINEMETA_BASE, MDBLIST_BASE, Upstream
from http_client import CachedFetcher
from metrics import metrics
from models import MetaResult
from ratings import format_ratings_block, prepend_block

logger = logging.getLogger(__name__)


def build_cinemeta_url(content_type: str, content_id: str, base: str = CINEMETA_BASE) -> str:
    """Primary provider URL for a (type, id) pair."""
    return f"{base}/meta/{quote(content_type, safe='')}/{quote(content_id, safe='')}.json"


def build_mdblist_url(api_key: str, content_id: str, base: str = MDBLIST_BASE) -> str:
    """
    Ratings provider URL for an id.

    The key is part of the URL and therefore of the cache key.
    """
    return f"{base}/?apikey={quote(api_key, safe='')}&i={quote(content_id, safe='')}"


class MetaResolver:
    """
    Builds the merged meta record for a content id.

    Usage:
        resolver = MetaResolver(CachedFetcher(MemoryCache()), api_key="...")
        result = resolver.resolve("movie", "tt0111161")
        payload = result.to_dict()  # {"meta": {...}}
    """

    def __init__(
        self,
        fetcher: CachedFetcher,
        api_key: Optional[str] = None,
        cinemeta_base: str = CINEMETA_BASE,
        mdblist_base: str = MDBLIST_BASE,
    ):
        """
        Initialize the resolver.

        Args:
            fetcher: Cached fetcher shared by both upstreams
            api_key: MDBList API key; None disables ratings enrichment
            cinemeta_base: Base URL of the primary provider
            mdblist_base: Base URL of the ratings provider
        """
        self.fetcher = fetcher
        self.api_key = api_key or None
        self.cinemeta_base = cinemeta_base
        self.mdblist_base = mdblist_base

    @property
    def ratings_enabled(self) -> bool:
        return self.api_key is not None

    def resolve(self, content_type: str, content_id: str) -> MetaResult:
        """
        Resolve a meta request.

        Args:
            content_type: "movie" or "series"
            content_id: IMDb-style id, e.g. "tt0111161"

        Returns:
            MetaResult; meta is None when Cinemeta could not be reached
        """
        log_extra = {'content_type': content_type, 'content_id': content_id}
        metrics.inc("meta_requests")

        primary = self.fetcher.fetch(
            build_cinemeta_url(content_type, content_id, self.cinemeta_base),
            upstream=Upstream.CINEMETA.value,
        )
        if not primary.ok:
            logger.warning(f"Cinemeta lookup failed for {content_type}/{content_id}: {primary.error}",
                           extra=log_extra)
            metrics.inc("meta_results", labels={"outcome": "primary_failed"})
            return MetaResult(meta=None)

        meta = primary.value.get("meta") if isinstance(primary.value, dict) else None
        if not isinstance(meta, dict):
            logger.info(f"No meta record for {content_type}/{content_id}", extra=log_extra)
            metrics.inc("meta_results", labels={"outcome": "no_meta"})
            return MetaResult(meta=meta)

        if not self.ratings_enabled:
            metrics.inc("meta_results", labels={"outcome": "no_key"})
            return MetaResult(meta=meta)

        enriched = self._enrich(meta, content_id, log_extra)
        if enriched is None:
            return MetaResult(meta=meta)

        metrics.inc("meta_results", labels={"outcome": "enriched"})
        return MetaResult(meta=enriched)

    def _enrich(
        self,
        meta: Dict[str, Any],
        content_id: str,
        log_extra: Dict[str, str],
    ) -> Optional[Dict[str, Any]]:
        """
        Return a copy of meta with the ratings block prepended.

        Returns None, after logging, when ratings are unavailable. The
        cached Cinemeta record is never modified.
        """
        ratings = self.fetcher.fetch(
            build_mdblist_url(self.api_key, content_id, self.mdblist_base),
            upstream=Upstream.MDBLIST.value,
        )
        if not ratings.ok:
            logger.warning(f"MDBList lookup failed for {content_id}: {ratings.error}", extra=log_extra)
            metrics.inc("meta_results", labels={"outcome": "ratings_failed"})
            return None

        block = format_ratings_block(ratings.value)
        if block is None:
            logger.debug(f"No ratings available for {content_id}", extra=log_extra)
            metrics.inc("meta_results", labels={"outcome": "no_ratings"})
            return None

        merged = dict(meta)
        merged["description"] = prepend_block(block, meta.get("description"))
        logger.info(f"Ratings added for {content_id}", extra=log_extra)
        return merged
