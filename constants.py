"""
Shared constants and defaults for the MDBList Ratings addon.

This module centralizes the addon manifest, upstream endpoints, cache
limits and the environment helpers used by the config layer.
"""

import os
from enum import Enum
from typing import Final, Optional


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable, falling back on bad input."""
    try:
        return int(os.environ.get(key, ""))
    except ValueError:
        return default


def _get_float_env(key: str, default: Optional[float]) -> Optional[float]:
    """Get float from environment variable, falling back on bad input."""
    try:
        return float(os.environ.get(key, ""))
    except ValueError:
        return default


# =============================================================================
# Enums
# =============================================================================

class ContentType(str, Enum):
    """
    Content types declared in the manifest.

    Inherits from str for JSON serialization compatibility.
    """
    MOVIE = "movie"
    SERIES = "series"


class Upstream(str, Enum):
    """Upstream providers, used as metric and log labels."""
    CINEMETA = "cinemeta"
    MDBLIST = "mdblist"


# =============================================================================
# Addon Manifest
# =============================================================================

ADDON_ID: Final = "org.josh.mdblist.ratings.description"
ADDON_NAME: Final = "MDBList Ratings (Description)"
ADDON_VERSION: Final = "1.0.0"
ADDON_DESCRIPTION: Final = (
    "Appends MDBList ratings (IMDb/TMDb/Trakt/RT/Metacritic/etc.) into the "
    "summary description for movies and series."
)
ADDON_ID_PREFIXES: Final = ("tt",)


# =============================================================================
# Cache Settings
# =============================================================================

CACHE_TTL_SECONDS: Final = 6 * 60 * 60  # 6 hours
MAX_CACHE_ENTRIES: Final = 10000
CACHE_EVICT_FRACTION: Final = 10  # evict 1/N of entries when full


# =============================================================================
# HTTP Settings
# =============================================================================

USER_AGENT: Final = "stremio-mdblist-addon/1.0"
DEFAULT_UPSTREAM_TIMEOUT: Final = 30.0
ERROR_BODY_SNIPPET_LENGTH: Final = 200


# =============================================================================
# External URLs
# =============================================================================

CINEMETA_BASE: Final = "https://v3-cinemeta.strem.io"
MDBLIST_BASE: Final = "https://mdblist.com/api"


# =============================================================================
# Ratings
# =============================================================================

RATINGS_HEADER: Final = "Ratings"

# (snapshot field, display label) in fixed display order
RATING_FIELDS: Final = (
    ("imdb", "IMDb"),
    ("tmdb", "TMDb"),
    ("trakt", "Trakt"),
    ("letterboxd", "Letterboxd"),
    ("tomato", "Rotten Tomatoes"),
    ("metacritic", "Metacritic"),
)

# Source names used by the list-shaped "ratings" payload
RATING_SOURCE_ALIASES: Final = {
    "imdb": "imdb",
    "tmdb": "tmdb",
    "trakt": "trakt",
    "letterboxd": "letterboxd",
    "tomatoes": "tomato",
    "tomato": "tomato",
    "rottentomatoes": "tomato",
    "metacritic": "metacritic",
}
