"""
Runtime configuration for the addon.

All settings come from environment variables and are read once into an
immutable Settings object. The ratings API key is optional: when it is
missing the addon still serves plain Cinemeta metadata.
"""

import os
from dataclasses import dataclass
from typing import Optional

from constants import (
    CINEMETA_BASE,
    MDBLIST_BASE,
    MAX_CACHE_ENTRIES,
    DEFAULT_UPSTREAM_TIMEOUT,
    _get_bool_env,
    _get_int_env,
    _get_float_env,
)


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime settings.

    Frozen so a Settings instance can be shared between the app, the
    resolver and request handlers without copying.
    """
    mdblist_api_key: Optional[str] = None
    cinemeta_base: str = CINEMETA_BASE
    mdblist_base: str = MDBLIST_BASE
    port: int = 7000
    log_level: str = "INFO"
    structured_logging: bool = False
    upstream_timeout: Optional[float] = DEFAULT_UPSTREAM_TIMEOUT
    cache_max_entries: int = MAX_CACHE_ENTRIES
    debug_errors: bool = False

    @property
    def ratings_enabled(self) -> bool:
        """True when a ratings API key is configured."""
        return bool(self.mdblist_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.

        Blank values are treated the same as unset ones.

        Returns:
            Settings populated from environment variables
        """
        return cls(
            mdblist_api_key=os.environ.get("MDBLIST_API_KEY", "").strip() or None,
            cinemeta_base=(os.environ.get("CINEMETA_BASE") or CINEMETA_BASE).rstrip("/"),
            mdblist_base=(os.environ.get("MDBLIST_BASE") or MDBLIST_BASE).rstrip("/"),
            port=_get_int_env("PORT", 7000),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            structured_logging=_get_bool_env("STRUCTURED_LOGGING", False),
            upstream_timeout=_get_float_env("UPSTREAM_TIMEOUT", DEFAULT_UPSTREAM_TIMEOUT),
            cache_max_entries=_get_int_env("CACHE_MAX_ENTRIES", MAX_CACHE_ENTRIES),
            debug_errors=_get_bool_env("DEBUG_ERRORS", False),
        )
