#!/usr/bin/env python3
"""
MDBList Ratings addon v1.0.0

A Stremio-style meta addon that serves Cinemeta metadata with MDBList
ratings prepended to the description.

Endpoints:
    /manifest.json (GET)
        - Static addon manifest (meta resource, movie + series, "tt" ids)

    /meta/{type}/{id}.json (GET)
        - Cinemeta record, enriched with ratings when MDBLIST_API_KEY is set
        - Always {"meta": ...}; meta is null when Cinemeta is unavailable

    /health, /debug, /metrics (GET)
        - Liveness, runtime facts and counters

Environment Variables:
    PORT: Server port (default: 7000)
    LOG_LEVEL: Logging level (default: INFO)
    STRUCTURED_LOGGING: JSON log lines (default: false)
    MDBLIST_API_KEY: MDBList API key; ratings are skipped when unset
    CINEMETA_BASE / MDBLIST_BASE: Upstream base URLs
    UPSTREAM_TIMEOUT: Upstream timeout in seconds (default: 30)
    CACHE_MAX_ENTRIES: Response cache size bound (default: 10000)
    DEBUG_ERRORS: Include tracebacks in error responses (default: false)
"""

import json
import logging
import traceback

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from cache import MemoryCache
from config import Settings
from constants import (
    ADDON_ID,
    ADDON_NAME,
    ADDON_VERSION,
    ADDON_DESCRIPTION,
    ADDON_ID_PREFIXES,
    ContentType,
)
from http_client import CachedFetcher, redact_url
from logging_config import configure_logging, setup_flask_request_id
from meta_resolver import MetaResolver, build_cinemeta_url, build_mdblist_url
from metrics import metrics

logger = logging.getLogger(__name__)

EXAMPLE_ID = "tt0111161"


def build_manifest() -> dict:
    """Addon manifest served at /manifest.json."""
    return {
        "id": ADDON_ID,
        "version": ADDON_VERSION,
        "name": ADDON_NAME,
        "description": ADDON_DESCRIPTION,
        "resources": ["meta"],
        "types": [t.value for t in ContentType],
        "catalogs": [],
        "idPrefixes": list(ADDON_ID_PREFIXES),
        "behaviorHints": {
            "configurable": False,
            "configurationRequired": False,
        },
    }


def build_resolver(settings: Settings) -> MetaResolver:
    """Wire a resolver with its own cache and session from settings."""
    cache = MemoryCache(max_entries=settings.cache_max_entries)
    fetcher = CachedFetcher(cache, timeout=settings.upstream_timeout)
    return MetaResolver(
        fetcher,
        api_key=settings.mdblist_api_key,
        cinemeta_base=settings.cinemeta_base,
        mdblist_base=settings.mdblist_base,
    )


def create_app(settings: Settings = None, resolver: MetaResolver = None) -> Flask:
    """
    Create the Flask app.

    Logging is configured only when settings come from the environment,
    so tests can pass their own Settings without touching log handlers.

    Args:
        settings: Runtime settings, defaults to Settings.from_env()
        resolver: Pre-built resolver, defaults to build_resolver(settings)

    Returns:
        Configured Flask application
    """
    if settings is None:
        settings = Settings.from_env()
        configure_logging(level=settings.log_level, structured=settings.structured_logging)

    resolver = resolver or build_resolver(settings)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["meta_resolver"] = resolver
    setup_flask_request_id(app)

    @app.after_request
    def add_cors_headers(response):
        # Addon clients load from arbitrary origins
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Headers'] = '*'
        return response

    @app.errorhandler(Exception)
    def handle_error(error):
        """Render any escaping error as a JSON payload."""
        if isinstance(error, HTTPException):
            # keep the status and headers (Allow on 405), swap the HTML body for JSON
            response = error.get_response()
            response.set_data(json.dumps({"error": error.description}))
            response.mimetype = "application/json"
            return response

        logger.error(f"Unhandled error: {error}", exc_info=error)
        metrics.inc("handler_errors")
        payload = {"error": str(error) or error.__class__.__name__}
        if settings.debug_errors:
            payload["trace"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return jsonify(payload), 500

    # =========================================================================
    # Addon Endpoints
    # =========================================================================

    @app.route('/manifest.json', methods=['GET'])
    def manifest():
        return jsonify(build_manifest())

    @app.route('/meta/<content_type>/<content_id>.json', methods=['GET'])
    def get_meta(content_type: str, content_id: str):
        """Cinemeta meta record with ratings prepended to the description."""
        logger.info(f"Meta request: {content_type}/{content_id}",
                    extra={'content_type': content_type, 'content_id': content_id})
        result = resolver.resolve(content_type, content_id)
        return jsonify(result.to_dict())

    # =========================================================================
    # Health & Debug Endpoints
    # =========================================================================

    @app.route('/health', methods=['GET'])
    def health_check():
        """Liveness check."""
        return jsonify({"ok": True, "version": ADDON_VERSION})

    @app.route('/debug', methods=['GET'])
    def debug_info():
        """
        Runtime facts for troubleshooting.

        Reports whether ratings are enabled but never the key itself.
        """
        example_ratings_url = None
        if resolver.ratings_enabled:
            example_ratings_url = redact_url(
                build_mdblist_url(resolver.api_key, EXAMPLE_ID, resolver.mdblist_base)
            )

        return jsonify({
            "version": ADDON_VERSION,
            "ratings_enabled": resolver.ratings_enabled,
            "upstreams": {
                "cinemeta": resolver.cinemeta_base,
                "mdblist": resolver.mdblist_base,
            },
            "examples": {
                "manifest": "/manifest.json",
                "meta": f"/meta/movie/{EXAMPLE_ID}.json",
                "cinemeta_url": build_cinemeta_url("movie", EXAMPLE_ID, resolver.cinemeta_base),
                "mdblist_url": example_ratings_url,
            },
            "cache_stats": resolver.fetcher.cache.stats(),
        })

    @app.route('/metrics', methods=['GET'])
    def metrics_endpoint():
        """Return application metrics."""
        return jsonify(metrics.get_stats())

    return app


# =============================================================================
# Main
# =============================================================================

def main() -> None:
    settings = Settings.from_env()
    app = create_app()
    logger.info(f"Starting {ADDON_NAME} v{ADDON_VERSION} on port {settings.port}")
    logger.info(f"MDBList ratings: {'enabled' if settings.ratings_enabled else 'disabled'}")
    logger.info(f"Manifest: http://localhost:{settings.port}/manifest.json")
    app.run(host="0.0.0.0", port=settings.port, debug=False)


if __name__ == "__main__":
    main()
