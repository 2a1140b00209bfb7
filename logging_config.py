"""
Logging setup for the addon.

Log lines carry the current request ID. JSON output is used when
STRUCTURED_LOGGING is on, a plain single-line format otherwise. Each meta
request ends with one completion line naming the content it asked for.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

request_id_var: ContextVar[str] = ContextVar('request_id', default='system')

# Record attributes copied into JSON log lines when present
EXTRA_FIELDS = (
    'content_type', 'content_id', 'upstream', 'cache_hit',
    'status_code', 'duration_ms', 'endpoint', 'method',
)

NOISY_LOGGERS = ("urllib3", "requests", "werkzeug")


def get_request_id() -> str:
    """Current request ID, or 'system' outside a request."""
    return request_id_var.get()


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per log line.

    {"timestamp": "...", "level": "INFO", "request_id": "abc123", "message": "...", "content_id": "tt0111161"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": get_request_id(),
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """``INFO     [abc123] Message``, without the prefix outside requests."""

    def format(self, record: logging.LogRecord) -> str:
        request_id = get_request_id()
        prefix = f"[{request_id}] " if request_id != 'system' else ""
        message = record.getMessage()
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"
        return f"{record.levelname:8} {prefix}{message}"


def configure_logging(level: str = "INFO", structured: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        structured: Emit JSON lines instead of plain text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if structured else HumanFormatter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_flask_request_id(app) -> None:
    """
    Tag every request with an ID and log its completion.

    The ID comes from the X-Request-ID header when the client sends one.
    Meta requests add their content type and id to the completion line.
    """
    from flask import request, g

    @app.before_request
    def inject_request_id():
        g.request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex[:8]
        request_id_var.set(g.request_id)
        g.request_start = time.perf_counter()

    @app.after_request
    def log_request(response):
        start = g.get('request_start')
        duration_ms = (time.perf_counter() - start) * 1000 if start is not None else 0.0

        extra = {
            'method': request.method,
            'endpoint': request.path,
            'status_code': response.status_code,
            'duration_ms': round(duration_ms, 2),
        }
        view_args = request.view_args or {}
        if 'content_id' in view_args:
            extra['content_type'] = view_args.get('content_type')
            extra['content_id'] = view_args['content_id']

        logging.getLogger('http').info(
            f"{request.method} {request.path} -> {response.status_code} ({duration_ms:.0f}ms)",
            extra=extra,
        )
        response.headers['X-Request-ID'] = g.get('request_id', get_request_id())
        return response
