"""Structured JSON logging configuration using structlog.

Call ``configure_logging()`` once at application startup in ``api/main.py``
(the Celery worker calls it from ``workers/celery_app.py``).  Modules then
use structlog directly::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("clip.vote_recorded", clip_id=clip.clip_id, status=clip.status)

Plain ``logging.getLogger(__name__)`` records are routed through the same
processor chain, so third-party libraries end up in the same JSON stream.

A ``request_id`` context variable is populated by the request-logging
middleware in ``api/main.py`` and merged into every log record emitted
during that request's lifetime.
"""

from __future__ import annotations

import logging
import logging.config
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, WrappedLogger

# ---------------------------------------------------------------------------
# Request id context variable (written by the HTTP middleware)
# ---------------------------------------------------------------------------

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""Per-request ID propagated from the HTTP middleware to log processors."""


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


_SECRET_SUBSTRINGS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "bearer",
    "authorization",
    "refresh",
    "client_secret",
    "oauth_code",
})
"""Lower-cased substrings that identify log event-dict keys whose values
must be redacted before the record reaches any renderer.

App session tokens and Twitch access/refresh tokens are covered by
``token``."""


def _redact_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace values of secret-bearing keys with a redaction marker.

    Scans top-level keys and nested ``dict`` values one level deep.
    The ``event`` key itself is never redacted.

    Args:
        logger: The wrapped logger instance (unused).
        method_name: The log method name (unused).
        event_dict: Mutable event dictionary being assembled.

    Returns:
        The event dict with sensitive values replaced by ``"[REDACTED]"``.
    """
    redacted = "[REDACTED]"
    for key in list(event_dict.keys()):
        if key == "event":
            continue
        key_lower = key.lower()
        if any(secret in key_lower for secret in _SECRET_SUBSTRINGS):
            event_dict[key] = redacted
            continue
        val = event_dict[key]
        if isinstance(val, dict):
            for nested_key in list(val.keys()):
                if any(secret in str(nested_key).lower() for secret in _SECRET_SUBSTRINGS):
                    val[nested_key] = redacted
    return event_dict


def _inject_request_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Inject the current request ID into the log event dict if set.

    Acts as a fallback for code paths that set the ``ContextVar`` directly
    rather than through structlog's ``bind_contextvars``.
    """
    rid = request_id_var.get()
    if rid is not None and "request_id" not in event_dict:
        event_dict["request_id"] = rid
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog with JSON output for production.

    In production (log_level != ``"DEBUG"``), outputs newline-delimited JSON.
    In development (log_level == ``"DEBUG"``), uses structlog's
    ``ConsoleRenderer`` for human-readable coloured output.

    Standard fields added to every log record: ``timestamp`` (ISO 8601),
    ``level``, ``logger``, ``request_id`` (when inside a request) and
    ``event``.

    Idempotent: calling it again replaces the previous configuration, which
    is what ``create_app()`` relies on after settings are loaded.

    Args:
        log_level: Logging verbosity string.  One of ``"DEBUG"``, ``"INFO"``,
            ``"WARNING"``, ``"ERROR"``, ``"CRITICAL"``.  Case-insensitive.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=True,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Drop handlers from a previous call (tests call this repeatedly).
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    if not is_development:
        for noisy_logger in ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
