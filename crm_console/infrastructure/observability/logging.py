"""
Structured logging for the console client.

Logs go to stderr so CLI output on stdout stays clean. JSON in production,
key=value console rendering while developing.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

from crm_console.config import settings

# Event keys whose values are replaced before rendering
_SECRET_KEYS = frozenset({"token", "access_token", "authorization"})


def _mask_secrets(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in _SECRET_KEYS & event_dict.keys():
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_output: Force JSON (True) or console (False) rendering; by default
            JSON is used outside development
    """
    if json_output is None:
        json_output = settings.environment != "development"

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _mask_secrets,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level.upper())

    # httpx logs every request at INFO; log_request already covers that
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def _outcome(status_code: int) -> str:
    if status_code == 0:
        return "network_error"
    if status_code >= 500:
        return "server_error"
    if status_code >= 400:
        return "client_error"
    return "ok"


def log_request(method: str, path: str, status_code: int, duration_ms: float, user_id: str = None):
    """
    Record one API call. Failed calls (including transport failures, reported
    with status 0) are logged as warnings.
    """
    outcome = _outcome(status_code)
    fields = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
        "outcome": outcome,
    }
    if user_id:
        fields["user_id"] = user_id

    logger = get_logger("api")
    if outcome == "ok":
        logger.info("API call", **fields)
    else:
        logger.warning("API call failed", **fields)


def log_cache_event(action: str, key: tuple, **extra: Any) -> None:
    """Query cache activity (hit, miss, refetch, set, invalidate) at debug level."""
    get_logger("query_cache").debug("Query cache", action=action, key=list(key), **extra)
