"""structlog setup shared by the CLI and the health service.

Every record goes through the stdlib root handler, so uvicorn and httpx output is rendered
(and scrubbed of helpdesk API keys) the same way as the portal's own events.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

from helpdesk_portal.config.redact import redact_settings_dict

if TYPE_CHECKING:
    from helpdesk_portal.config.settings import ObservabilitySettings

SERVICE_NAME = "helpdesk-portal"

_FORMATS = frozenset({"json", "human"})
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# Both log one line per helpdesk request at INFO/DEBUG.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _scrub_event_dict(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return redact_settings_dict(event_dict)


def _add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _pick_format(log_format: str | None, json_logs: bool) -> str:
    for candidate in (log_format, os.environ.get("LOG_FORMAT")):
        normalized = (candidate or "").strip().lower()
        if normalized in _FORMATS:
            return normalized
    return "json" if json_logs else "human"


def configure_logging(
    *,
    log_level: str = "INFO",
    json_logs: bool = False,
    log_format: str | None = None,
) -> None:
    """
    Route structlog through stdlib logging with a single stdout handler.

    `log_format` wins over the LOG_FORMAT env var, which wins over `json_logs`. LOG_LEVEL in
    the environment overrides `log_level`.
    """
    level = ((os.environ.get("LOG_LEVEL") or "").strip() or log_level).upper()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _scrub_event_dict,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: Any
    if _pick_format(log_format, json_logs) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    handler = logging.StreamHandler(sys.stdout)
    formatter = ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_from_settings(observability: ObservabilitySettings) -> None:
    configure_logging(
        log_level=observability.log_level,
        json_logs=observability.json_logs,
        log_format=observability.log_format,
    )
