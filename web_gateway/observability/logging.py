"""
Structured Logging Module.

Service components (store adapter, session manager, lifecycle, error
normalizer) log JSON lines through get_logger(). Every line carries the
timestamp, level, component name and the id of the request being served.
The HTTP access log stays on stdlib logging (web_gateway.api.middleware.logging).

Module-level loggers are lazy proxies: they are created at import, before
create_app() has configured anything, and resolve the configuration on
each call.
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor


_configured: bool = False

# bound under this key; structlog.get_logger() reserves "logger"
LOGGER_NAME_KEY = "logger_name"


# =============================================================================
# Request ID Context
# =============================================================================

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def get_request_id() -> Optional[str]:
    """Id of the request being served, None outside a request."""
    return _request_id_var.get()


@contextmanager
def request_id_context(request_id: str) -> Generator[None, None, None]:
    """
    Bind a request id to every log line emitted inside the block.

    The request pipeline wraps each request in one of these.
    """
    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)


# =============================================================================
# Processors
# =============================================================================


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    request_id = get_request_id()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """ISO 8601, UTC."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_fields(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Emit log_level as level and the bound component name as logger."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    if LOGGER_NAME_KEY in event_dict:
        event_dict["logger"] = event_dict.pop(LOGGER_NAME_KEY)
    return event_dict


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    json_output: bool = True,
    force: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Called from create_app(). Repeat calls are no-ops unless force=True.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream; None writes to whatever sys.stdout is at
            emit time.
        json_output: False renders human-readable console lines.
        force: Reconfigure even if already configured.
    """
    global _configured

    if _configured and not force:
        return

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_request_id,
        rename_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    # stdlib loggers (access log, uvicorn) share the level
    logging.basicConfig(stream=stream or sys.stdout)
    logging.getLogger().setLevel(_level_to_int(level))

    _configured = True


def get_logger(name: str) -> structlog.typing.BindableLogger:
    """
    Get a structured logger for a component.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Session created", session_id="abc")
    """
    configure_logging()
    return structlog.get_logger(**{LOGGER_NAME_KEY: name})


def _level_to_int(level: str) -> int:
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
