"""structlog setup shared by the API, the engine and the sweep scheduler.

Events are rendered as one JSON object per line in deployments and as
coloured key=value lines with ``LOG_FORMAT=console``. Context bound with
``bind_context`` (the request id in the middleware, the sweep name in the
scheduler) is merged into every event emitted on the same thread or task.
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

SERVICE_NAME = "subscription-service"


def add_service_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["service"] = SERVICE_NAME
    return event_dict


def drop_debug_events(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Discard debug events unless LOG_LEVEL is DEBUG at emit time."""
    if method_name == "debug" and not debug_enabled():
        raise structlog.DropEvent
    return event_dict


def debug_enabled() -> bool:
    return os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG"


def _processor_chain(numeric_level: int, json_format: bool, include_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if numeric_level > logging.DEBUG:
        chain.append(drop_debug_events)

    if json_format:
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    return chain


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    include_timestamp: bool = True,
) -> None:
    """Route structlog through the stdlib root logger on stdout.

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_format: JSON lines when True, console rendering otherwise
        include_timestamp: Stamp events with a UTC ISO-8601 time
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=_processor_chain(numeric_level, json_format, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_env() -> None:
    """Apply LOG_LEVEL and LOG_FORMAT, as exported by the CLI."""
    configure_logging(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_FORMAT", "json").lower() == "json",
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key/values to every later event in this context.

    Example:
        bind_context(request_id="abc123", sweep="expire_subscriptions")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
