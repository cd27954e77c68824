"""Structured logging for the chat client.

Log entries go to stderr, as JSON lines or colored console output, so the
transcript printed on stdout stays readable. Each turn gets a correlation
ID that is bound into every log entry and sent to the relay as
``X-Request-ID``; poll loops bind the conversation and run they work on.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import TextIO

import structlog

from map_assistant.platform.settings import LoggingSettings

# read by the relay client's request hook
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

QUIET_LOGGERS = ("httpx", "httpcore")


def start_turn() -> str:
    """Start a new correlation scope for one user turn.

    Returns:
        The new correlation ID.
    """
    correlation_id = uuid.uuid4().hex
    correlation_id_ctx.set(correlation_id)
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    return correlation_id


def bind_run(conversation_id: str, run_id: str) -> None:
    """Tag subsequent log entries in this context with the run being polled."""
    structlog.contextvars.bind_contextvars(conversation_id=conversation_id, run_id=run_id)


def configure_logging(settings: LoggingSettings, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        settings: Level and output format.
        stream: Where entries are written; stderr by default.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_json:
        renderers: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=stream is None and sys.stderr.isatty())]

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
