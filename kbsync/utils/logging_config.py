"""Structured logging for polling and synchronization runs."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from kbsync.models.config import LoggingConfig

# Keys bound on every event emitted while a build is synchronizing
BUILD_CONTEXT_KEYS = ("build_number", "kb_name")

CREDENTIAL_KEY_PATTERNS = ("password", "secret", "token", "credential")


def mask_credentials(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """
    Mask KB server and database credentials passed as log context.

    A key is masked when its name contains one of ``CREDENTIAL_KEY_PATTERNS``.
    Empty values and unsubstituted ``${VAR}`` placeholders are left alone so
    configuration problems stay visible.
    """
    for key, value in event_dict.items():
        if not any(pattern in key.lower() for pattern in CREDENTIAL_KEY_PATTERNS):
            continue
        if isinstance(value, str) and (not value.strip() or value.startswith("${")):
            continue
        if value is not None:
            event_dict[key] = "********"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure structlog on top of the standard library.

    CI jobs keep the default JSON output so build logs can be searched by
    ``build_number`` and event name. Operators running the inspection script
    by hand get the console renderer instead.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs. If False, use console format.
        log_file: Optional path to log file. If None, logs only to stdout.

    Example:
        >>> configure_logging(log_level="DEBUG", json_logs=False)
        >>> log = structlog.stdlib.get_logger()
        >>> log.info("polling_started", kb_name="SalesKB")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Reconfiguring replaces handlers left by an earlier call in the same process
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )

    if log_file:
        # 10MB per file, 5 backups
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ],
        ),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: LoggingConfig, log_level: str | None = None) -> None:
    """Apply the ``logging`` section of the application config, optionally overriding the level."""
    configure_logging(
        log_level=log_level or settings.log_level,
        json_logs=settings.json_logs,
        log_file=settings.log_file,
    )


def bind_build_context(build_number: int, kb_name: str) -> None:
    """Attach the build identity to every log event emitted in this context."""
    structlog.contextvars.bind_contextvars(build_number=build_number, kb_name=kb_name)


def clear_build_context() -> None:
    structlog.contextvars.unbind_contextvars(*BUILD_CONTEXT_KEYS)


@contextmanager
def build_context(build_number: int, kb_name: str) -> Iterator[None]:
    """Bind the build identity for the duration of a ``with`` block."""
    bind_build_context(build_number=build_number, kb_name=kb_name)
    try:
        yield
    finally:
        clear_build_context()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.

    Returns:
        Configured structlog logger
    """
    return structlog.stdlib.get_logger(name)
