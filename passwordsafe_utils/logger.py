"""Logging configuration for passwordsafe-utils.

Modules log through structlog. setup_logging() routes structlog events into
the standard library so both end up in the same handler:
- JSON logging (production): structured logs for log aggregation systems
- Standard logging (development): human-readable logs

Configure via PS_LOG_FORMAT_JSON (default: True).
"""

import logging
import sys

import structlog
from pythonjsonlogger.json import JsonFormatter

from passwordsafe_utils.config import Settings

# LogRecord attributes that are not extra fields
_RESERVED_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter with consistent top-level field names."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        log_record.update({
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_FIELDS and not key.startswith("_")
        })


def configure_structlog() -> None:
    """Send structlog events to the standard library logging module."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def setup_logger(logger: logging.Logger, settings: Settings) -> logging.Logger:
    """Setup a specific logger with JSON or plain formatting."""
    formatter: logging.Formatter
    if settings.log_format_json:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(settings.log_level.upper())
    return logger


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure root logging and structlog, return the package logger.

    Loggers listed in log_exclude_loggers are raised to WARNING so a DEBUG
    level does not dump httpx internals.
    """
    setup_logger(logging.getLogger(), settings)
    configure_structlog()

    for name in settings.log_exclude_loggers.split(","):
        if name.strip():
            logging.getLogger(name.strip()).setLevel(logging.WARNING)

    return logging.getLogger("passwordsafe_utils")
