"""
Structured logging for the Tubely backend.

Two output shapes are supported: one JSON object per line for deployed
environments and a plain text line for local development. Modules obtain
their logger the usual way (``logging.getLogger(__name__)``) and pass
structured fields through ``extra={...}``; the JSON formatter lifts those
fields into an ``extra`` object on each line.

Usage:
    from tubely.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="info", json_logs=True)

    log = add_log_context(logging.getLogger(__name__), video_id=vid, user_id=uid)
    log.info("Upload accepted")
"""

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any


LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries that log chattily at INFO/DEBUG
NOISY_LOGGERS: tuple[str, ...] = (
    "motor",
    "pymongo",
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "asyncio",
    "multipart",
)

UVICORN_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error")


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, set | frozenset):
        return sorted(obj, key=str)
    return str(obj)


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """
    Render each record as a single compact JSON object.

    Output keys: ``timestamp`` (ISO 8601, UTC), ``level``, ``logger``,
    ``message``, then ``exception`` when the record carries exc_info and
    ``extra`` holding every non-standard attribute set on the record.
    """

    # Attributes every LogRecord has; anything else came from ``extra``
    RESERVED_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "thread",
            "threadName",
            "taskName",
        }
    )

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(
                timespec="microseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=_json_default, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """Human-readable single-line format for local development."""

    DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(
            fmt=fmt or self.DEFAULT_FORMAT,
            datefmt=datefmt or self.DEFAULT_DATE_FORMAT,
        )


# =============================================================================
# Setup
# =============================================================================


def get_log_level_from_string(level_str: str) -> int:
    """Map a level name (any case) to its logging constant, INFO if unknown."""
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


def setup_logging(
    log_level: str = "info",
    json_logs: bool = True,
    third_party_level: str = "warning",
) -> None:
    """
    Configure the root logger, uvicorn's loggers and noisy library loggers.

    Call once during application startup. Calling it again replaces the
    previously installed handlers rather than stacking new ones.

    Args:
        log_level: Application log level name.
        json_logs: Emit JSON lines when True, plain text otherwise.
        third_party_level: Level applied to the libraries in NOISY_LOGGERS.
    """
    level = get_log_level_from_string(log_level)

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(include_source_location=level <= logging.DEBUG)
    else:
        formatter = StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    _configure_uvicorn_logging(formatter, level)
    _configure_third_party_loggers(get_log_level_from_string(third_party_level))

    logging.getLogger(__name__).info(
        "Logging configured: level=%s json=%s", logging.getLevelName(level), json_logs
    )


def _configure_uvicorn_logging(formatter: logging.Formatter, level: int) -> None:
    """Route uvicorn's own loggers through the application formatter."""
    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False
        uvicorn_logger.handlers.clear()
        stream = sys.stderr if name == "uvicorn.error" else sys.stdout
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        uvicorn_logger.addHandler(handler)


def _configure_third_party_loggers(level: int) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


# =============================================================================
# Context Enrichment
# =============================================================================


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its context into each call's ``extra``.

    Fields passed explicitly on a call win over the adapter's context.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap ``logger`` so every line it emits carries ``context``.

    The pipeline uses this to stamp ``video_id`` and ``user_id`` on all
    log lines produced while handling one upload.

    Args:
        logger: Logger to wrap.
        **context: Fields added to every record.

    Returns:
        ContextLoggerAdapter: The enriched logger.
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "JSONFormatter",
    "StandardFormatter",
    "ContextLoggerAdapter",
    "setup_logging",
    "add_log_context",
    "get_log_level_from_string",
    "LOG_LEVEL_MAP",
]
