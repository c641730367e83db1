"""
Structured logging for the Tubely backend.

- JSONFormatter: one JSON object per record, including `extra` fields
- StandardFormatter: human-readable lines for local development
- setup_logging: configure root, uvicorn and third-party loggers once at startup
- add_log_context: wrap a logger so every record carries fixed context fields
- request_id_var / RequestIdFilter: stamp records with the current request ID

Usage:
    from tubely.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="info", json_logs=True)

    logger = logging.getLogger(__name__)
    ctx_logger = add_log_context(logger, video_id=str(video_id))
    ctx_logger.info("Publishing")
"""

import json
import logging
import sys
import traceback

from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any


LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Quietened to third_party_level by setup_logging
THIRD_PARTY_LOGGERS: list[str] = [
    "motor",
    "pymongo",
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "multipart",
    "asyncio",
]

UVICORN_LOGGERS: list[str] = ["uvicorn", "uvicorn.access", "uvicorn.error"]

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class LogJSONEncoder(json.JSONEncoder):
    """Falls back to str() for anything json cannot encode natively."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return f"<{len(obj)} bytes>"
        if isinstance(obj, set | frozenset):
            return sorted(obj, key=str)
        return str(obj)


class RequestIdFilter(logging.Filter):
    """Attach the current request ID (if any) to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            request_id = request_id_var.get()
            if request_id is not None:
                record.request_id = request_id
        return True


class JSONFormatter(logging.Formatter):
    """
    Format records as compact JSON.

    Example output:
        {"timestamp":"2024-01-15T10:30:45.123456+00:00","level":"INFO",
         "logger":"tubely.services.ingestion","message":"Published video",
         "extra":{"video_id":"...","key":"landscape/..."}}
    """

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

        if record.stack_info:
            entry["stack_info"] = record.stack_info

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, cls=LogJSONEncoder, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """[TIMESTAMP] LEVEL logger_name: message"""

    DEFAULT_FORMAT: str = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt or self.DEFAULT_FORMAT, datefmt=datefmt or self.DEFAULT_DATE_FORMAT)


def get_log_level_from_string(level_str: str) -> int:
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


def _build_handler(stream: Any, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    return handler


def setup_logging(
    log_level: str = "info",
    json_logs: bool = True,
    third_party_level: str = "warning",
) -> None:
    """
    Configure application-wide logging.

    Call once at startup. Replaces any handlers already on the root and
    uvicorn loggers, so calling it again does not duplicate output.

    Args:
        log_level: Application log level name (case-insensitive).
        json_logs: JSON output if True, plain text otherwise.
        third_party_level: Level applied to the noisy library loggers.
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
    root_logger.addHandler(_build_handler(sys.stdout, formatter))

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False
        uvicorn_logger.handlers.clear()
        stream = sys.stderr if name == "uvicorn.error" else sys.stdout
        uvicorn_logger.addHandler(_build_handler(stream, formatter))

    library_level = get_log_level_from_string(third_party_level)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s json=%s", logging.getLevelName(level), json_logs
    )


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call `extra` instead of replacing it."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap logger so every record carries the given context fields.

    Example:
        ctx_logger = add_log_context(logger, video_id=str(video_id), user_id=str(user_id))
        ctx_logger.info("Probing", extra={"size": upload.size})
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "ContextLoggerAdapter",
    "JSONFormatter",
    "LOG_LEVEL_MAP",
    "RequestIdFilter",
    "StandardFormatter",
    "add_log_context",
    "get_log_level_from_string",
    "request_id_var",
    "setup_logging",
]
