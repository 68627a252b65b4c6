"""Structured JSON logging setup."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Any

FIELD_RESOURCE_NAMESPACE = "resource_namespace"
FIELD_RESOURCE_NAME = "resource_name"
FIELD_CONTROLLER = "controller"
FIELD_WEBHOOK = "webhook"
FIELD_AGENT = "agent"

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
TIME_KEY = "@timestamp"
MESSAGE_KEY = "message"
CALLER_KEY = "caller"
LEVEL_KEY = "level"

RESOURCE_LOGGER_NAME = "vmoutil.resource"

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_LEVELS_BY_NAME = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_LOGGING_SOURCE = os.path.normcase(logging.__file__)
_THIS_SOURCE = os.path.normcase(__file__)


def _short_caller(pathname: str, lineno: int) -> str:
    directory = os.path.basename(os.path.dirname(pathname))
    name = os.path.basename(pathname)
    return f"{directory}/{name}:{lineno}" if directory else f"{name}:{lineno}"


class JsonFormatter(logging.Formatter):
    """Formats records as single-line JSON objects."""

    def __init__(self, stacktrace_level: int = logging.ERROR) -> None:
        super().__init__()
        self.stacktrace_level = stacktrace_level

    def format(self, record: logging.LogRecord) -> str:
        created = time.localtime(record.created)
        millis = int(record.msecs)
        entry: dict[str, Any] = {
            LEVEL_KEY: _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            TIME_KEY: f"{time.strftime(TIME_FORMAT, created)}.{millis:03d}Z",
        }
        if record.name and record.name != "root":
            entry["logger"] = record.name
        entry[CALLER_KEY] = getattr(record, "caller", None) or _short_caller(
            record.pathname, record.lineno
        )
        entry[MESSAGE_KEY] = record.getMessage()
        for key, value in getattr(record, "fields", {}).items():
            entry[key] = value
        if record.exc_info and record.levelno >= self.stacktrace_level:
            entry["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at the time of emitting."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stderr
        super().emit(record)


class _FieldLogger(logging.LoggerAdapter):
    """Logger carrying structured fields and reporting the caller a few frames up."""

    def __init__(self, logger: logging.Logger, caller_skip: int = 0,
                 fields: dict[str, Any] | None = None) -> None:
        super().__init__(logger, {"fields": dict(fields or {})})
        self.caller_skip = caller_skip

    @property
    def fields(self) -> dict[str, Any]:
        return dict(self.extra["fields"])

    def with_fields(self, **fields: Any) -> "_FieldLogger":
        """Return a logger that adds ``fields`` to every record."""
        merged = {**self.extra["fields"], **fields}
        return _FieldLogger(self.logger, self.caller_skip, merged)

    def _caller(self) -> str | None:
        frame = sys._getframe(1)
        while frame is not None:
            filename = os.path.normcase(frame.f_code.co_filename)
            if filename not in (_LOGGING_SOURCE, _THIS_SOURCE):
                break
            frame = frame.f_back
        for _ in range(self.caller_skip):
            if frame is None or frame.f_back is None:
                break
            frame = frame.f_back
        if frame is None:
            return None
        return _short_caller(frame.f_code.co_filename, frame.f_lineno)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        fields = {**self.extra["fields"], **extra.pop("fields", {})}
        extra["fields"] = fields
        extra.setdefault("caller", self._caller())
        kwargs["extra"] = extra
        return msg, kwargs


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, str):
        try:
            return _LEVELS_BY_NAME[level.lower()]
        except KeyError:
            raise ValueError(f"unknown log level: {level!r}") from None
    return int(level)


def _install_handler(logger: logging.Logger, formatter: logging.Formatter) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, "_vmoutil_handler", False):
            logger.removeHandler(handler)
    handler = _StderrHandler()
    handler._vmoutil_handler = True  # type: ignore[attr-defined]
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def init_logs(development: bool = False, level: int | str | None = None) -> logging.Logger:
    """Configure the root logger to emit JSON, at Info level unless ``level`` is given."""
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    stacktrace_level = logging.WARNING if development else logging.ERROR
    _install_handler(root, JsonFormatter(stacktrace_level))
    return root


def build_logger(caller_skip: int = 0) -> _FieldLogger:
    """Build an Info-level JSON logger that reports the caller ``caller_skip`` frames up."""
    logger = logging.getLogger(RESOURCE_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    _install_handler(logger, JsonFormatter())
    return _FieldLogger(logger, caller_skip)