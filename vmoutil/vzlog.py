"""Throttled progress logging for resources being reconciled.

A controller's reconcile method may run many times for one resource change,
and would repeat the same informational messages each time. A
``VerrazzanoLogger`` shows each ``once`` message a single time. It shows each
``progress`` message at most once per frequency interval, 60 seconds by
default. When a new message is logged, the previous one is never shown again.

Loggers live in a ``LogContext`` that is keyed by resource. Each context
holds one logger per component name.

    log = ensure_resource_logger(ResourceConfig(
        name=vmi.name, namespace=vmi.namespace, id=vmi.uid,
        generation=vmi.generation, controller_name="vmi"))
    log.progress("Waiting for OpenSearch to start")

When a resource is fully reconciled, delete its context with
``delete_log_context`` so that a later change starts a fresh session.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from vmoutil.logs import (
    FIELD_CONTROLLER,
    FIELD_RESOURCE_NAME,
    FIELD_RESOURCE_NAMESPACE,
    build_logger,
)

DEFAULT_FREQUENCY_SECS = 60


class SugaredLogger(Protocol):
    """The minimal logger interface a ``VerrazzanoLogger`` writes through."""

    def debug(self, msg: Any) -> Any: ...

    def info(self, msg: Any) -> Any: ...

    def error(self, msg: Any) -> Any: ...


@dataclass
class ResourceConfig:
    """Identifies a resource whose reconciliation is being logged."""

    name: str = ""
    namespace: str = ""
    id: str = ""
    generation: int = 0
    controller_name: str = ""


LOG_CONTEXT_MAP: dict[str, "LogContext"] = {}
_lock = threading.Lock()

_VERB = re.compile(r"%[+#]?v")


def _sprint(args: tuple[Any, ...]) -> str:
    """Join operands, with a space between two neighbours that are not strings."""
    parts: list[str] = []
    previous_is_str = True
    for index, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if index > 0 and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(str(arg))
        previous_is_str = is_str
    return "".join(parts)


def _sprintf(template: str, args: tuple[Any, ...]) -> str:
    """Format a printf-style template, treating ``%v`` like ``%s``."""
    if not args:
        return template
    return _VERB.sub("%s", template) % args


@dataclass
class LogContext:
    """Holds the loggers for one resource and the generation being reconciled."""

    generation: int = 0
    root_logger: Any = None
    logger_map: dict[str, "VerrazzanoLogger"] = field(default_factory=dict)

    def ensure_logger(self, key: str, s_logger: SugaredLogger,
                      base_logger: Any) -> "VerrazzanoLogger":
        """Return the logger for ``key``, creating it if needed.

        The underlying loggers are always replaced so that each call gets a
        clean set of structured fields.
        """
        with _lock:
            log = self.logger_map.get(key)
            if log is None:
                log = VerrazzanoLogger(self)
                self.logger_map[key] = log
            log.s_logger = s_logger
            log.base_logger = base_logger
            if self.root_logger is None:
                self.root_logger = base_logger
            return log


class VerrazzanoLogger:
    """Logger with plain, once-only and periodic progress messages."""

    def __init__(self, context: LogContext, s_logger: SugaredLogger | None = None,
                 base_logger: Any = None) -> None:
        self.context = context
        self.s_logger = s_logger
        self.base_logger = base_logger
        self.frequency_secs = DEFAULT_FREQUENCY_SECS
        self.trash_messages: set[str] = set()
        self._last_msg: str | None = None
        self._last_time: float = 0.0

    @property
    def root_logger(self) -> Any:
        """The root logger of this logger's context."""
        return self.context.root_logger

    def once(self, *args: Any) -> None:
        """Log a message at Info level once only."""
        self._do_log(True, _sprint(args))

    def oncef(self, template: str, *args: Any) -> None:
        """Format a message and log it at Info level once only."""
        self._do_log(True, _sprintf(template, args))

    def progress(self, *args: Any) -> None:
        """Log a message at Info level, at most once per frequency interval."""
        self._do_log(False, _sprint(args))

    def progressf(self, template: str, *args: Any) -> None:
        """Format a message and log it at most once per frequency interval."""
        self._do_log(False, _sprintf(template, args))

    def _do_log(self, once: bool, msg: str) -> None:
        now = time.monotonic()
        if msg in self.trash_messages:
            return
        if once:
            self.trash_messages.add(msg)

        log_now = True
        if self._last_msg is not None:
            if msg == self._last_msg:
                log_now = now >= self._last_time + self.frequency_secs
            else:
                # A new message: the previous one is never shown again.
                self.trash_messages.add(self._last_msg)

        if log_now:
            self.s_logger.info(msg)
            self._last_msg = msg
            self._last_time = now

    def set_frequency(self, secs: int) -> "VerrazzanoLogger":
        """Set the progress logging interval in seconds and return this logger."""
        self.frequency_secs = secs
        return self

    def set_base_logger(self, base_logger: Any) -> None:
        """Use ``base_logger`` both as the base logger and for writing."""
        self.base_logger = base_logger
        self.s_logger = base_logger

    def error_new_err(self, *args: Any) -> RuntimeError:
        """Log an error and return it as an exception."""
        err = RuntimeError(_sprint(args))
        self._log("error", str(err))
        return err

    def errorf_new_err(self, template: str, *args: Any) -> RuntimeError:
        """Format an error, log it and return it as an exception."""
        err = RuntimeError(_sprintf(template, args))
        self._log("error", str(err))
        return err

    def debug(self, *args: Any) -> None:
        """Log at Debug level."""
        self._log("debug", _sprint(args))

    def debugf(self, template: str, *args: Any) -> None:
        """Format and log at Debug level."""
        self._log("debug", _sprintf(template, args))

    def info(self, *args: Any) -> None:
        """Log at Info level."""
        self._log("info", _sprint(args))

    def infof(self, template: str, *args: Any) -> None:
        """Format and log at Info level."""
        self._log("info", _sprintf(template, args))

    def error(self, *args: Any) -> None:
        """Log at Error level."""
        self._log("error", _sprint(args))

    def errorf(self, template: str, *args: Any) -> None:
        """Format and log at Error level."""
        self._log("error", _sprintf(template, args))

    def _log(self, level: str, msg: str) -> None:
        # Keeps the call depth equal to that of the progress methods, so the
        # reported caller is the same for every public method.
        getattr(self.s_logger, level)(msg)


def ensure_context(key: str) -> LogContext:
    """Return the log context for ``key``, creating it if needed."""
    with _lock:
        context = LOG_CONTEXT_MAP.get(key)
        if context is None:
            context = LogContext()
            LOG_CONTEXT_MAP[key] = context
        return context


def delete_log_context(key: str) -> None:
    """Delete the log context for ``key`` if there is one."""
    with _lock:
        LOG_CONTEXT_MAP.pop(key, None)


def default_logger() -> VerrazzanoLogger:
    """Return the default logger, writing through the ``vmoutil`` logger."""
    base = logging.getLogger("vmoutil")
    return ensure_context("default").ensure_logger("default", base, base)


def ensure_resource_logger(config: ResourceConfig) -> VerrazzanoLogger:
    """Return the logger for one generation of a resource.

    The same context is reused while the generation stays the same, so that
    once and progress messages are not repeated. A new generation gets a
    fresh context.
    """
    try:
        base = build_logger(2)
    except Exception as exc:
        raise RuntimeError("Failed initializing logger for controller") from exc

    base = base.with_fields(**{
        FIELD_RESOURCE_NAMESPACE: config.namespace,
        FIELD_RESOURCE_NAME: config.name,
        FIELD_CONTROLLER: config.controller_name,
    })

    context = ensure_context(config.id)
    if context.generation != 0 and context.generation != config.generation:
        delete_log_context(config.id)
        context = ensure_context(config.id)
    context.generation = config.generation
    context.root_logger = base

    return context.ensure_logger("default", base, base)