"""Shutdown signal handling."""

from __future__ import annotations

import os
import signal
import sys
import threading

if sys.platform == "win32":
    SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT,)
else:
    SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

_installed = False
_lock = threading.Lock()


def setup_signal_handler() -> threading.Event:
    """Register for shutdown signals and return an event set on the first one.

    A second signal terminates the process with exit code 1. Calling this
    more than once raises ``RuntimeError``.
    """
    global _installed
    with _lock:
        if _installed:
            raise RuntimeError("signal handler already set up")
        _installed = True

    stop = threading.Event()

    def _handle(signum, frame):
        if stop.is_set():
            os._exit(1)
        stop.set()

    for sig in SHUTDOWN_SIGNALS:
        signal.signal(sig, _handle)
    return stop