"""Graceful reload and shutdown driven by process signals."""

from __future__ import annotations

import inspect
import queue
import signal
import sys
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable

from glacier import log
from glacier.infra import settings

SignalHandler = Callable[["queue.Queue[Any]", list], None]


@dataclass(frozen=True)
class Handler:
    """A registered callback and the place it was registered from."""

    handler: Callable[[], Any]
    package_path: str = ""
    filename: str = ""
    line: int = 0

    def __str__(self) -> str:
        return f"{self.package_path}({self.filename}:{self.line})"


def _seconds(value: timedelta | float | int) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _capture(fn: Callable[[], Any]) -> Handler:
    """Wrap ``fn`` with the location of whoever called the add_* method."""
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame is not None and frame.f_back is not None else None
    if caller is None:
        return Handler(fn)
    code = caller.f_code
    module = inspect.getmodulename(code.co_filename) or ""
    package_path = f"{module}.{code.co_name}" if module else code.co_name
    return Handler(
        fn,
        package_path=package_path,
        filename=code.co_filename,
        line=caller.f_lineno,
    )


def _notify(channel: "queue.Queue[Any]", signals: list) -> None:
    """Forward the given OS signals into ``channel``."""

    def forward(signum: int, _frame: Any) -> None:
        channel.put(signal.Signals(signum))

    for sig in signals:
        try:
            signal.signal(sig, forward)
        except (ValueError, OSError) as exc:
            if settings.warn:
                log.warning("[glacier] can not listen for signal %s: %s", sig, exc)


class GracefulManager:
    """Runs reload handlers on reload signals and shutdown handlers on exit."""

    def __init__(
        self,
        reload_signals: Iterable[Any],
        shutdown_signals: Iterable[Any],
        handler_timeout: timedelta | float,
        signal_handler: SignalHandler,
    ) -> None:
        self.reload_signals = list(reload_signals)
        self.shutdown_signals = list(shutdown_signals)
        self.handler_timeout = _seconds(handler_timeout)
        self._signal_handler = signal_handler
        self._signals: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._reload_handlers: list[Handler] = []
        self._shutdown_handlers: list[Handler] = []
        self._pre_shutdown_handlers: list[Handler] = []

    def add_reload_handler(self, handler: Callable[[], Any]) -> None:
        entry = _capture(handler)
        with self._lock:
            self._reload_handlers.append(entry)

    def add_shutdown_handler(self, handler: Callable[[], Any]) -> None:
        entry = _capture(handler)
        with self._lock:
            self._shutdown_handlers.append(entry)

    def add_pre_shutdown_handler(self, handler: Callable[[], Any]) -> None:
        """Register a handler run, in order and without time limit, before shutdown handlers."""
        entry = _capture(handler)
        with self._lock:
            self._pre_shutdown_handlers.append(entry)

    def reload(self) -> None:
        """Run the reload handlers in the background."""
        if settings.debug:
            log.debug("[glacier] graceful reloading...")
        threading.Thread(target=self._reload, name="glacier-reload", daemon=True).start()

    def shutdown(self) -> None:
        """Ask the running ``start`` loop to shut down."""
        if settings.debug:
            log.debug("[glacier] graceful closing...")
        self._signals.put(signal.SIGINT)

    def start(self) -> None:
        """Wait for signals, reloading on reload signals, until a shutdown signal."""
        self._signal_handler(self._signals, [*self.reload_signals, *self.shutdown_signals])
        while True:
            sig = self._signals.get()
            if sig in self.shutdown_signals:
                if settings.warn:
                    log.warning("[glacier] shutdown signal received: %s", sig)
                break
            if sig in self.reload_signals:
                if settings.warn:
                    log.warning("[glacier] reload signal received: %s", sig)
                self._reload()
        self._shutdown()

    def _shutdown(self) -> None:
        with self._run_lock:
            started = time.monotonic()
            with self._lock:
                pre = list(self._pre_shutdown_handlers)
                handlers = list(self._shutdown_handlers)
            for entry in pre:
                if settings.debug:
                    log.debug("[glacier] pre shutdown handler: %s", entry)
                entry.handler()
            self._run_concurrently(handlers, "shutdown", started)

    def _reload(self) -> None:
        with self._run_lock:
            started = time.monotonic()
            with self._lock:
                handlers = list(self._reload_handlers)
            self._run_concurrently(handlers, "reload", started)

    def _run_concurrently(self, handlers: list[Handler], kind: str, started: float) -> None:
        running = []
        for entry in reversed(handlers):
            thread = threading.Thread(
                target=self._invoke, args=(entry, kind), name=f"glacier-{kind}", daemon=True
            )
            thread.start()
            running.append((entry, thread))

        deadline = started + self.handler_timeout
        for _, thread in running:
            thread.join(max(0.0, deadline - time.monotonic()))

        pending = [entry for entry, thread in running if thread.is_alive()]
        elapsed = time.monotonic() - started
        if not pending:
            if settings.debug:
                log.debug("[glacier] all %s handlers executed, took %.3fs", kind, elapsed)
            return
        log.error("[glacier] executing %s handlers timed out, took %.3fs", kind, elapsed)
        for entry in pending:
            log.error("[glacier] %s handler [%s] may not finished", kind, entry)

    @staticmethod
    def _invoke(entry: Handler, kind: str) -> None:
        started = time.monotonic()
        if settings.debug:
            log.debug("[glacier] executing %s handler [%s]", kind, entry)
        try:
            entry.handler()
        except Exception as exc:
            log.error("[glacier] executing %s handler [%s] failed: %s", kind, entry, exc)
        if settings.debug:
            log.debug(
                "[glacier] %s handler [%s] finished, took %.3fs",
                kind,
                entry,
                time.monotonic() - started,
            )


def new_with_signal(
    reload_signals: Iterable[Any],
    shutdown_signals: Iterable[Any],
    handler_timeout: timedelta | float,
) -> GracefulManager:
    """Create a manager that listens for the given OS signals."""
    return GracefulManager(reload_signals, shutdown_signals, handler_timeout, _notify)


def new_with_default(handler_timeout: timedelta | float) -> GracefulManager:
    """Create a manager with the platform's usual reload and shutdown signals."""
    if sys.platform == "win32":
        return new_with_signal([], [signal.SIGINT], handler_timeout)
    return new_with_signal(
        [signal.SIGUSR2],
        [signal.SIGINT, signal.SIGTERM, signal.SIGINT, signal.SIGHUP, signal.SIGQUIT],
        handler_timeout,
    )