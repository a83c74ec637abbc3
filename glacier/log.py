"""Default logger and module-level logging shortcuts."""

from __future__ import annotations

import sys
import threading
import time
from enum import IntEnum
from typing import Any, Iterable, TextIO


class Level(IntEnum):
    """Log severity."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


def _render(message: Any, args: tuple[Any, ...]) -> str:
    text = str(message)
    if not args:
        return text
    try:
        return text % args
    except (TypeError, ValueError):
        return " ".join([text, *map(str, args)])


class StdLogger:
    """Writes timestamped lines to a stream, hiding selected levels."""

    def __init__(self, hidden: Iterable[Level] = (), stream: TextIO | None = None) -> None:
        self.hidden = frozenset(hidden)
        self._stream = stream

    def _emit(self, level: Level, message: Any, args: tuple[Any, ...]) -> None:
        if level in self.hidden:
            return
        stream = self._stream if self._stream is not None else sys.stderr
        stamp = time.strftime("%Y/%m/%d %H:%M:%S")
        stream.write(f"{stamp} [{level.name}] {_render(message, args)}\n")
        stream.flush()

    def debug(self, message: Any, *args: Any) -> None:
        self._emit(Level.DEBUG, message, args)

    def info(self, message: Any, *args: Any) -> None:
        self._emit(Level.INFO, message, args)

    def warning(self, message: Any, *args: Any) -> None:
        self._emit(Level.WARNING, message, args)

    def error(self, message: Any, *args: Any) -> None:
        self._emit(Level.ERROR, message, args)

    def critical(self, message: Any, *args: Any) -> None:
        """Log the message and terminate the process with status 1."""
        self._emit(Level.CRITICAL, message, args)
        raise SystemExit(1)


def std_logger(*hide_levels: Level) -> StdLogger:
    """Create a logger writing to standard error."""
    return StdLogger(hide_levels)


_lock = threading.RLock()
_default_logger: Any = std_logger()


def set_default_logger(logger: Any) -> None:
    """Replace the logger used by the module-level functions."""
    global _default_logger
    with _lock:
        _default_logger = logger


def default() -> Any:
    """Return the current default logger."""
    with _lock:
        return _default_logger


def debug(message: Any, *args: Any) -> None:
    default().debug(message, *args)


def info(message: Any, *args: Any) -> None:
    default().info(message, *args)


def warning(message: Any, *args: Any) -> None:
    default().warning(message, *args)


def error(message: Any, *args: Any) -> None:
    default().error(message, *args)


def critical(message: Any, *args: Any) -> None:
    default().critical(message, *args)