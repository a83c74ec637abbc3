"""Shared settings and the interfaces that framework components implement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

VERSION_KEY = "version"
STARTUP_TIME_KEY = "startup_time"


@dataclass
class Settings:
    """Process-wide switches for framework diagnostics."""

    debug: bool = False
    warn: bool = True
    print_graph: bool = False


settings = Settings()


@runtime_checkable
class Graceful(Protocol):
    """Coordinates reload and shutdown handlers driven by signals."""

    def add_reload_handler(self, handler: Any) -> None: ...

    def add_shutdown_handler(self, handler: Any) -> None: ...

    def add_pre_shutdown_handler(self, handler: Any) -> None: ...

    def reload(self) -> None: ...

    def shutdown(self) -> None: ...

    def start(self) -> None: ...


@runtime_checkable
class Service(Protocol):
    """A long running service."""

    def start(self) -> None: ...


@runtime_checkable
class Initializer(Protocol):
    """A service that needs initialising before it starts."""

    def init(self, resolver: Any) -> None: ...


@runtime_checkable
class Stoppable(Protocol):
    """A service that can be stopped."""

    def stop(self) -> None: ...


@runtime_checkable
class Reloadable(Protocol):
    """A service that can be reloaded."""

    def reload(self) -> None: ...


@runtime_checkable
class Nameable(Protocol):
    """Anything that reports its own name."""

    def name(self) -> str: ...


@runtime_checkable
class Provider(Protocol):
    """A module that registers bindings in the container."""

    def register(self, binder: Any) -> None: ...


@runtime_checkable
class Priority(Protocol):
    """Load order: smaller values load first."""

    def priority(self) -> int: ...


@runtime_checkable
class ProviderBoot(Protocol):
    """A provider that boots after every provider has registered."""

    def boot(self, resolver: Any) -> None: ...


@runtime_checkable
class DaemonProvider(Provider, Protocol):
    """A provider that runs a background task after booting."""

    def daemon(self, ctx: Any, resolver: Any) -> None: ...


@runtime_checkable
class ProviderAggregate(Protocol):
    """A provider that brings other providers along with it."""

    def aggregates(self) -> list: ...


@runtime_checkable
class ListenerBuilder(Protocol):
    """Creates a listening socket."""

    def build(self, resolver: Any) -> Any: ...


@runtime_checkable
class Logger(Protocol):
    """Logging interface; critical() terminates the application."""

    def debug(self, message: Any, *args: Any) -> None: ...

    def info(self, message: Any, *args: Any) -> None: ...

    def warning(self, message: Any, *args: Any) -> None: ...

    def error(self, message: Any, *args: Any) -> None: ...

    def critical(self, message: Any, *args: Any) -> None: ...


@runtime_checkable
class Hook(Protocol):
    """Registers functions run once the server is ready."""

    def on_server_ready(self, *funcs: Any) -> None: ...