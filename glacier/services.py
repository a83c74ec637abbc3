"""Registration, initialisation and start-up of long running services."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterator

from glacier import log
from glacier.base import resolve_name, should_load_module, validate_should_load
from glacier.infra import Initializer, Reloadable, Service, Stoppable, settings
from glacier.providers import priority_of


@dataclass(eq=False)
class ServiceEntry:
    """A service together with its diagnostic name."""

    service: Any
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = resolve_name(self.service)


def _run_service(entry: ServiceEntry) -> None:
    try:
        entry.service.start()
    except Exception as exc:
        log.error("[glacier] service %s stopped with error: %s", entry.name, exc)
        return
    if settings.debug:
        log.debug("[glacier] service %s stopped", entry.name)


class ServiceSet:
    """The services of an application, in start order once prepared."""

    def __init__(self) -> None:
        self._entries: list[ServiceEntry] = []

    def __iter__(self) -> Iterator[ServiceEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, *services: Any) -> None:
        """Add services, checking their optional ``should_load`` method."""
        for service in services:
            if isinstance(service, type) or not isinstance(service, Service):
                raise TypeError(f"invalid service {service!r}: a start method is required")
            validate_should_load(service)
        self._entries.extend(ServiceEntry(s) for s in services)

    def prepare(self, container: Any) -> list[ServiceEntry]:
        """Drop services that should not load and sort the rest by priority."""
        selected = [e for e in self._entries if should_load_module(e.service, container)]

        counts: Counter[type] = Counter()
        for entry in selected:
            kind = type(entry.service)
            if counts[kind] and settings.warn:
                log.warning(
                    "[glacier] service %s are loaded more than once: %d",
                    kind.__name__,
                    counts[kind] + 1,
                )
            counts[kind] += 1

        self._entries = sorted(selected, key=lambda e: priority_of(e.service))
        return list(self._entries)

    def register_all(self, container: Any) -> None:
        """Inject dependencies into every service."""
        for entry in self._entries:
            if settings.debug:
                log.debug("[glacier] register service %s", entry.name)
            if not hasattr(entry.service, "__dict__"):
                continue
            try:
                container.autowire(entry.service)
            except Exception as exc:
                raise RuntimeError(
                    f"[glacier] service {type(entry.service).__name__} autowired failed: {exc}"
                ) from exc

    def init_all(self, resolver: Any) -> int:
        """Initialise every service that can be initialised; return how many were."""
        initialized = 0
        for entry in self._entries:
            if not isinstance(entry.service, Initializer):
                continue
            if settings.debug:
                log.debug("[glacier] initialize service %s", entry.name)
            initialized += 1
            try:
                entry.service.init(resolver)
            except Exception as exc:
                raise RuntimeError(
                    f"[glacier] service {entry.name} initialize failed: {exc}"
                ) from exc
        if settings.debug and initialized:
            log.debug("[glacier] all services has been initialized, total %d", initialized)
        return initialized

    def start_all(self, graceful: Any) -> list[threading.Thread]:
        """Hook services into ``graceful`` and start each in its own thread."""
        threads = []
        for entry in self._entries:
            service = entry.service
            if isinstance(service, Stoppable):
                graceful.add_shutdown_handler(service.stop)
            if isinstance(service, Reloadable):
                graceful.add_reload_handler(service.reload)
            if settings.debug:
                log.debug("[glacier] service %s starting ...", entry.name)
            thread = threading.Thread(
                target=_run_service, args=(entry,), name=f"service-{entry.name}", daemon=True
            )
            thread.start()
            threads.append(thread)
        if settings.debug and threads:
            log.debug("[glacier] all services has been started, total %d", len(threads))
        return threads