"""Registration, ordering, booting and daemons of service providers."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterator

from glacier import log
from glacier.base import resolve_name, should_load_module, validate_should_load
from glacier.infra import (
    DaemonProvider,
    Priority,
    Provider,
    ProviderAggregate,
    ProviderBoot,
    settings,
)

DEFAULT_PRIORITY = 1000


def priority_of(item: Any) -> int:
    """Load priority of a provider or service; smaller loads first."""
    if not isinstance(item, type) and isinstance(item, Priority):
        return int(item.priority())
    return DEFAULT_PRIORITY


@dataclass(eq=False)
class ProviderEntry:
    """A provider together with its diagnostic name."""

    provider: Any
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = resolve_name(self.provider)


def resolve_provider_aggregate(entry: ProviderEntry) -> list[ProviderEntry]:
    """Providers an aggregate brings along, each preceded by its own aggregates."""
    result: list[ProviderEntry] = []
    if isinstance(entry.provider, ProviderAggregate):
        for child in entry.provider.aggregates():
            child_entry = ProviderEntry(child)
            result.extend(resolve_provider_aggregate(child_entry))
            result.append(child_entry)
    return result


def _run_daemon(entry: ProviderEntry, ctx: Any, resolver: Any) -> None:
    try:
        entry.provider.daemon(ctx, resolver)
    except Exception as exc:
        log.error("[glacier] daemon provider %s failed: %s", entry.name, exc)
        return
    if settings.debug:
        log.debug("[glacier] daemon provider %s has been stopped", entry.name)


class ProviderSet:
    """The providers of an application, in load order once prepared."""

    def __init__(self) -> None:
        self._entries: list[ProviderEntry] = []

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, *providers: Any) -> None:
        """Add providers, checking their optional ``should_load`` method."""
        for provider in providers:
            if isinstance(provider, type) or not isinstance(provider, Provider):
                raise TypeError(f"invalid provider {provider!r}: a register method is required")
            validate_should_load(provider)
        self._entries.extend(ProviderEntry(p) for p in providers)

    def prepare(self, container: Any) -> list[ProviderEntry]:
        """Drop providers that should not load, expand aggregates and sort by priority."""
        selected: list[ProviderEntry] = []
        for entry in self._entries:
            if not should_load_module(entry.provider, container):
                if settings.debug:
                    log.debug(
                        "[glacier] provider %s is ignored because should_load()=false", entry.name
                    )
                continue
            selected.extend(resolve_provider_aggregate(entry))
            selected.append(entry)

        counts: Counter[type] = Counter()
        for entry in selected:
            kind = type(entry.provider)
            if counts[kind] and settings.warn:
                log.warning(
                    "[glacier] provider %s.%s are loaded more than once: %d",
                    kind.__module__,
                    kind.__qualname__,
                    counts[kind] + 1,
                )
            counts[kind] += 1

        self._entries = sorted(selected, key=lambda e: priority_of(e.provider))
        return list(self._entries)

    def register_all(self, binder: Any) -> None:
        """Call every provider's ``register`` in load order."""
        for entry in self._entries:
            if settings.debug:
                log.debug("[glacier] register provider %s", entry.name)
            entry.provider.register(binder)
        if settings.debug and self._entries:
            log.debug("[glacier] all providers registered, total %d", len(self._entries))

    def boot_all(self, container: Any) -> int:
        """Autowire every provider and boot those that can boot; return how many booted."""
        booted = 0
        for entry in self._entries:
            provider = entry.provider
            if hasattr(provider, "__dict__"):
                try:
                    container.autowire(provider)
                except Exception as exc:
                    raise RuntimeError(f"[glacier] can not autowire provider: {exc}") from exc
            if isinstance(provider, ProviderBoot):
                if settings.debug:
                    log.debug("[glacier] booting provider %s", entry.name)
                booted += 1
                provider.boot(container)
        if settings.debug and booted:
            log.debug("[glacier] all providers has been booted, total %d", booted)
        return booted

    def start_daemons(self, ctx: Any, resolver: Any) -> list[threading.Thread]:
        """Run each daemon provider in its own thread and return the threads."""
        threads = []
        for entry in self._entries:
            if not isinstance(entry.provider, DaemonProvider):
                continue
            if settings.debug:
                log.debug("[glacier] daemon provider %s starting ...", entry.name)
            thread = threading.Thread(
                target=_run_daemon,
                args=(entry, ctx, resolver),
                name=f"daemon-{entry.name}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        if settings.debug and threads:
            log.debug("[glacier] all daemon providers has been started, total %d", len(threads))
        return threads