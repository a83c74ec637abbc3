import threading

import pytest

from glacier import log
from glacier.container import Container
from glacier.flags import FlagContext
from glacier.providers import (
    ProviderEntry,
    ProviderSet,
    priority_of,
    resolve_provider_aggregate,
)


class Recorder:
    pass


class Recorded:
    def __init__(self, journal, label):
        self.journal = journal
        self.label = label

    def register(self, binder):
        self.journal.append(("register", self.label, binder))


class Prioritized(Recorded):
    def __init__(self, journal, label, value):
        super().__init__(journal, label)
        self.value = value

    def priority(self):
        return self.value


class Grouped(Recorded):
    def __init__(self, journal, label, children):
        super().__init__(journal, label)
        self.children = children

    def aggregates(self):
        return self.children


class Bootable(Recorded):
    def boot(self, resolver):
        self.journal.append(("boot", self.label, resolver))


class Daemonic(Recorded):
    def daemon(self, ctx, resolver):
        ctx.wait(5)
        self.journal.append(("daemon", self.label))


class BrokenDaemon(Recorded):
    def daemon(self, ctx, resolver):
        raise ValueError("daemon exploded")


class Optional(Recorded):
    def should_load(self, flags: FlagContext) -> bool:
        return flags.bool("load")


class BadShouldLoad(Recorded):
    def should_load(self) -> str:
        return "yes"


class Named(Recorded):
    def name(self):
        return self.label


class Wired:
    recorder: Recorder

    def __init__(self):
        self.recorder = None

    def register(self, binder):
        pass


class RecordingLogger:
    def __init__(self):
        self.records = []

    def _add(self, level, message, args):
        self.records.append((level, message % args if args else str(message)))

    def debug(self, message, *args):
        self._add("debug", message, args)

    def info(self, message, *args):
        self._add("info", message, args)

    def warning(self, message, *args):
        self._add("warning", message, args)

    def error(self, message, *args):
        self._add("error", message, args)

    def critical(self, message, *args):
        self._add("critical", message, args)


@pytest.fixture
def logger():
    previous = log.default()
    recorder = RecordingLogger()
    log.set_default_logger(recorder)
    yield recorder
    log.set_default_logger(previous)


def make_container(load=True):
    cc = Container()
    cc.singleton(FlagContext({"load": load}))
    cc.singleton(Recorder())
    return cc


def labels(entries):
    return [e.provider.label for e in entries]


def test_priority_of_defaults_and_custom():
    journal = []
    assert priority_of(Recorded(journal, "x")) == 1000
    assert priority_of(Prioritized(journal, "y", -1)) == -1


def test_entry_name_prefers_name_method():
    journal = []
    assert ProviderEntry(Named(journal, "custom-name")).name == "custom-name"
    assert "Recorded" in ProviderEntry(Recorded(journal, "x")).name


def test_resolve_aggregate_order():
    journal = []
    c = Recorded(journal, "c")
    b = Grouped(journal, "b", [c])
    d = Recorded(journal, "d")
    a = Grouped(journal, "a", [b, d])
    result = [e.provider for e in resolve_provider_aggregate(ProviderEntry(a))]
    assert result == [c, b, d]
    assert resolve_provider_aggregate(ProviderEntry(d)) == []


def test_prepare_expands_and_sorts_stably():
    journal = []
    providers = ProviderSet()
    providers.add(
        Recorded(journal, "x"),
        Prioritized(journal, "y", 5),
        Recorded(journal, "z"),
        Grouped(journal, "g", [Recorded(journal, "inner")]),
    )
    prepared = providers.prepare(make_container())
    assert labels(prepared) == ["y", "x", "z", "inner", "g"]
    assert labels(providers) == labels(prepared)
    assert len(providers) == 5


def test_prepare_drops_providers_that_should_not_load():
    journal = []
    providers = ProviderSet()
    providers.add(Optional(journal, "opt"), Recorded(journal, "keep"))
    assert labels(providers.prepare(make_container(load=False))) == ["keep"]

    providers = ProviderSet()
    providers.add(Optional(journal, "opt"))
    assert labels(providers.prepare(make_container(load=True))) == ["opt"]


def test_add_rejects_invalid_providers():
    providers = ProviderSet()
    with pytest.raises(TypeError):
        providers.add(BadShouldLoad([], "bad"))
    with pytest.raises(TypeError):
        providers.add(object())
    assert len(providers) == 0


def test_duplicate_provider_types_warn(logger):
    journal = []
    providers = ProviderSet()
    providers.add(Recorded(journal, "one"), Recorded(journal, "two"))
    providers.prepare(make_container())
    warnings = [msg for level, msg in logger.records if level == "warning"]
    assert any("more than once" in msg for msg in warnings)


def test_register_all_in_order():
    journal = []
    providers = ProviderSet()
    providers.add(Recorded(journal, "x"), Prioritized(journal, "y", 0))
    container = make_container()
    providers.prepare(container)
    providers.register_all(container)
    assert [(kind, label) for kind, label, _ in journal] == [
        ("register", "y"),
        ("register", "x"),
    ]
    assert all(binder is container for _, _, binder in journal)


def test_boot_all_autowires_and_boots():
    journal = []
    wired = Wired()
    providers = ProviderSet()
    providers.add(Bootable(journal, "b"), Recorded(journal, "r"), wired)
    container = make_container()
    providers.prepare(container)
    assert providers.boot_all(container) == 1
    assert wired.recorder is container.get(Recorder)
    assert [(k, label) for k, label, _ in journal] == [("boot", "b")]


def test_start_daemons_runs_only_daemons():
    journal = []
    providers = ProviderSet()
    providers.add(Daemonic(journal, "d"), Recorded(journal, "plain"))
    container = make_container()
    providers.prepare(container)
    ctx = threading.Event()
    threads = providers.start_daemons(ctx, container)
    assert len(threads) == 1
    ctx.set()
    for thread in threads:
        thread.join(5)
    assert journal == [("daemon", "d")]


def test_failing_daemon_is_logged(logger):
    providers = ProviderSet()
    providers.add(BrokenDaemon([], "broken"))
    container = make_container()
    providers.prepare(container)
    for thread in providers.start_daemons(threading.Event(), container):
        thread.join(5)
    errors = [msg for level, msg in logger.records if level == "error"]
    assert any("daemon exploded" in msg for msg in errors)