# glacier

`glacier` provides the building blocks of a long running application: a
dependency injection container, collections of *providers* and *services*
with a defined load order, a pool of background workers, cron schedules, a
graceful reload/shutdown manager driven by process signals, and a small
logger. It has no dependencies beyond the standard library.

## The container

`glacier.container.Container` binds factories by their return annotation and
injects them by parameter annotation.

```python
from glacier.container import Container


class Database:
    pass


def make_database() -> Database:
    return Database()


container = Container()
container.singleton(make_database)          # created once, on first use


def handler(db: Database) -> str:
    return type(db).__name__


assert container.resolve(handler) == "Database"
```

- `singleton(factory, override=False)` binds a factory whose result is shared,
  or a plain instance under its own type; `prototype(...)` calls the factory on
  every lookup. Binding the same key twice raises `ContainerError` unless
  `override` is true.
- `bind_value(key, value)` binds a value under any hashable key.
- `has(key)`, `get(key)`, `resolve(func)` and `call(func, extra)`; `extra`
  maps annotations to values that take precedence over the container.
- `autowire(obj)` fills the object's unset annotated attributes; the
  module-level `autowire(resolver, obj)` does the same and returns `obj`.
- `with_condition(init, on_condition)` binds `init` only if
  `on_condition`, called with injection, returns true.

## Providers and services

`glacier.providers.ProviderSet` holds objects with a `register(binder)` method
and, optionally, `boot(resolver)`, `daemon(ctx, resolver)`, `priority()`,
`aggregates()` and `should_load(...)`:

- `add(*providers)` checks each provider;
- `prepare(container)` drops those whose `should_load` returns false, puts
  every aggregate's providers before it, warns about types loaded twice, and
  sorts by `priority()` (lower first, 1000 when absent);
- `register_all(binder)`, `boot_all(container)` (autowires each provider and
  returns how many booted) and `start_daemons(ctx, resolver)` (one thread per
  daemon provider).

`glacier.services.ServiceSet` does the same for objects with a `start()` method
and, optionally, `init(resolver)`, `stop()`, `reload()`, `name()`,
`priority()` and `should_load(...)`. `start_all(graceful)` registers `stop`
and `reload` with the graceful manager and starts each service in its own
thread.

The interfaces are `typing.Protocol` classes in `glacier.infra`, which also
holds the process-wide `settings` (`debug`, `warn`, `print_graph`).
`glacier.base` has the `Status` enum, `NamedFunc`, `resolve_name`,
`validate_should_load` and `should_load_module`.

## Flags and configuration

`glacier.flags.FlagContext` stores option values by name; `string`, `bool`,
`int`, `float`, `duration`, `string_slice` and `int_slice` return the zero
value of their type when the option is missing or has another type.
`glacier.config.config_loader(flags)` builds a `Config` whose
`shutdown_timeout` comes from the `shutdown-timeout` option, 15 seconds when
it is unset.

## Background jobs

```python
from glacier.runner import AsyncRunner

runner = AsyncRunner(3)
runner.add(lambda: print("queued before start"))
stopped = runner.start(container, graceful_manager)   # threading.Event
```

Jobs are run through `resolver.resolve`, so their parameters are injected.
Workers stop, after draining the queue, when the graceful manager runs its
shutdown handlers; the returned event is then set.

## Graceful shutdown

```python
from datetime import timedelta

from glacier.graceful import new_with_default

manager = new_with_default(timedelta(seconds=15))
manager.add_shutdown_handler(lambda: print("bye"))
manager.start()   # blocks until SIGINT, SIGTERM, SIGHUP or SIGQUIT
```

`SIGUSR2` runs the reload handlers (on Windows only `SIGINT` is handled).
Pre-shutdown handlers run in order first; shutdown handlers then run
concurrently, and those still running after the timeout are reported.
`shutdown()` stops `start()` from another thread; `new_with_signal` lets you
choose the signals.

## Cron schedules

```python
from datetime import datetime

from glacier.cronspec import CronRunner, parse

parse("0 30 9 * * mon-fri").next(datetime.now())   # next 09:30:00 on a weekday

cron = CronRunner()
entry_id = cron.add_func("@every 5s", lambda: print("tick"))
cron.start()
...
cron.remove(entry_id)
cron.stop()
```

Expressions have six fields (second, minute, hour, day of month, month, day of
week) and may start with `TZ=` or `CRON_TZ=`; `@yearly`, `@monthly`,
`@weekly`, `@daily`, `@hourly` and `@every <duration>` are accepted. Bad
expressions raise `CronSpecError`.

## Other pieces

- `glacier.listener`: `default(addr)`, `from_flag(name)` and `existing(sock)`
  create builders whose `build(resolver)` returns a listening TCP socket.
- `glacier.log`: `StdLogger`, `std_logger(*hidden_levels)`,
  `set_default_logger`, `default` and the `debug` … `critical` shortcuts;
  `critical` logs and raises `SystemExit(1)`.
- `glacier.graph`: `GraphvizNodes.draw()` renders start-up steps as a DOT graph.

## What it does not do

The package offers the parts, not an assembled application. There is no
command-line entry point or flag parser that fills a `FlagContext` from
`sys.argv`, no single object that runs the whole start-up sequence
(register, boot, start, wait for shutdown) for you, no event publishing, and
no named-job scheduler with pause and resume on top of `CronRunner`. Wiring
these together is left to the application.