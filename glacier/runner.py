"""Background runners that execute asynchronous jobs."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable

from glacier import log
from glacier.infra import settings

_STOP = object()


@dataclass(frozen=True)
class AsyncJob:
    """A function run in the background with its arguments injected."""

    fn: Callable[..., Any]

    def call(self, resolver: Any) -> Any:
        """Run the job through ``resolver`` and return what it returned."""
        return resolver.resolve(self.fn)


class AsyncRunner:
    """A fixed pool of worker threads draining a queue of jobs.

    Jobs added before :meth:`start` are kept and handed to the workers when
    they start; jobs added afterwards are queued straight away.
    """

    def __init__(self, count: int = 3) -> None:
        if count < 0:
            raise ValueError("runner count must not be negative")
        self.count = count
        self._lock = threading.Lock()
        self._pending: list[AsyncJob] = []
        self._queue: queue.Queue[Any] | None = None
        self._closed = False

    @property
    def started(self) -> bool:
        return self._queue is not None

    def add(self, *fns: Callable[..., Any]) -> None:
        """Schedule functions to run in the background."""
        for index, fn in enumerate(fns):
            if not callable(fn):
                raise TypeError(f"invalid argument: fn at {index} must be a func")
            job = AsyncJob(fn)
            with self._lock:
                if self._closed:
                    raise RuntimeError("[glacier] async runners have been stopped")
                if self._queue is None:
                    self._pending.append(job)
                else:
                    self._queue.put(job)

    def start(self, resolver: Any, graceful: Any) -> threading.Event:
        """Start the workers; the returned event is set once all have stopped.

        The workers stop when ``graceful`` runs its shutdown handlers, after
        finishing the jobs already queued.
        """
        with self._lock:
            if self._queue is not None:
                raise RuntimeError("[glacier] async runners have already been started")
            jobs: queue.Queue[Any] = queue.Queue()
            graceful.add_shutdown_handler(self._close)

            workers = []
            for index in range(self.count):
                if settings.debug:
                    log.debug("[glacier] async runner %d starting ...", index)
                worker = threading.Thread(
                    target=self._work,
                    args=(index, jobs, resolver),
                    name=f"async-runner-{index}",
                    daemon=True,
                )
                worker.start()
                workers.append(worker)

            for job in self._pending:
                jobs.put(job)
            self._pending = []
            self._queue = jobs

        stopped = threading.Event()

        def watch() -> None:
            for worker in workers:
                worker.join()
            if settings.debug:
                log.debug("[glacier] all async runners stopped")
            stopped.set()

        threading.Thread(target=watch, name="async-runner-watch", daemon=True).start()
        return stopped

    def _close(self) -> None:
        with self._lock:
            if self._closed or self._queue is None:
                return
            self._closed = True
            for _ in range(self.count):
                self._queue.put(_STOP)

    @staticmethod
    def _work(index: int, jobs: queue.Queue[Any], resolver: Any) -> None:
        while True:
            job = jobs.get()
            if job is _STOP:
                break
            try:
                job.call(resolver)
            except Exception as exc:
                log.error("[glacier] async runner [async-runner-%d] failed: %s", index, exc)
        if settings.debug:
            log.debug("[glacier] async runner [async-runner-%d] stopping...", index)