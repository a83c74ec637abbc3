"""Cron expressions with a seconds field, and a runner that fires jobs on them."""

from __future__ import annotations

import itertools
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from glacier import log


class CronSpecError(ValueError):
    """Raised when a cron expression can not be parsed."""


_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_DOW_NAMES = {
    name: number
    for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}

_FIELDS: tuple[tuple[str, int, int, Mapping[str, int]], ...] = (
    ("second", 0, 59, {}),
    ("minute", 0, 59, {}),
    ("hour", 0, 23, {}),
    ("day of month", 1, 31, {}),
    ("month", 1, 12, _MONTH_NAMES),
    ("day of week", 0, 6, _DOW_NAMES),
)

_DESCRIPTORS = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 0",
    "@daily": "0 0 0 * * *",
    "@midnight": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_SEARCH_YEARS = 5


def _parse_duration(text: str) -> float:
    """Parse a duration such as ``1m30s`` into seconds."""
    s = text.strip()
    sign = 1.0
    if s and s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if s == "0":
        return 0.0
    if not s:
        raise CronSpecError(f"failed to parse duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(s):
        match = _DURATION_PART.match(s, pos)
        if match is None:
            raise CronSpecError(f"failed to parse duration {text!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def _parse_number(text: str, names: Mapping[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    if not text.isdigit():
        raise CronSpecError(f"failed to parse int from {text!r}")
    return int(text)


def _parse_range(expr: str, low: int, high: int, names: Mapping[str, int]) -> tuple[set[int], bool]:
    range_and_step = expr.split("/")
    if len(range_and_step) > 2:
        raise CronSpecError(f"too many slashes: {expr}")
    bounds = range_and_step[0].split("-")
    single = len(bounds) == 1
    star = False

    if bounds[0] in ("*", "?"):
        if not single:
            raise CronSpecError(f"too many hyphens: {expr}")
        start, end, star = low, high, True
    else:
        start = _parse_number(bounds[0], names)
        if single:
            end = start
        elif len(bounds) == 2:
            end = _parse_number(bounds[1], names)
        else:
            raise CronSpecError(f"too many hyphens: {expr}")

    step = 1
    if len(range_and_step) == 2:
        step = _parse_number(range_and_step[1], {})
        if single and not star:
            end = high
        if step > 1:
            star = False

    if start < low:
        raise CronSpecError(f"beginning of range ({start}) below minimum ({low}): {expr}")
    if end > high:
        raise CronSpecError(f"end of range ({end}) above maximum ({high}): {expr}")
    if start > end:
        raise CronSpecError(f"beginning of range ({start}) beyond end of range ({end}): {expr}")
    if step == 0:
        raise CronSpecError(f"step of range should be a positive number: {expr}")
    return set(range(start, end + 1, step)), star


def _parse_field(text: str, low: int, high: int, names: Mapping[str, int]) -> tuple[frozenset[int], bool]:
    values: set[int] = set()
    star = False
    for part in text.split(","):
        if not part:
            raise CronSpecError(f"empty item in field {text!r}")
        part_values, part_star = _parse_range(part, low, high, names)
        values |= part_values
        star = star or part_star
    return frozenset(values), star


@dataclass(frozen=True)
class Schedule:
    """When a job runs: either matching calendar fields or a constant delay."""

    seconds: frozenset[int] = frozenset()
    minutes: frozenset[int] = frozenset()
    hours: frozenset[int] = frozenset()
    days: frozenset[int] = frozenset()
    months: frozenset[int] = frozenset()
    weekdays: frozenset[int] = frozenset()
    dom_star: bool = False
    dow_star: bool = False
    location: tzinfo | None = None
    delay: timedelta | None = None

    def next(self, after: datetime) -> datetime | None:
        """The first activation strictly after ``after``, or None if there is none."""
        if self.delay is not None:
            return after.replace(microsecond=0) + self.delay
        if self.location is not None:
            local = after.astimezone(self.location).replace(tzinfo=None)
            out_tz: tzinfo | None = self.location
        else:
            local = after.replace(tzinfo=None)
            out_tz = after.tzinfo
        found = self._search(local)
        return None if found is None else found.replace(tzinfo=out_tz)

    def _day_matches(self, moment: datetime) -> bool:
        dom = moment.day in self.days
        dow = (moment.weekday() + 1) % 7 in self.weekdays
        if self.dom_star or self.dow_star:
            return dom and dow
        return dom or dow

    def _search(self, start: datetime) -> datetime | None:
        t = start.replace(microsecond=0) + timedelta(seconds=1)
        limit = t.year + _SEARCH_YEARS
        while t.year <= limit:
            if t.month not in self.months:
                if t.month == 12:
                    t = datetime(t.year + 1, 1, 1)
                else:
                    t = datetime(t.year, t.month + 1, 1)
                continue
            if not self._day_matches(t):
                t = datetime(t.year, t.month, t.day) + timedelta(days=1)
                continue
            if t.hour not in self.hours:
                t = t.replace(minute=0, second=0) + timedelta(hours=1)
                continue
            if t.minute not in self.minutes:
                t = t.replace(second=0) + timedelta(minutes=1)
                continue
            if t.second not in self.seconds:
                t += timedelta(seconds=1)
                continue
            return t
        return None


def parse(spec: str) -> Schedule:
    """Parse a six-field cron expression, a ``@descriptor`` or ``@every <duration>``."""
    text = spec.strip()
    if not text:
        raise CronSpecError("empty spec string")

    location: tzinfo | None = None
    if text.startswith(("TZ=", "CRON_TZ=")):
        head, _, rest = text.partition(" ")
        zone = head.split("=", 1)[1]
        try:
            location = ZoneInfo(zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise CronSpecError(f"provided bad location {zone}: {exc}") from exc
        text = rest.strip()

    if text.startswith("@"):
        if text.startswith("@every "):
            seconds = _parse_duration(text[len("@every "):])
            whole = max(1, int(seconds)) if seconds >= 1 else 1
            return Schedule(delay=timedelta(seconds=whole))
        if text not in _DESCRIPTORS:
            raise CronSpecError(f"unrecognized descriptor: {text}")
        text = _DESCRIPTORS[text]

    fields = text.split()
    if len(fields) != len(_FIELDS):
        raise CronSpecError(
            f"expected exactly {len(_FIELDS)} fields, found {len(fields)}: {spec}"
        )
    parsed = [
        _parse_field(value, low, high, names)
        for value, (_, low, high, names) in zip(fields, _FIELDS)
    ]
    return Schedule(
        seconds=parsed[0][0],
        minutes=parsed[1][0],
        hours=parsed[2][0],
        days=parsed[3][0],
        months=parsed[4][0],
        weekdays=parsed[5][0],
        dom_star=parsed[3][1],
        dow_star=parsed[5][1],
        location=location,
    )


@dataclass(eq=False)
class _Entry:
    id: int
    schedule: Schedule
    fn: Callable[[], Any]
    due: datetime | None = None


def _next_local(schedule: Schedule, now: datetime) -> datetime | None:
    moment = schedule.next(now)
    if moment is not None and moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def _run_job(fn: Callable[[], Any]) -> None:
    try:
        fn()
    except Exception as exc:
        log.error("[glacier] cron job failed: %s", exc)


class CronRunner:
    """Runs functions in background threads according to their schedules."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._entries: dict[int, _Entry] = {}
        self._ids = itertools.count(1)
        self._running = False
        self._thread: threading.Thread | None = None

    def __len__(self) -> int:
        with self._cond:
            return len(self._entries)

    @property
    def running(self) -> bool:
        with self._cond:
            return self._running

    def add_func(self, spec: str, fn: Callable[[], Any]) -> int:
        """Schedule ``fn`` by ``spec`` and return the id of the new entry."""
        schedule = parse(spec)
        with self._cond:
            entry = _Entry(next(self._ids), schedule, fn)
            if self._running:
                entry.due = _next_local(schedule, datetime.now())
            self._entries[entry.id] = entry
            self._cond.notify_all()
        return entry.id

    def remove(self, entry_id: int) -> None:
        """Stop running an entry; unknown ids are ignored."""
        with self._cond:
            self._entries.pop(entry_id, None)
            self._cond.notify_all()

    def start(self) -> None:
        """Start the scheduling thread; does nothing if already running."""
        with self._cond:
            if self._running:
                return
            self._running = True
            now = datetime.now()
            for entry in self._entries.values():
                entry.due = _next_local(entry.schedule, now)
            self._thread = threading.Thread(target=self._loop, name="glacier-cron", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Stop scheduling new runs; jobs already running finish on their own."""
        with self._cond:
            if not self._running:
                return
            self._running = False
            self._cond.notify_all()
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _loop(self) -> None:
        with self._cond:
            while self._running:
                now = datetime.now()
                for entry in self._entries.values():
                    if entry.due is not None and entry.due <= now:
                        threading.Thread(
                            target=_run_job, args=(entry.fn,), name="glacier-cron-job", daemon=True
                        ).start()
                        entry.due = _next_local(entry.schedule, now)
                pending = [e.due for e in self._entries.values() if e.due is not None]
                timeout = None
                if pending:
                    timeout = max(0.0, (min(pending) - datetime.now()).total_seconds())
                self._cond.wait(timeout)