import threading
from datetime import datetime, timedelta, timezone

import pytest

from glacier.cronspec import CronRunner, CronSpecError, parse

BASE = datetime(2021, 6, 15, 10, 20, 30, 123456)


def test_fixed_time_of_day():
    assert parse("0 30 9 * * *").next(datetime(2020, 1, 1, 10, 0)) == datetime(2020, 1, 2, 9, 30)


def test_yearly_next():
    assert parse("@yearly").next(BASE) == datetime(2022, 1, 1)


@pytest.mark.parametrize(
    "descriptor, expression",
    [
        ("@yearly", "0 0 0 1 1 *"),
        ("@annually", "0 0 0 1 1 *"),
        ("@monthly", "0 0 0 1 * *"),
        ("@weekly", "0 0 0 * * 0"),
        ("@daily", "0 0 0 * * *"),
        ("@midnight", "0 0 0 * * *"),
        ("@hourly", "0 0 * * * *"),
    ],
)
def test_descriptors_equal_expressions(descriptor, expression):
    assert parse(descriptor).next(BASE) == parse(expression).next(BASE)


@pytest.mark.parametrize(
    "spec", ["* * * * * *", "0 * * * * *", "*/15 * * * * *", "0 0 12 * * mon", "5/10 * * * * *"]
)
def test_next_is_strictly_later_and_whole_seconds(spec):
    result = parse(spec).next(BASE)
    assert result > BASE
    assert result.microsecond == 0


def test_step_every_fifteen_seconds():
    result = parse("*/15 * * * * *").next(BASE)
    assert result.second in {0, 15, 30, 45}
    assert result - BASE < timedelta(seconds=15)


def test_single_value_with_step_runs_to_maximum():
    schedule = parse("5/20 * * * * *")
    assert schedule.seconds == frozenset({5, 25, 45})


def test_names_equal_numbers():
    named = parse("0 0 12 * feb,mar mon-fri").next(BASE)
    numbered = parse("0 0 12 * 2,3 1-5").next(BASE)
    assert named == numbered


def test_question_mark_behaves_like_star():
    assert parse("0 0 0 ? * *").next(BASE) == parse("0 0 0 * * *").next(BASE)


def test_day_of_month_or_day_of_week_when_both_restricted():
    schedule = parse("0 0 0 1 * mon")
    moment = BASE
    for _ in range(10):
        moment = schedule.next(moment)
        assert moment.day == 1 or moment.weekday() == 0


def test_star_weekday_requires_day_of_month():
    schedule = parse("0 0 0 13 * *")
    moment = BASE
    for _ in range(5):
        moment = schedule.next(moment)
        assert moment.day == 13


def test_every_adds_delay_to_truncated_time():
    result = parse("@every 1m30s").next(BASE)
    assert result == BASE.replace(microsecond=0) + timedelta(minutes=1, seconds=30)


def test_every_below_one_second_is_one_second():
    result = parse("@every 200ms").next(BASE)
    assert result - BASE.replace(microsecond=0) == timedelta(seconds=1)


def test_impossible_date_gives_none():
    assert parse("0 0 0 30 2 *").next(BASE) is None


def test_aware_input_keeps_timezone():
    after = BASE.replace(tzinfo=timezone.utc)
    result = parse("0 0 * * * *").next(after)
    assert result.tzinfo is timezone.utc
    assert result > after


def test_timezone_prefix():
    after = datetime(2021, 6, 15, 0, 0, tzinfo=timezone.utc)
    result = parse("CRON_TZ=UTC 0 0 12 * * *").next(after)
    assert result.hour == 12
    assert result.utcoffset() == timedelta(0)


@pytest.mark.parametrize(
    "spec",
    [
        "",
        "* * * * *",
        "* * * * * * *",
        "60 * * * * *",
        "* * 24 * * *",
        "* * * 0 * *",
        "5-1 * * * * *",
        "*/0 * * * * *",
        "1/2/3 * * * * *",
        "a * * * * *",
        "1,,2 * * * * *",
        "@bogus",
        "@every soon",
        "CRON_TZ=Nowhere/Land 0 * * * * *",
    ],
)
def test_invalid_specs(spec):
    with pytest.raises(CronSpecError):
        parse(spec)


def test_runner_add_and_remove():
    runner = CronRunner()
    first = runner.add_func("* * * * * *", lambda: None)
    second = runner.add_func("@hourly", lambda: None)
    assert first != second
    assert len(runner) == 2
    runner.remove(first)
    assert len(runner) == 1
    runner.remove(first)
    assert len(runner) == 1


def test_runner_rejects_bad_spec():
    runner = CronRunner()
    with pytest.raises(CronSpecError):
        runner.add_func("nope", lambda: None)
    assert len(runner) == 0


def test_runner_fires_job():
    fired = threading.Event()
    runner = CronRunner()
    runner.add_func("* * * * * *", fired.set)
    runner.start()
    try:
        assert runner.running
        assert fired.wait(3)
    finally:
        runner.stop()
    assert not runner.running