import io

import pytest

from glacier import log
from glacier.log import Level, StdLogger


@pytest.fixture
def captured():
    original = log.default()
    stream = io.StringIO()
    log.set_default_logger(StdLogger(stream=stream))
    yield stream
    log.set_default_logger(original)


def test_levels_are_ordered():
    levels = [Level(value) for value in range(5)]
    assert levels == [Level.DEBUG, Level.INFO, Level.WARNING, Level.ERROR, Level.CRITICAL]


def test_std_logger_writes_level_and_message():
    stream = io.StringIO()
    logger = StdLogger(stream=stream)
    logger.debug("hello %s", "world")
    assert stream.getvalue().endswith("[DEBUG] hello world\n")


def test_each_level_writes_its_tag():
    stream = io.StringIO()
    logger = StdLogger(stream=stream)
    logger.info("a")
    logger.warning("b")
    logger.error("c")
    lines = stream.getvalue().splitlines()
    assert lines[0].endswith("[INFO] a")
    assert lines[1].endswith("[WARNING] b")
    assert lines[2].endswith("[ERROR] c")


def test_hidden_levels_are_dropped():
    stream = io.StringIO()
    logger = StdLogger([Level.DEBUG], stream=stream)
    logger.debug("quiet")
    logger.error("loud")
    assert "quiet" not in stream.getvalue()
    assert "loud" in stream.getvalue()


def test_critical_exits_even_when_hidden():
    stream = io.StringIO()
    logger = StdLogger([Level.CRITICAL], stream=stream)
    with pytest.raises(SystemExit) as info:
        logger.critical("fatal")
    assert info.value.code == 1
    assert stream.getvalue() == ""


def test_unmatched_format_does_not_raise():
    stream = io.StringIO()
    StdLogger(stream=stream).info("value", 3)
    assert stream.getvalue().endswith("[INFO] value 3\n")


def test_std_logger_factory_hides_given_levels():
    logger = log.std_logger(Level.INFO, Level.WARNING)
    assert logger.hidden == {Level.INFO, Level.WARNING}


def test_module_functions_use_default_logger(captured):
    log.warning("careful %d", 5)
    log.debug("dbg")
    assert "[WARNING] careful 5" in captured.getvalue()
    assert "[DEBUG] dbg" in captured.getvalue()


def test_set_default_logger_replaces_logger(captured):
    replacement = StdLogger()
    log.set_default_logger(replacement)
    assert log.default() is replacement