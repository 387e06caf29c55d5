import io
from datetime import datetime, timezone

import pytest

from admiral.kzerolog import ConsoleSink, add_flags, init_k8s_logging, truncate
from admiral.logger import DEBUG, FATAL_KEY, TRACE, Logger, StdlibSink, get_logger, set_default_sink

FIXED = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
NO_NAME = " " * 20


def fixed_clock():
    return FIXED


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def sink(stream):
    return ConsoleSink(stream=stream, max_verbosity=4, clock=fixed_clock)


@pytest.fixture
def restore_default_sink():
    yield
    set_default_sink(StdlibSink())


def lines(stream):
    return stream.getvalue().splitlines()


def level_of(line):
    return line.split()[1]


def tail_of(line):
    return line.split(" > ", 1)[1]


def test_truncate_pads_short_values():
    assert truncate("abc", 5) == "abc  "


def test_truncate_keeps_tail_of_long_values():
    assert truncate("abcdefghij", 5) == "..hij"


def test_truncate_exact_length_unchanged():
    assert truncate("abcde", 5) == "abcde"


def test_info_with_keys_and_values():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    logger = Logger(console.with_name("test"))
    logger.info("Info log with keys and values.", "key1", "value1", "key2", "value2")
    (line,) = lines(out)
    assert line.startswith("2024-01-02T03:04:05.678Z INF ")
    assert tail_of(line) == "test" + " " * 16 + " Info log with keys and values. key1=value1 key2=value2"


def test_infof_formats():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    Logger(console).infof("Infof log: arg: %s", "value")
    (line,) = lines(out)
    assert tail_of(line) == NO_NAME + " Infof log: arg: value"


def test_warning_uses_warn_level_and_drops_marker():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    logger = Logger(console)
    logger.warning("Warning log with keys and values.", "key1", "value1")
    logger.warningf("Warningf log: arg: %s", "value")
    first, second = lines(out)
    assert level_of(first) == "WRN"
    assert "WARNING" not in first
    assert tail_of(first) == NO_NAME + " Warning log with keys and values. key1=value1"
    assert level_of(second) == "WRN"
    assert tail_of(second) == NO_NAME + " Warningf log: arg: value"


def test_error_includes_error_field():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    logger = Logger(console)
    logger.error(RuntimeError("mock error"), "Error log with keys and values.", "key1", "value1")
    logger.errorf(RuntimeError("mock error"), "Errorf log: arg: %s", "value")
    first, second = lines(out)
    assert level_of(first) == "ERR"
    assert tail_of(first) == NO_NAME + " Error log with keys and values. error=mock error key1=value1"
    assert tail_of(second) == NO_NAME + " Errorf log: arg: value error=mock error"


def test_debug_and_trace_levels():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    logger = Logger(console)
    logger.v(DEBUG).info("Debug log")
    logger.v(TRACE).info("Trace log")
    debug, trace = lines(out)
    assert level_of(debug) == "DBG"
    assert tail_of(debug) == NO_NAME + " Debug log"
    assert level_of(trace) == "TRC"
    assert tail_of(trace) == NO_NAME + " Trace log"


def test_fatal_key_logs_fatal_level_without_exiting():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    console.error(None, "Fatal log", FATAL_KEY, "true")
    (line,) = lines(out)
    assert level_of(line) == "FTL"
    assert "FATAL" not in line
    assert tail_of(line) == NO_NAME + " Fatal log"


def test_levels_above_verbosity_are_dropped(sink, stream):
    Logger(sink).v(5).info("too verbose")
    assert stream.getvalue() == ""
    assert sink.enabled(4) is True
    assert sink.enabled(5) is False


def test_with_name_nests_prefix(sink):
    assert sink.with_name("a").with_name("b").prefix == "a/b"


def test_with_values_adds_fields():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    Logger(console.with_values("zone", "east")).info("msg", "alpha", "1")
    (line,) = lines(out)
    assert tail_of(line) == NO_NAME + " msg alpha=1 zone=east"


def test_caller_points_at_call_site():
    out = io.StringIO()
    console = ConsoleSink(stream=out, max_verbosity=4, clock=fixed_clock)
    Logger(console).info("where")
    (line,) = lines(out)
    head = line.split(" > ", 1)[0]
    assert "test_kzerolog.py:" in head
    assert tail_of(line) == NO_NAME + " where"


def test_add_flags_parses_verbosity():
    parser = add_flags()
    args = parser.parse_args(["-v", "4", "--alsologtostderr"])
    assert args.v == 4
    assert args.alsologtostderr is True


def test_add_flags_defaults():
    args = add_flags().parse_args([])
    assert args.v == 0
    assert args.alsologtostderr is False


def test_init_installs_default_sink(stream, restore_default_sink):
    init_k8s_logging(4, stream)
    logger = get_logger("test")
    logger.info("Info log")
    logger.v(TRACE).info("Trace log")
    logger.v(5).info("hidden")
    first, second = lines(stream)
    assert " INF " in first and "test" in first and first.endswith("Info log")
    assert " TRC " in second
    assert "test_kzerolog.py:" in first