import logging

from shared.logging.logging_setup import (
    ANSI_COLORS,
    ANSI_RESET,
    ColorFormatter,
    ColorLogger,
    TimezoneFormatter,
    build_logging_config,
)


def make_record(level: int, msg: str, *args, **attrs) -> logging.LogRecord:
    record = logging.LogRecord("persona_bots", level, __file__, 1, msg, args, None)
    record.__dict__.update(attrs)
    return record


def test_config_writes_to_console_and_file(tmp_path):
    log_file = str(tmp_path / "app.log")
    config = build_logging_config(log_file=log_file, tz_name="UTC", level=logging.INFO)

    assert config["handlers"]["file"]["filename"] == log_file
    assert config["handlers"]["console"]["formatter"] == "colored"
    assert config["root"]["handlers"] == ["console", "file"]


def test_chatty_loggers_are_quiet_unless_debugging(tmp_path):
    log_file = str(tmp_path / "app.log")
    normal = build_logging_config(log_file=log_file, tz_name="UTC", level=logging.INFO)["loggers"]
    debug = build_logging_config(log_file=log_file, tz_name="UTC", level=logging.DEBUG)["loggers"]

    assert normal["httpx"]["level"] == logging.WARNING
    assert debug["httpx"]["level"] == logging.DEBUG
    assert debug["pdfminer"]["level"] == logging.ERROR


def test_warning_prefix_is_applied_once_per_handler():
    formatter = TimezoneFormatter("UTC", fmt="%(levelname)s - %(message)s")
    record = make_record(logging.WARNING, "retrieval skipped for %s", "b1")

    first = formatter.format(record)
    second = formatter.format(record)

    assert first == second == "WARNING - ⚠️ retrieval skipped for b1"
    assert record.msg == "retrieval skipped for %s"


def test_info_lines_carry_no_prefix():
    formatter = TimezoneFormatter("UTC", fmt="%(message)s")
    assert formatter.format(make_record(logging.INFO, "booted")) == "booted"


def test_color_formatter_wraps_colored_records_only():
    formatter = ColorFormatter("UTC", fmt="%(message)s")

    colored = formatter.format(make_record(logging.INFO, "indexed", color="green"))
    plain = formatter.format(make_record(logging.INFO, "indexed"))

    assert colored == f"{ANSI_COLORS['green']}indexed{ANSI_RESET}"
    assert plain == "indexed"


def test_color_logger_passes_color_as_extra(caplog):
    logger = ColorLogger(logging.getLogger("persona_bots.tests.color"))

    with caplog.at_level(logging.INFO):
        logger.info("reply persisted for %s", "alice", color="yellow")
        logger.info("no color")

    first, second = caplog.records
    assert first.getMessage() == "reply persisted for alice"
    assert first.color == "yellow"
    assert not hasattr(second, "color")


def test_color_logger_delegates_logger_attributes():
    inner = logging.getLogger("persona_bots.tests.delegate")
    assert ColorLogger(inner).name == "persona_bots.tests.delegate"
