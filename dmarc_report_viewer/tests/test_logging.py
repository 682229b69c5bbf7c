import json
import logging
import re

import pytest
import structlog

from dmarc_report_viewer.logging import configure_logging, parse_log_level


@pytest.fixture(autouse=True)
def reset_logging_config_after_test():
    yield None
    logging.Logger.manager.loggerDict.clear()
    configure_logging({}, debug=True)


def test_parse_log_level_returns_int_for_int_arg():
    assert parse_log_level(20) == 20
    assert parse_log_level(40) == 40


@pytest.mark.parametrize(
    "input_level,output",
    [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("Warning", logging.WARNING),
        ("eRRor", logging.ERROR),
        ("critical", logging.CRITICAL),
    ],
)
def test_parse_log_level_parses_string_levels_case_insensitively(input_level, output):
    assert parse_log_level(input_level) == output


def test_parse_log_level_rejects_unknown_levels():
    with pytest.raises(ValueError):
        parse_log_level("verbose")


def test_configure_logging_defaults_to_warning(caplog):
    configure_logging({}, debug=False)
    structlog_logger = structlog.get_logger("test-logger")
    logging.getLogger().addHandler(caplog.handler)

    structlog_logger.info("not_visible")
    structlog_logger.warning("visible")

    assert caplog.record_tuples == [
        ("test-logger", logging.WARNING, "{'event': 'visible', 'level': 'warning'}"),
    ]


def test_configure_logging_debug_overrides_log_level(caplog):
    configure_logging({"root": {"level": "ERROR"}}, debug=True)
    structlog_logger = structlog.get_logger("test-logger")
    stdlib_logger = logging.getLogger("test-logger")
    logging.getLogger().addHandler(caplog.handler)

    for logger in (structlog_logger, stdlib_logger):
        logger.debug("visible")

    assert caplog.record_tuples == [
        ("test-logger", logging.DEBUG, "{'event': 'visible', 'level': 'debug'}"),
        ("test-logger", logging.DEBUG, "visible"),
    ]


def test_configure_logging_leaves_overrides_unchanged():
    overrides = {"root": {"level": "WARNING"}}
    configure_logging(overrides, debug=True)
    assert overrides == {"root": {"level": "WARNING"}}


def test_configure_logging_writes_plain_format_to_stderr(capsys):
    configure_logging({}, debug=False)
    structlog_logger = structlog.get_logger("test-logger").bind(logger="test-logger")

    structlog_logger.warning("event", some_key="some_value")

    captured = capsys.readouterr()
    assert captured.out == ""
    without_color = re.sub("\x1b\\[\\d+m", "", captured.err)
    timestamp = r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}"
    assert re.match(
        f"^{timestamp} \\[warning\\s*\\] event\\s+\\[test-logger\\] some_key=some_value\n$",
        without_color,
    )


def test_configure_logging_to_log_json(capsys):
    configure_logging(
        {
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "json",
                }
            },
        },
        debug=False,
    )
    structlog_logger = structlog.get_logger("test-logger").bind(logger="test-logger")
    stdlib_logger = logging.getLogger("test-logger")

    structlog_logger.warning("event", some_key="some_value")
    stdlib_logger.warning("event", extra={"some_key": "some_value"})

    captured = capsys.readouterr()
    lines = captured.err.splitlines()
    assert len(lines) == 2
    for line in lines:
        doc = json.loads(line)
        del doc["timestamp"]
        assert doc == {
            "level": "warning",
            "logger": "test-logger",
            "event": "event",
            "some_key": "some_value",
        }
