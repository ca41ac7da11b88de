from __future__ import annotations

import logging
from io import StringIO

from sheetql.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def _capture_logger(name: str) -> tuple[logging.Logger, StringIO]:
    buf = StringIO()
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    handler = logging.StreamHandler(buf)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger, buf


def test_labeled_prefixes():
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger, buf = _capture_logger("test_sheetql_labels")
    logger.info("info message")
    logger.warning("warn message")
    logger.error("error message")
    logger.log(SUMMARY_LEVEL, "sheets=1")
    lines = buf.getvalue().splitlines()
    assert lines == ["INFO info message", "WARN warn message", "ERROR error message", "SUMMARY sheets=1"]


def test_formatter_appends_exception_traceback():
    logger, buf = _capture_logger("test_sheetql_exc")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("failed")
    out = buf.getvalue()
    assert out.startswith("ERROR failed\n")
    assert "ValueError: boom" in out


def test_child_loggers_use_package_handler(capsys):
    setup_logging()
    logging.getLogger("sheetql.db.loader").info("from child")
    logging.getLogger("sheetql.db.loader").debug("hidden")
    out = capsys.readouterr().out
    assert "INFO from child" in out
    assert "hidden" not in out


def test_log_summary_and_debug(capsys):
    setup_logging()
    log_summary("sheets=2 loaded=2")
    set_debug(True)
    logging.getLogger("sheetql.services").debug("now visible")
    set_debug(False)
    logging.getLogger("sheetql.services").debug("hidden again")
    out = capsys.readouterr().out
    assert "SUMMARY sheets=2 loaded=2" in out
    assert "DEBUG now visible" in out
    assert "hidden again" not in out


def test_reset_logging_restores_propagation():
    logger = setup_logging()
    reset_logging()
    assert logger.handlers == []
    assert logger.propagate is True
    assert setup_logging() is not None
