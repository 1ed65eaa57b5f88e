"""
Tests for logging configuration.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

from gopls_mcp_server.atoms.logging.logger import (
    ROOT_LOGGER_NAME,
    JsonFormatter,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _reset_root_logger():
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True


def test_module_loggers_nest_under_package_root():
    assert get_logger("gopls_mcp_server.molecules.tools").name == "gopls_mcp_server.molecules.tools"
    assert get_logger("elsewhere").name == "gopls_mcp_server.elsewhere"


def test_configure_logging_writes_to_file(tmp_path: Path):
    log_file = tmp_path / "logs" / "server.log"
    configure_logging(level=logging.DEBUG, log_file=log_file)

    get_logger("gopls_mcp_server.test").debug("probe message")
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    assert "probe message" in log_file.read_text()


def test_configure_logging_respects_level(tmp_path: Path):
    log_file = tmp_path / "server.log"
    configure_logging(level=logging.WARNING, log_file=log_file)

    logger = get_logger("gopls_mcp_server.test")
    logger.info("hidden")
    logger.warning("shown")
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    text = log_file.read_text()
    assert "shown" in text
    assert "hidden" not in text


def test_json_format_emits_one_object_per_line(tmp_path: Path):
    log_file = tmp_path / "server.log"
    configure_logging(level=logging.INFO, log_file=log_file, json_format=True)

    get_logger("gopls_mcp_server.test").info("structured")
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    record = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert record["msg"] == "structured"
    assert record["level"] == "INFO"
    assert record["logger"] == "gopls_mcp_server.test"


def test_reconfigure_replaces_handlers():
    configure_logging()
    configure_logging()

    assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad" in payload["exc"]


def test_verbose_only_logs_when_enabled(caplog: pytest.LogCaptureFixture):
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = True
    try:
        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            get_logger("gopls_mcp_server.quiet").verbose("quiet detail")
            get_logger("gopls_mcp_server.loud", verbose=True).verbose("loud detail")
    finally:
        root.propagate = False

    assert "loud detail" in caplog.text
    assert "quiet detail" not in caplog.text
