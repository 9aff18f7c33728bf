import logging

import pytest
import structlog

from bridgewatch.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_setup_installs_single_handler(restore_root_logger):
    setup_logging("WARNING")
    setup_logging("WARNING")

    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_unknown_level_falls_back_to_info(restore_root_logger):
    setup_logging("chatty")

    assert restore_root_logger.level == logging.INFO


def test_json_output_carries_bound_request_id(restore_root_logger, capsys):
    setup_logging("INFO", json_logs=True)
    structlog.contextvars.bind_contextvars(request_id="abc123")
    try:
        logging.getLogger("bridgewatch.core.bridge.tracker").info("Tracking bridge tx %s", "0xaaa")
    finally:
        structlog.contextvars.clear_contextvars()

    line = capsys.readouterr().out.strip().splitlines()[-1]
    assert '"request_id": "abc123"' in line
    assert "Tracking bridge tx 0xaaa" in line
