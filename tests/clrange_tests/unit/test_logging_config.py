"""
Structured logging tests.
"""

import json
import logging
import logging.handlers

import pytest

from clrange.core.config import LoggingConfig
from clrange.core.logging_config import (
    CustomJsonFormatter,
    configure_logging,
    get_logger,
    setup_logging,
)


@pytest.fixture
def logger_name(request):
    name = f"clrange_test.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def format_record(formatter, **extra):
    record = logging.LogRecord("clrange.test", logging.INFO, __file__, 10, "Position minted", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


class TestCustomJsonFormatter:
    def test_adds_context_fields(self):
        payload = format_record(CustomJsonFormatter(environment="staging"), event="clrange.pool.mint")
        assert payload["message"] == "Position minted"
        assert payload["environment"] == "staging"
        assert payload["service"] == "clrange"
        assert payload["level"] == "info"
        assert payload["event"] == "clrange.pool.mint"
        assert payload["timestamp"].endswith("Z")
        assert payload["source"]["line"] == 10


class TestSetupLogging:
    def test_console_handler(self, logger_name):
        logger = setup_logging(name=logger_name, level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, CustomJsonFormatter)

    def test_repeated_setup_does_not_duplicate(self, logger_name):
        setup_logging(name=logger_name)
        logger = setup_logging(name=logger_name)
        assert len(logger.handlers) == 1

    def test_file_handler_writes_json(self, logger_name, tmp_path):
        log_file = tmp_path / "logs" / "clrange.json"
        logger = setup_logging(name=logger_name, log_file=str(log_file), enable_console=False)
        logger.info("Range updated", extra={"event": "clrange.range_update.updated", "position_id": 3})
        for handler in logger.handlers:
            handler.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["position_id"] == 3
        assert payload["event"] == "clrange.range_update.updated"

    def test_get_logger_reuses_configuration(self, logger_name):
        first = get_logger(logger_name)
        assert get_logger(logger_name) is first
        assert len(first.handlers) == 1

    def test_configure_from_config(self, logger_name, tmp_path):
        config = LoggingConfig(level="WARNING", log_file=str(tmp_path / "x.json"), enable_console=False)
        logger = configure_logging(config, name=logger_name)
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)
