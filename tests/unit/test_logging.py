"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from pointledger.service.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    clear_context()
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


def last_json_line(text):
    return json.loads(text.strip().splitlines()[-1])


class TestConfigureLogging:
    def test_stdlib_records_render_as_json(self, capsys, restore_logging):
        configure_logging(level="INFO", json_output=True)

        logging.getLogger("pointledger.registry").warning("index repaired")

        entry = last_json_line(capsys.readouterr().err)
        assert entry["event"] == "index repaired"
        assert entry["level"] == "warning"
        assert entry["service"] == "pointledger"

    def test_bound_context_is_merged(self, capsys, restore_logging):
        configure_logging(level="INFO", json_output=True)
        bind_context(correlation_id="trace-1")

        get_logger("pointledger.test").info("invocation", function="init_point")

        entry = last_json_line(capsys.readouterr().err)
        assert entry["correlation_id"] == "trace-1"
        assert entry["function"] == "init_point"

    def test_level_filters_debug(self, capsys, restore_logging):
        configure_logging(level="WARNING", json_output=True)

        logging.getLogger("pointledger.registry").debug("quiet")

        assert capsys.readouterr().err == ""
