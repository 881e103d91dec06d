"""
Tests for structured logging setup.
"""
import json

import pytest
import structlog

from cost_accrual.core.normalize import normalize_frequency, stored_flag
from cost_accrual.observability.logger import (
    configure_default_logging,
    get_logger,
    setup_logging,
)
from cost_accrual.storage.models import Frequency


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
    configure_default_logging()


class TestLogging:
    """Test logger configuration."""

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            setup_logging("verbose")

    def test_json_lines_to_stderr(self, capsys):
        setup_logging("info", json_output=True)
        get_logger("tests").info("fixed_cost.created", cost_id="abc")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "fixed_cost.created"
        assert entry["cost_id"] == "abc"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_filtering(self, capsys):
        setup_logging("error", json_output=True)
        get_logger("tests").warning("ignored")
        assert capsys.readouterr().err == ""

    def test_unrecognized_frequency_is_logged(self, capsys):
        setup_logging("warning", json_output=True)
        assert normalize_frequency("yearly") is Frequency.DAILY

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["event"] == "frequency.unrecognized"
        assert entry["value"] == "YEARLY"

    def test_unreadable_flag_is_logged(self, capsys):
        setup_logging("warning", json_output=True)
        assert stored_flag({"id": "c1", "is_fixed": "maybe"}, "is_fixed", default=False) is False

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["event"] == "flag.unrecognized"
        assert entry["column"] == "is_fixed"
        assert entry["cost_id"] == "c1"

    def test_default_configuration_filters_info(self, capsys):
        structlog.reset_defaults()
        configure_default_logging()
        get_logger("tests").info("fixed_cost.created")
        get_logger("tests").warning("frequency.unrecognized")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "fixed_cost.created" not in captured.err
        assert "frequency.unrecognized" in captured.err

    def test_default_configuration_keeps_existing_setup(self, capsys):
        setup_logging("info", json_output=True)
        configure_default_logging()
        get_logger("tests").info("fixed_cost.created")
        assert "fixed_cost.created" in capsys.readouterr().err
