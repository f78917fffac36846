"""
Tests for small helpers and logging setup
"""
import logging

import pytest

from albedoanalysis.logging_config import level_from_name, setup_logging
from albedoanalysis.utils import clamp, round_half_up


@pytest.mark.parametrize("value, expected", [(2.5, 3), (2.4999, 2), (-2.5, -2), (0.0, 0), (7.5, 8)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_clamp():
    assert clamp(5, 0, 1) == 1
    assert clamp(-5, 0, 1) == 0
    assert clamp(0.3, 0, 1) == 0.3


class TestLogging:
    def test_level_from_name(self):
        assert level_from_name("debug") == logging.DEBUG
        assert level_from_name(None) == logging.INFO
        assert level_from_name("nonsense", default=logging.ERROR) == logging.ERROR

    def test_setup_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ALBEDO_LOG_LEVEL", "warning")
        logger = setup_logging()
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_setup_with_file(self, tmp_path):
        log_file = tmp_path / "app.log"
        logger = setup_logging(logging.DEBUG, log_file=str(log_file))
        assert len(logger.handlers) == 2
        for handler in logger.handlers:
            handler.close()
        assert "Logging initialized" in log_file.read_text(encoding="utf-8")
