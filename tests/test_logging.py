"""
Tests for logging setup.
"""

import sys
import os
import logging

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.core.logging_config import setup_logging, get_logger


def test_level_names_are_accepted(tmp_path):
    log_file = tmp_path / "engine.log"
    root = setup_logging("debug", log_file=str(log_file))
    try:
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        get_logger("studio_scheduler.test").debug("ledger recomputed")
        for handler in root.handlers:
            handler.flush()
        assert "ledger recomputed" in log_file.read_text(encoding="utf-8")
    finally:
        setup_logging(logging.INFO, log_file="")


def test_setup_is_idempotent():
    setup_logging(logging.INFO, log_file="")
    root = setup_logging(logging.WARNING, log_file="")
    assert len(root.handlers) == 1
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("studio_scheduler").level == logging.WARNING
    setup_logging(logging.INFO, log_file="")


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        setup_logging("chatty")
