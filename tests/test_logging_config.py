"""Tests for two-phase singleton logging configuration."""

from __future__ import annotations

import logging
import os
import sys
from unittest.mock import patch

import pytest

from reviewer.logging_config import (
    _SUPPRESSED_LOGGERS,
    LOG_FORMAT,
    cleanup_third_party_handlers,
    set_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_flags() -> None:
    """Reset singleton flags before each test."""
    import reviewer.logging_config as mod

    mod._phase1_done = False
    mod._phase2_done = False


def test_setup_logging_is_idempotent() -> None:
    with patch("reviewer.logging_config.logging.basicConfig") as mock_bc:
        setup_logging()
        setup_logging()  # second call is no-op
        mock_bc.assert_called_once()


def test_litellm_log_env_var_set() -> None:
    os.environ.pop("LITELLM_LOG", None)
    setup_logging()
    assert os.environ.get("LITELLM_LOG") == "WARNING"


def test_litellm_log_env_var_preserves_existing() -> None:
    """Phase 1 uses setdefault — doesn't overwrite user-set value."""
    os.environ["LITELLM_LOG"] = "ERROR"
    try:
        setup_logging()
        assert os.environ["LITELLM_LOG"] == "ERROR"
    finally:
        os.environ.pop("LITELLM_LOG", None)


def test_suppressed_loggers_at_warning() -> None:
    setup_logging()
    for name in _SUPPRESSED_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING, name


def test_cleanup_clears_litellm_handlers() -> None:
    lg = logging.getLogger("LiteLLM")
    lg.addHandler(logging.StreamHandler())
    lg.propagate = False

    cleanup_third_party_handlers()
    assert lg.handlers == []
    assert lg.propagate is True


def test_cleanup_is_idempotent() -> None:
    lg = logging.getLogger("LiteLLM")
    lg.addHandler(logging.StreamHandler())
    cleanup_third_party_handlers()
    assert len(lg.handlers) == 0

    handler = logging.StreamHandler()
    lg.addHandler(handler)
    cleanup_third_party_handlers()
    assert lg.handlers == [handler]  # phase 2 was a no-op
    lg.removeHandler(handler)


def test_set_level_changes_root() -> None:
    root = logging.getLogger()
    original = root.level
    try:
        set_level("debug")
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(original)


def test_log_format_includes_thread_name() -> None:
    """Worker threads are distinguishable in log output."""
    assert "%(threadName)s" in LOG_FORMAT


def test_cli_import_clears_litellm_handlers_after_import() -> None:
    """Phase 2 in cli.py runs once litellm has added its handlers."""
    import reviewer.cli  # noqa: F401

    assert "litellm" in sys.modules
    assert logging.getLogger("LiteLLM").handlers == []
