"""Shared fixtures: isolate tests from the user's environment and config."""

import logging

import pytest

from tender_agent.config.tender import set_config

_ENV_VARS = (
    "TENDER_CONFIG_FILE",
    "TENDER_LLM",
    "TENDER_API_KEY",
    "TENDER_LOG_LEVEL",
    "ANTHROPIC_API_KEY",
    "XDG_CONFIG_HOME",
    "XDG_DATA_HOME",
    "XDG_STATE_HOME",
    "XDG_CACHE_HOME",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point HOME at a temp dir and drop tender-related variables."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    yield home
    set_config(None)


@pytest.fixture(autouse=True)
def reset_tender_logging():
    """Remove handlers installed by setup_logging during a test."""
    root_logger = logging.getLogger("tender_agent")
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
