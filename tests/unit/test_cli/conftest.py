"""Shared fixtures for CLI command tests."""

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(isolated_environment, monkeypatch):
    """Keep diagnostic logging out of captured command output."""
    monkeypatch.setenv("TENDER_LOG_LEVEL", "ERROR")


@pytest.fixture
def config_file(tmp_path):
    """Write a config file and return its path (content set per test)."""
    path = tmp_path / "tender.toml"

    def _write(content: str):
        path.write_text(content)
        return path

    return _write
