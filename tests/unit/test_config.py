"""Tests for layered TOML + environment configuration."""

import logging

import pytest

from tender_agent.config import (
    AgentConfig,
    LoggingConfig,
    TenderConfig,
    get_config,
    get_config_file_path,
    get_tender_paths,
    set_config,
)
from tender_agent.core.availability.models import Provider
from tender_agent.core.errors import ConfigError


def write_config(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestPaths:
    """Tests for XDG path resolution."""

    def test_defaults_under_home(self, isolated_environment):
        paths = get_tender_paths()
        home = isolated_environment
        assert paths.config == home / ".config" / "tender"
        assert paths.data == home / ".local" / "share" / "tender"
        assert paths.state == home / ".local" / "state" / "tender"
        assert paths.cache == home / ".cache" / "tender"

    def test_xdg_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        paths = get_tender_paths()
        assert paths.config == tmp_path / "cfg" / "tender"
        assert paths.data == tmp_path / "data" / "tender"

    def test_config_file_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TENDER_CONFIG_FILE", str(tmp_path / "custom.toml"))
        assert get_config_file_path() == tmp_path / "custom.toml"

    def test_default_config_file(self, isolated_environment):
        assert get_config_file_path() == isolated_environment / ".config" / "tender" / "config.toml"


class TestTomlLoading:
    """Tests for reading the config file."""

    def test_missing_file_uses_defaults(self):
        config = TenderConfig.from_env()
        assert config.agent == AgentConfig()
        assert config.log == LoggingConfig()
        assert config.config_file is None

    def test_xdg_config_file_loaded(self, isolated_environment):
        path = write_config(
            isolated_environment / ".config" / "tender" / "config.toml",
            """
[agent]
llm = "anthropic"
api_key = "sk-ant-from-file"
max_retries = 3
base_backoff_ms = 2000
max_backoff_ms = 20000
rate_limit_default_ms = 30000
probe_timeout_ms = 5000
base_url = "https://proxy.test"

[logging]
level = "debug"
structured = true
""",
        )
        config = TenderConfig.from_env()
        assert config.config_file == path
        assert config.agent.llm == Provider.ENABLED
        assert config.agent.api_key == "sk-ant-from-file"
        assert config.agent.max_retries == 3
        assert config.agent.base_backoff_ms == 2000
        assert config.agent.max_backoff_ms == 20000
        assert config.agent.rate_limit_default_ms == 30000
        assert config.agent.probe_timeout_ms == 5000
        assert config.agent.base_url == "https://proxy.test"
        assert config.log.level == "DEBUG"
        assert config.log.structured is True

    def test_explicit_path(self, tmp_path):
        path = write_config(tmp_path / "explicit.toml", '[agent]\nllm = "none"\n')
        config = TenderConfig.from_env(str(path))
        assert config.agent.llm == Provider.DISABLED

    def test_explicit_missing_path_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="tender_agent.config.loader"):
            config = TenderConfig.from_env(str(tmp_path / "nope.toml"))
        assert config.agent == AgentConfig()
        assert "Config file not found" in caplog.text

    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path / "bad.toml", "[agent\nllm = ")
        with pytest.raises(ConfigError, match="not valid TOML") as exc_info:
            TenderConfig.from_env(str(path))
        assert exc_info.value.path == str(path)

    @pytest.mark.parametrize(
        "body",
        [
            'llm = "gpt"',
            "max_retries = -1",
            "base_backoff_ms = 999",
            "max_backoff_ms = 500",
            "rate_limit_default_ms = 0",
            'max_retries = "five"',
            "api_key = 42",
            "base_backoff_ms = 20000\nmax_backoff_ms = 10000",
        ],
    )
    def test_invalid_agent_values(self, tmp_path, body):
        path = write_config(tmp_path / "config.toml", f"[agent]\n{body}\n")
        with pytest.raises(ConfigError):
            TenderConfig.from_env(str(path))

    def test_section_must_be_table(self, tmp_path):
        path = write_config(tmp_path / "config.toml", 'agent = "enabled"\n')
        with pytest.raises(ConfigError, match="must be a table"):
            TenderConfig.from_env(str(path))

    def test_invalid_log_level(self, tmp_path):
        path = write_config(tmp_path / "config.toml", '[logging]\nlevel = "LOUD"\n')
        with pytest.raises(ConfigError):
            TenderConfig.from_env(str(path))

    def test_unknown_agent_key_warns(self, tmp_path, caplog):
        path = write_config(tmp_path / "config.toml", "[agent]\nmodel = \"x\"\n")
        with caplog.at_level(logging.WARNING, logger="tender_agent.config.domains"):
            TenderConfig.from_env(str(path))
        assert "Ignoring unknown key 'model'" in caplog.text


class TestEnvironmentOverrides:
    """Tests for environment variable precedence."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_config(
            tmp_path / "config.toml",
            '[agent]\nllm = "anthropic"\napi_key = "sk-ant-file"\n[logging]\nlevel = "INFO"\n',
        )
        monkeypatch.setenv("TENDER_LLM", "none")
        monkeypatch.setenv("TENDER_API_KEY", "sk-ant-env")
        monkeypatch.setenv("TENDER_LOG_LEVEL", "warning")

        config = TenderConfig.from_env(str(path))
        assert config.agent.llm == Provider.DISABLED
        assert config.agent.api_key == "sk-ant-env"
        assert config.log.level == "WARNING"

    def test_invalid_env_values_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("TENDER_LLM", "maybe")
        monkeypatch.setenv("TENDER_LOG_LEVEL", "chatty")
        with caplog.at_level(logging.WARNING, logger="tender_agent.config.loader"):
            config = TenderConfig.from_env()
        assert config.agent.llm == Provider.ENABLED
        assert config.log.level == "INFO"
        assert "TENDER_LLM" in caplog.text
        assert "TENDER_LOG_LEVEL" in caplog.text

    def test_anthropic_key_fallback(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-fallback")
        assert TenderConfig.from_env().agent.api_key == "sk-ant-fallback"

    def test_configured_key_beats_fallback(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "config.toml", '[agent]\napi_key = "sk-ant-file"\n')
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-fallback")
        assert TenderConfig.from_env(str(path)).agent.api_key == "sk-ant-file"

    def test_config_file_env_var(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "via-env.toml", "[agent]\nmax_retries = 1\n")
        monkeypatch.setenv("TENDER_CONFIG_FILE", str(path))
        assert TenderConfig.from_env().agent.max_retries == 1


class TestTenderConfig:
    """Tests for TenderConfig accessors."""

    def test_to_availability_settings(self):
        config = TenderConfig(
            agent=AgentConfig(llm=Provider.ENABLED, api_key="sk-ant-x", max_retries=2)
        )
        settings = config.to_availability_settings()
        assert settings.provider == Provider.ENABLED
        assert settings.credential == "sk-ant-x"
        assert settings.max_retries == 2
        assert settings.base_backoff_ms == 10_000

    def test_invalid_combination_raises_config_error(self):
        config = TenderConfig(agent=AgentConfig(base_backoff_ms=5000, max_backoff_ms=1000))
        with pytest.raises(ConfigError):
            config.to_availability_settings()

    def test_public_dict_redacts_key(self):
        config = TenderConfig(agent=AgentConfig(api_key="sk-ant-secret"))
        data = config.to_public_dict()
        assert data["agent"]["has_api_key"] is True
        assert "sk-ant-secret" not in str(data)
        assert "sk-ant-secret" not in repr(config)

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "debug.log"
        config = TenderConfig(log=LoggingConfig(level="DEBUG", file=log_file))
        config.setup_logging()
        config.setup_logging()

        root_logger = logging.getLogger("tender_agent")
        file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert root_logger.level == logging.DEBUG

        logging.getLogger("tender_agent.test").debug("hello file")
        file_handlers[0].flush()
        assert "hello file" in log_file.read_text()

    def test_global_config(self):
        config = TenderConfig()
        set_config(config)
        assert get_config() is config
        set_config(None)
        assert get_config() is not config
