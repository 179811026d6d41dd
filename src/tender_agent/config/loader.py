"""TenderConfig loading logic.

Provides ``_TenderConfigLoader``, a mixin whose methods are inherited by
``TenderConfig`` (defined in ``tender.py``). Keeping the loading code here
leaves ``tender.py`` focused on fields and accessors.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, cast

from tender_agent.config.domains import AgentConfig, LoggingConfig, parse_provider
from tender_agent.config.parsing import _normalize_log_level
from tender_agent.config.paths import CONFIG_FILE_ENV_VAR, get_config_file_path
from tender_agent.core.errors.config import ConfigError

if TYPE_CHECKING:
    from tender_agent.config.tender import TenderConfig

logger = logging.getLogger(__name__)

ENV_LLM = "TENDER_LLM"
ENV_API_KEY = "TENDER_API_KEY"
ENV_LOG_LEVEL = "TENDER_LOG_LEVEL"
ENV_FALLBACK_API_KEY = "ANTHROPIC_API_KEY"


class _TenderConfigLoader:
    """Mixin providing config-loading methods for ``TenderConfig``.

    At runtime ``self`` is always a ``TenderConfig`` instance.
    """

    if TYPE_CHECKING:

        def __init_subclass__(cls, **kwargs: Any) -> None: ...

        agent: AgentConfig
        log: LoggingConfig
        config_file: Optional[Path]

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "TenderConfig":
        """
        Create configuration from environment variables and the TOML file.

        Priority (highest to lowest):
        1. Environment variables (TENDER_LLM, TENDER_API_KEY, TENDER_LOG_LEVEL)
        2. TOML file (*config_file*, $TENDER_CONFIG_FILE, or
           $XDG_CONFIG_HOME/tender/config.toml)
        3. ANTHROPIC_API_KEY, only when no key was configured above
        4. Default values

        Raises:
            ConfigError: If the config file exists but is unreadable or invalid.
        """
        config = cls()

        explicit = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        path = Path(explicit).expanduser() if explicit else get_config_file_path()
        config._load_toml(path, required=bool(explicit))

        config._load_env()

        if config.agent.api_key is None:
            fallback = os.environ.get(ENV_FALLBACK_API_KEY, "").strip()
            if fallback:
                config.agent.api_key = fallback
                logger.debug("Using API key from %s", ENV_FALLBACK_API_KEY)

        return cast("TenderConfig", config)

    def _load_toml(self, path: Path, *, required: bool = False) -> None:
        """Load configuration from a TOML file.

        A missing file leaves the defaults in place. Anything else that goes
        wrong is a ConfigError.
        """
        if not path.exists():
            if required:
                logger.warning("Config file not found: %s", path)
            else:
                logger.debug("No config file at %s, using defaults", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"Failed to read config file: {path}", path=str(path)) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Config file is not valid TOML: {path}: {e}", path=str(path)) from e

        source = str(path)
        for section in ("agent", "logging"):
            if section in data and not isinstance(data[section], dict):
                raise ConfigError(f"[{section}] in {source} must be a table", path=source)

        if "agent" in data:
            self.agent = AgentConfig.from_toml_dict(data["agent"], source=source)
        if "logging" in data:
            self.log = LoggingConfig.from_toml_dict(data["logging"], source=source)

        self.config_file = path
        logger.debug("Loaded config from %s", path)

    def _load_env(self) -> None:
        """Apply environment overrides; invalid values are ignored with a warning."""
        if llm := os.environ.get(ENV_LLM):
            try:
                self.agent.llm = parse_provider(llm)
            except ValueError as e:
                logger.warning("Ignoring %s: %s", ENV_LLM, e)

        if api_key := os.environ.get(ENV_API_KEY, "").strip():
            self.agent.api_key = api_key

        if level := os.environ.get(ENV_LOG_LEVEL):
            normalized = _normalize_log_level(level)
            if normalized is None:
                logger.warning("Ignoring %s: unknown level %r", ENV_LOG_LEVEL, level)
            else:
                self.log.level = normalized
