"""TenderConfig dataclass and global configuration state.

Defines ``TenderConfig`` (fields and accessors) and the global
``get_config`` / ``set_config`` helpers. Loading logic lives in the
``_TenderConfigLoader`` mixin (``loader.py``).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from tender_agent.config.domains import AgentConfig, LoggingConfig
from tender_agent.config.loader import _TenderConfigLoader
from tender_agent.core.availability.models import AvailabilitySettings
from tender_agent.core.errors.config import ConfigError

_ROOT_LOGGER = "tender_agent"


@dataclass
class TenderConfig(_TenderConfigLoader):
    """Agent configuration with support for env vars and TOML overrides."""

    agent: AgentConfig = field(default_factory=AgentConfig)
    log: LoggingConfig = field(default_factory=LoggingConfig)

    # File the values were read from, if any
    config_file: Optional[Path] = None

    def to_availability_settings(self) -> AvailabilitySettings:
        """Build the availability machine input from the [agent] section.

        Raises:
            ConfigError: If the combined values do not validate.
        """
        try:
            return AvailabilitySettings(
                provider=self.agent.llm,
                credential=self.agent.api_key,
                max_retries=self.agent.max_retries,
                base_backoff_ms=self.agent.base_backoff_ms,
                max_backoff_ms=self.agent.max_backoff_ms,
                rate_limit_default_ms=self.agent.rate_limit_default_ms,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid agent configuration: {e}") from e

    def to_public_dict(self) -> Dict[str, Any]:
        """Resolved config for display; the API key is reduced to a presence flag."""
        return {
            "config_file": str(self.config_file) if self.config_file else None,
            "agent": {
                "llm": self.agent.llm.value,
                "has_api_key": self.agent.api_key is not None,
                "max_retries": self.agent.max_retries,
                "base_backoff_ms": self.agent.base_backoff_ms,
                "max_backoff_ms": self.agent.max_backoff_ms,
                "rate_limit_default_ms": self.agent.rate_limit_default_ms,
                "probe_timeout_ms": self.agent.probe_timeout_ms,
                "base_url": self.agent.base_url,
            },
            "logging": {
                "level": self.log.level,
                "structured": self.log.structured,
                "file": str(self.log.file) if self.log.file else None,
            },
        }

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log.level, logging.INFO)

        if self.log.structured:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler: logging.Handler
        if self.log.file is not None:
            self.log.file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(self.log.file, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger(_ROOT_LOGGER)
        root_logger.setLevel(level)
        # Repeated setup replaces the handler instead of duplicating output
        for existing in list(root_logger.handlers):
            if getattr(existing, "_tender_handler", False):
                root_logger.removeHandler(existing)
                existing.close()
        handler._tender_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[TenderConfig] = None


def get_config() -> TenderConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = TenderConfig.from_env()
    return _config


def set_config(config: Optional[TenderConfig]) -> None:
    """Set (or with ``None``, clear) the global configuration instance."""
    global _config
    _config = config
