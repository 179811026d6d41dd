"""Configuration section dataclasses.

Each class maps one TOML table (``[agent]``, ``[logging]``) and knows how to
build itself from the parsed dict.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from tender_agent.config.parsing import (
    MIN_CONFIG_MS,
    _normalize_log_level,
    _parse_int,
    _try_parse_bool,
)
from tender_agent.core.availability.models import (
    DEFAULT_BASE_BACKOFF_MS,
    DEFAULT_MAX_BACKOFF_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_MS,
    Provider,
)
from tender_agent.core.availability.prober import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS
from tender_agent.core.errors.config import ConfigError

logger = logging.getLogger(__name__)

_PROVIDER_NAMES = {
    "none": Provider.DISABLED,
    "disabled": Provider.DISABLED,
    "off": Provider.DISABLED,
    "anthropic": Provider.ENABLED,
    "enabled": Provider.ENABLED,
    "on": Provider.ENABLED,
}

_AGENT_MS_FIELDS = ("base_backoff_ms", "max_backoff_ms", "rate_limit_default_ms", "probe_timeout_ms")


def parse_provider(value: Any) -> Provider:
    """Map a config spelling (``none``/``anthropic``/...) to a Provider.

    Raises:
        ValueError: If *value* is not a recognized provider name.
    """
    if isinstance(value, Provider):
        return value
    provider = _PROVIDER_NAMES.get(str(value).strip().lower())
    if provider is None:
        raise ValueError(
            f"unknown llm provider {value!r} (expected one of: {', '.join(sorted(_PROVIDER_NAMES))})"
        )
    return provider


@dataclass
class AgentConfig:
    """LLM availability and retry behavior.

    Attributes:
        llm: Provider switch; ``none`` disables LLM features
        api_key: Credential; falls back to ANTHROPIC_API_KEY when unset
        max_retries: Automatic retries before giving up on service errors
        base_backoff_ms: Initial exponential-backoff delay
        max_backoff_ms: Backoff ceiling
        rate_limit_default_ms: Delay when a 429 carries no Retry-After
        probe_timeout_ms: Upper bound on a single availability probe
        base_url: Anthropic API base URL
    """

    llm: Provider = Provider.ENABLED
    api_key: Optional[str] = None
    max_retries: int = DEFAULT_MAX_RETRIES
    base_backoff_ms: int = DEFAULT_BASE_BACKOFF_MS
    max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS
    rate_limit_default_ms: int = DEFAULT_RATE_LIMIT_MS
    probe_timeout_ms: int = DEFAULT_TIMEOUT_MS
    base_url: str = DEFAULT_BASE_URL

    def __repr__(self) -> str:
        return (
            f"AgentConfig(llm={self.llm.value!r}, has_api_key={self.api_key is not None}, "
            f"max_retries={self.max_retries}, base_backoff_ms={self.base_backoff_ms}, "
            f"max_backoff_ms={self.max_backoff_ms}, "
            f"rate_limit_default_ms={self.rate_limit_default_ms}, "
            f"probe_timeout_ms={self.probe_timeout_ms}, base_url={self.base_url!r})"
        )

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], *, source: str = "config") -> "AgentConfig":
        """Create config from TOML dict (typically [agent] section).

        Args:
            data: Dict from TOML parsing
            source: Name of the file, used in error messages

        Returns:
            AgentConfig instance

        Raises:
            ConfigError: If any value is of the wrong type or out of range.
        """
        config = cls()
        known = set(config.__dataclass_fields__)
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown key '%s' in [agent] of %s", key, source)

        key = None
        try:
            for key in data:
                value = data[key]
                if key == "llm":
                    config.llm = parse_provider(value)
                elif key == "api_key":
                    if not isinstance(value, str):
                        raise ValueError("must be a string")
                    config.api_key = value.strip() or None
                elif key == "max_retries":
                    config.max_retries = _parse_int(value, minimum=0)
                elif key in _AGENT_MS_FIELDS:
                    setattr(config, key, _parse_int(value, minimum=MIN_CONFIG_MS))
                elif key == "base_url":
                    config.base_url = str(value).strip() or DEFAULT_BASE_URL
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid [agent] setting {key!r} in {source}: {e}", path=source) from e

        if config.base_backoff_ms > config.max_backoff_ms:
            raise ConfigError(
                f"Invalid [agent] setting in {source}: base_backoff_ms "
                f"({config.base_backoff_ms}) must not exceed max_backoff_ms ({config.max_backoff_ms})",
                path=source,
            )
        return config


@dataclass
class LoggingConfig:
    """Logging output settings.

    Attributes:
        level: Level name for the ``tender_agent`` logger
        structured: Emit JSON-style lines instead of plain text
        file: Log to this file instead of stderr
    """

    level: str = "INFO"
    structured: bool = False
    file: Optional[Path] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], *, source: str = "config") -> "LoggingConfig":
        """Create config from TOML dict (typically [logging] section).

        Raises:
            ConfigError: If the level or structured flag is invalid.
        """
        config = cls()
        if "level" in data:
            level = _normalize_log_level(str(data["level"]))
            if level is None:
                raise ConfigError(
                    f"Invalid [logging] level in {source}: {data['level']!r}", path=source
                )
            config.level = level
        if "structured" in data:
            structured = _try_parse_bool(data["structured"])
            if structured is None:
                raise ConfigError(
                    f"Invalid [logging] structured flag in {source}: {data['structured']!r}",
                    path=source,
                )
            config.structured = structured
        if data.get("file"):
            config.file = Path(str(data["file"])).expanduser()
        return config
