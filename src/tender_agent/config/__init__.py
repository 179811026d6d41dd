"""Configuration package for tender-agent.

Sub-modules:
    parsing  – value parsing helpers
    paths    – XDG base-directory paths
    domains  – AgentConfig, LoggingConfig
    loader   – TenderConfig loading mixin (_TenderConfigLoader)
    tender   – TenderConfig dataclass, get_config/set_config globals
"""

from tender_agent.config.domains import AgentConfig, LoggingConfig, parse_provider  # noqa: F401
from tender_agent.config.paths import (  # noqa: F401
    TenderPaths,
    get_config_file_path,
    get_database_path,
    get_debug_log_path,
    get_tender_paths,
)
from tender_agent.config.tender import TenderConfig, get_config, set_config  # noqa: F401
