"""Per-invocation CLI state shared through ``click.Context.obj``."""

from dataclasses import dataclass, field
from typing import Optional

import click

from tender_agent.cli.output import emit_error
from tender_agent.config.tender import TenderConfig, set_config
from tender_agent.core.errors.config import ConfigError


@dataclass
class CliContext:
    """Global options plus the lazily loaded configuration.

    Loading is deferred so commands that never touch the config file
    (``config path``) still work when it is broken.
    """

    config_file: Optional[str] = None
    log_level: Optional[str] = None
    _config: Optional[TenderConfig] = field(default=None, repr=False)

    @property
    def config(self) -> TenderConfig:
        if self._config is None:
            try:
                config = TenderConfig.from_env(self.config_file)
            except ConfigError as e:
                emit_error(
                    str(e),
                    code="CONFIG_ERROR",
                    error_type="validation",
                    remediation="Fix the config file, or remove it to use the defaults",
                    details={"path": e.path} if e.path else None,
                )
            if self.log_level:
                config.log.level = self.log_level
            config.setup_logging()
            set_config(config)
            self._config = config
        return self._config


def get_context(ctx: click.Context) -> CliContext:
    """Return the CliContext stored by the root group."""
    obj = ctx.find_object(CliContext)
    if obj is None:
        raise click.UsageError("CLI context not initialized")
    return obj
