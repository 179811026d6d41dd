"""tender-agent command-line entry point."""

from typing import Optional

import click

from tender_agent import __version__
from tender_agent.cli.commands import config_group, status_cmd, watch_cmd
from tender_agent.cli.context import CliContext

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.version_option(__version__, prog_name="tender-agent")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    envvar="TENDER_CONFIG_FILE",
    default=None,
    help="Config file (default: $XDG_CONFIG_HOME/tender/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str]) -> None:
    """Tender agent: LLM availability monitoring."""
    ctx.obj = CliContext(
        config_file=config_file,
        log_level=log_level.upper() if log_level else None,
    )


cli.add_command(status_cmd)
cli.add_command(watch_cmd)
cli.add_command(config_group)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
