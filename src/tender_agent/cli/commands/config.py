"""tender-agent config: inspect resolved configuration and paths."""

import click

from tender_agent.cli.context import get_context
from tender_agent.cli.output import emit_success
from tender_agent.config.paths import (
    get_config_file_path,
    get_database_path,
    get_debug_log_path,
    get_tender_paths,
)


@click.group("config")
def config_group() -> None:
    """Inspect tender-agent configuration."""


@config_group.command("show")
@click.pass_context
def config_show_cmd(ctx: click.Context) -> None:
    """Print the resolved configuration (API key redacted)."""
    emit_success(get_context(ctx).config.to_public_dict())


@config_group.command("path")
@click.pass_context
def config_path_cmd(ctx: click.Context) -> None:
    """Print the config file location and XDG directories."""
    cli_ctx = get_context(ctx)
    config_file = cli_ctx.config_file or str(get_config_file_path())
    emit_success(
        {
            "config_file": config_file,
            "paths": get_tender_paths().to_dict(),
            "database": str(get_database_path()),
            "debug_log": str(get_debug_log_path()),
        }
    )
