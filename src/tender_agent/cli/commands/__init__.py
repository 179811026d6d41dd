"""CLI commands."""

from tender_agent.cli.commands.config import config_group
from tender_agent.cli.commands.status import status_cmd
from tender_agent.cli.commands.watch import watch_cmd

__all__ = [
    "config_group",
    "status_cmd",
    "watch_cmd",
]
