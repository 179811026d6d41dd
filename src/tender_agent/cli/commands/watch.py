"""tender-agent watch: stream availability transitions.

Keeps the monitor running (automatic retries included) and prints one plain
line per transition, pipe-friendly and without escape codes.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import click

from tender_agent.cli.context import get_context
from tender_agent.cli.monitoring import build_monitor
from tender_agent.cli.output import emit_error
from tender_agent.cli.resilience import handle_keyboard_interrupt
from tender_agent.config.tender import TenderConfig
from tender_agent.core.availability import (
    AvailabilitySettings,
    AvailabilitySnapshot,
    status_display,
)
from tender_agent.core.errors.config import ConfigError

logger = logging.getLogger(__name__)


def _print_transition(snapshot: AvailabilitySnapshot) -> None:
    """Print a single snapshot as a plain-text line."""
    ts = datetime.now(timezone.utc).isoformat()[:19]
    display = status_display(snapshot.state, snapshot.context.retry_after_ms)
    detail = snapshot.context.last_error_message or ""
    if snapshot.context.retry_count:
        detail = f"{detail} (retry {snapshot.context.retry_count}/{snapshot.settings.max_retries})".strip()
    click.echo(f"{ts}  {snapshot.state.value:<18s}  {display.text:<18s}  {detail}".rstrip())


async def _watch(
    config: TenderConfig,
    settings: AvailabilitySettings,
    max_seconds: Optional[float],
) -> None:
    monitor = build_monitor(config, settings)
    monitor.subscribe(_print_transition)
    monitor.start()
    try:
        if max_seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(max_seconds)
    finally:
        await monitor.aclose()


@click.command("watch")
@click.option(
    "--max-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Stop after this many seconds (default: run until Ctrl+C).",
)
@click.pass_context
@handle_keyboard_interrupt("Watch stopped")
def watch_cmd(ctx: click.Context, max_seconds: Optional[float]) -> None:
    """Monitor LLM availability and print every state transition.

    Press Ctrl+C to exit.
    """
    config = get_context(ctx).config

    try:
        settings = config.to_availability_settings()
    except ConfigError as e:
        emit_error(
            str(e),
            code="CONFIG_ERROR",
            error_type="validation",
            remediation="Check the [agent] section of the config file",
        )

    logger.debug("Watching availability (max_seconds=%s)", max_seconds)
    asyncio.run(_watch(config, settings, max_seconds))
    click.echo("--- watch ended ---")
