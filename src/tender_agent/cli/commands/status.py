"""tender-agent status: one-shot availability check."""

import asyncio
import logging

import click

from tender_agent.cli.context import get_context
from tender_agent.cli.monitoring import build_monitor, status_payload
from tender_agent.cli.output import emit_error, emit_success
from tender_agent.cli.resilience import handle_keyboard_interrupt
from tender_agent.config.tender import TenderConfig
from tender_agent.core.availability import AvailabilitySettings, AvailabilitySnapshot
from tender_agent.core.errors.config import ConfigError

logger = logging.getLogger(__name__)


async def _resolve_status(
    config: TenderConfig,
    settings: AvailabilitySettings,
    timeout: float,
) -> AvailabilitySnapshot:
    monitor = build_monitor(config, settings)
    monitor.start()
    try:
        return await monitor.wait_until_settled(timeout=timeout)
    finally:
        await monitor.aclose()


@click.command("status")
@click.option(
    "--timeout",
    type=float,
    default=30.0,
    show_default=True,
    help="Seconds to wait for the availability check to finish.",
)
@click.pass_context
@handle_keyboard_interrupt()
def status_cmd(ctx: click.Context, timeout: float) -> None:
    """Check LLM availability once and report the resulting state.

    Runs a single probe (if the provider is enabled and a key is set) and
    prints the state, retry context and status-bar text. Automatic retries
    are not waited for.
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

    try:
        snapshot = asyncio.run(_resolve_status(config, settings, timeout))
    except asyncio.TimeoutError:
        emit_error(
            f"Availability check did not finish within {timeout}s",
            code="TIMEOUT",
            error_type="unavailable",
            remediation="Retry with a larger --timeout or check network connectivity",
            details={"timeout": timeout},
        )

    logger.debug("Status resolved to %s", snapshot.state.value)
    emit_success(status_payload(snapshot))
