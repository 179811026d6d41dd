"""Glue between the resolved config and the availability monitor."""

from typing import Any, Dict, Optional

from tender_agent.config.tender import TenderConfig
from tender_agent.core.availability import (
    AnthropicProber,
    AvailabilityMonitor,
    AvailabilitySettings,
    AvailabilitySnapshot,
    Scheduler,
    requires_user_action,
    status_display,
)


def build_monitor(
    config: TenderConfig,
    settings: AvailabilitySettings,
    *,
    scheduler: Optional[Scheduler] = None,
) -> AvailabilityMonitor:
    """Create a monitor probing the configured endpoint."""
    prober = AnthropicProber(
        base_url=config.agent.base_url,
        timeout_ms=config.agent.probe_timeout_ms,
    )
    return AvailabilityMonitor(
        settings,
        prober,
        scheduler=scheduler,
        probe_timeout_ms=config.agent.probe_timeout_ms,
        name="cli",
    )


def status_payload(snapshot: AvailabilitySnapshot) -> Dict[str, Any]:
    """Snapshot plus status-bar rendering, ready for JSON output."""
    display = status_display(snapshot.state, snapshot.context.retry_after_ms)
    data = snapshot.to_dict()
    data["display"] = {"text": display.text, "color": display.color, "show": display.show}
    data["requires_user_action"] = requires_user_action(
        snapshot.state, snapshot.context, snapshot.settings
    )
    return data
