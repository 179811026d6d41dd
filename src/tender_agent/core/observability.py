"""
Observability utilities for tender-agent.

Provides secret redaction and structured audit logging for the
availability subsystem. Audit events are written to a dedicated logger
(``tender_agent.core.observability.audit``) so hosts can route or silence
them independently of diagnostic logs.

Example:

    from tender_agent.core.observability import audit_log

    audit_log("state_change", old_state="checking", new_state="available")
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Secret redaction
# =============================================================================

# Regex to detect potential API keys / bearer tokens in strings
_SECRET_PATTERN = re.compile(
    r"(?i)"
    r"(?:"
    r"(?:api[_-]?key|x-api-key|token|bearer|authorization|secret|password|credential)"
    r"[\s:=]+"
    r")"
    r"['\"]?([^\s'\"]{8,})['\"]?",
)

# Anthropic-style keys can leak through exception text without a label
_BARE_KEY_PATTERN = re.compile(r"sk-ant-[A-Za-z0-9_\-]{8,}")

REDACTED = "****"


def redact_secrets(text: str) -> str:
    """Remove API keys and sensitive tokens from a text string.

    Scans for patterns like ``api_key=...``, ``Bearer ...``, ``x-api-key: ...``
    and bare ``sk-ant-...`` keys, replacing the secret with ``"****"``.

    Args:
        text: Input text that may contain secrets.

    Returns:
        Text with secrets replaced by redacted placeholders.
    """
    if not text:
        return text

    def _replace(match: re.Match[str]) -> str:
        full = match.group(0)
        secret = match.group(1)
        return full.replace(secret, REDACTED)

    redacted = _SECRET_PATTERN.sub(_replace, text)
    return _BARE_KEY_PATTERN.sub(REDACTED, redacted)


# =============================================================================
# Audit logging
# =============================================================================


class AuditEventType(Enum):
    """Types of audit events emitted by the availability subsystem."""

    STATE_CHANGE = "state_change"
    PROBE_STARTED = "probe_started"
    PROBE_SUCCEEDED = "probe_succeeded"
    PROBE_FAILED = "probe_failed"
    PROBE_DISCARDED = "probe_discarded"
    RETRY_SCHEDULED = "retry_scheduled"
    RETRIES_EXHAUSTED = "retries_exhausted"
    CONFIG_CHANGE = "config_change"


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    monitor_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.monitor_id:
            result["monitor_id"] = self.monitor_id
        return result


class AuditLogger:
    """
    Structured audit logging for availability events.

    Audit logs are written to a separate logger for easy filtering.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._logger.info(
            "AUDIT: %s", event.event_type.value, extra={"audit": event.to_dict()}
        )

    def state_change(
        self,
        old_state: str,
        new_state: str,
        monitor_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        """Log a state machine transition."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.STATE_CHANGE,
                monitor_id=monitor_id,
                details={"old_state": old_state, "new_state": new_state, **details},
            )
        )


# Global audit logger
_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Args:
        event_type: Type of event (state_change, probe_started, probe_succeeded,
                    probe_failed, probe_discarded, retry_scheduled,
                    retries_exhausted, config_change)
        **details: Additional details to include in the audit log
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.STATE_CHANGE
        details["original_event_type"] = event_type

    monitor_id = details.pop("monitor_id", None)
    _audit.log(AuditEvent(event_type=event_enum, details=details, monitor_id=monitor_id))
