"""Availability data models, enums, and settings.

Defines the core types shared across the availability sub-package:
- Provider and FailureCategory enums
- AvailabilitySettings for per-machine configuration (validated)
- ClassifiedFailure for a single probe outcome
- RetryContext for the machine's mutable retry bookkeeping
- AvailabilityState enum and AvailabilitySnapshot for observers
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_BACKOFF_MS = 10_000  # 10 seconds
DEFAULT_MAX_BACKOFF_MS = 600_000  # 10 minutes
DEFAULT_RATE_LIMIT_MS = 60_000  # 60 seconds

# Spellings accepted from config files and environment overrides
_PROVIDER_ALIASES = {
    "none": "disabled",
    "off": "disabled",
    "anthropic": "enabled",
    "on": "enabled",
}


class Provider(str, Enum):
    """Whether the LLM provider is in use at all."""

    DISABLED = "disabled"
    ENABLED = "enabled"


class FailureCategory(str, Enum):
    """Classification of probe failures for recovery decisions."""

    INVALID_CREDENTIAL = "invalid-credential"
    RATE_LIMITED = "rate-limited"
    SERVICE_DOWN = "service-down"


class AvailabilityState(str, Enum):
    """States of the availability machine."""

    INITIALIZING = "initializing"
    DISABLED = "disabled"
    CHECKING = "checking"
    AVAILABLE = "available"
    CREDENTIAL_MISSING = "credentialMissing"
    INVALID_CREDENTIAL = "invalidCredential"
    RATE_LIMITED = "rateLimited"
    SERVICE_DOWN = "serviceDown"


class AvailabilitySettings(BaseModel):
    """Construction input for an availability machine.

    Immutable; reconfiguration produces a new instance via
    :meth:`with_provider`.
    """

    model_config = ConfigDict(frozen=True)

    provider: Provider = Field(default=Provider.ENABLED, description="Provider switch")
    credential: Optional[str] = Field(default=None, repr=False, description="API key")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, description="Automatic retry cap")
    base_backoff_ms: int = Field(default=DEFAULT_BASE_BACKOFF_MS, ge=1, description="First backoff delay")
    max_backoff_ms: int = Field(default=DEFAULT_MAX_BACKOFF_MS, ge=1, description="Backoff ceiling")
    rate_limit_default_ms: int = Field(
        default=DEFAULT_RATE_LIMIT_MS, ge=1, description="Delay when no Retry-After hint is given"
    )

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _PROVIDER_ALIASES.get(normalized, normalized)
        return value

    @field_validator("credential", mode="before")
    @classmethod
    def _blank_credential_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def validate_backoff_ordering(self) -> "AvailabilitySettings":
        """Assert base_backoff_ms <= max_backoff_ms."""
        if self.base_backoff_ms > self.max_backoff_ms:
            raise ValueError(
                f"base_backoff_ms ({self.base_backoff_ms}) must not exceed "
                f"max_backoff_ms ({self.max_backoff_ms})"
            )
        return self

    @property
    def has_credential(self) -> bool:
        return self.credential is not None

    def with_provider(
        self,
        provider: Provider | str,
        credential: Optional[str] = None,
    ) -> "AvailabilitySettings":
        """Return a copy with provider and credential replaced.

        Retry tuning (max_retries, backoff bounds, rate-limit default) is kept.
        """
        data = self.model_dump()
        data["provider"] = provider
        data["credential"] = credential
        return AvailabilitySettings.model_validate(data)

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize for display; the credential is reduced to a presence flag."""
        data = self.model_dump(mode="json", exclude={"credential"})
        data["has_credential"] = self.has_credential
        return data


@dataclass(frozen=True)
class ClassifiedFailure:
    """Outcome of a failed probe, produced per attempt and never persisted."""

    category: FailureCategory
    message: str
    http_status: Optional[int] = None
    retry_after_ms: Optional[int] = None


@dataclass(frozen=True)
class RetryContext:
    """Retry bookkeeping owned by the availability machine.

    Attributes:
        retry_count: Consecutive automatic retries since last success/reset
        current_backoff_ms: Delay used for the next scheduled service-down retry
        retry_after_ms: Most recent server-provided delay hint (used once)
        last_error_message: Diagnostic text for display
        last_error_code: HTTP status of the last failure, if any
    """

    retry_count: int
    current_backoff_ms: int
    retry_after_ms: Optional[int] = None
    last_error_message: Optional[str] = None
    last_error_code: Optional[int] = None

    @classmethod
    def initial(cls, settings: AvailabilitySettings) -> "RetryContext":
        return cls(retry_count=0, current_backoff_ms=settings.base_backoff_ms)

    def reset(self, settings: AvailabilitySettings) -> "RetryContext":
        return RetryContext.initial(settings)

    def with_error(self, failure: ClassifiedFailure) -> "RetryContext":
        return replace(
            self,
            last_error_message=failure.message,
            last_error_code=failure.http_status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "retry_count": self.retry_count,
            "current_backoff_ms": self.current_backoff_ms,
            "retry_after_ms": self.retry_after_ms,
            "last_error_message": self.last_error_message,
            "last_error_code": self.last_error_code,
        }


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Read-only view of the machine handed to observers."""

    state: AvailabilityState
    context: RetryContext
    settings: AvailabilitySettings

    @property
    def is_available(self) -> bool:
        return self.state == AvailabilityState.AVAILABLE

    @property
    def retries_exhausted(self) -> bool:
        return (
            self.state == AvailabilityState.SERVICE_DOWN
            and self.context.retry_count >= self.settings.max_retries
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "context": self.context.to_dict(),
            "settings": self.settings.to_public_dict(),
        }
