"""Availability probe error classes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tender_agent.core.availability.models import ClassifiedFailure, FailureCategory


class AvailabilityError(Exception):
    """A probe of the LLM provider failed.

    Raised by the prober and converted into a state transition by the
    availability monitor; it never reaches the host.

    Attributes:
        failure: The classified outcome of the failed probe.
    """

    def __init__(self, failure: ClassifiedFailure):
        self.failure = failure
        super().__init__(failure.message)

    @property
    def category(self) -> FailureCategory:
        return self.failure.category

    @property
    def status_code(self) -> Optional[int]:
        return self.failure.http_status

    @property
    def retry_after_ms(self) -> Optional[int]:
        return self.failure.retry_after_ms
