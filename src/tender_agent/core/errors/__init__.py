"""Error hierarchy for tender-agent.

Usage:
    from tender_agent.core.errors import AvailabilityError, ConfigError
"""

from tender_agent.core.errors.availability import AvailabilityError
from tender_agent.core.errors.config import ConfigError

__all__ = [
    "AvailabilityError",
    "ConfigError",
]
