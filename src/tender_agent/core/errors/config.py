"""Configuration error classes."""

from typing import Optional


class ConfigError(Exception):
    """Raised when the config file exists but cannot be read or validated.

    Attributes:
        path: Config file that failed to load, when known.
    """

    def __init__(self, message: str, *, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
