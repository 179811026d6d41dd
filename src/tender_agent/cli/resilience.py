"""Interrupt handling for long-running CLI commands."""

import functools
import logging
from typing import Any, Callable, TypeVar

import click

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_keyboard_interrupt(message: str = "Interrupted") -> Callable[[F], F]:
    """Turn Ctrl+C into a clean exit (status 0) instead of a traceback."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                logger.debug("%s: %s", func.__name__, message)
                click.echo(f"--- {message.lower()} ---", err=True)
                return None

        return wrapper  # type: ignore[return-value]

    return decorator
