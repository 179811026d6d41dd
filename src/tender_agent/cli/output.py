"""JSON response envelopes for CLI commands.

Every command writes exactly one JSON document to stdout::

    {"success": true, "data": {...}, "error": null, "meta": {"version": "response-v2"}}

Errors use the same shape with ``success: false``, the message in ``error``,
and ``error_code``/``error_type``/``remediation`` inside ``data``.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, NoReturn, Optional, Sequence

import click

RESPONSE_VERSION = "response-v2"


@dataclass
class CliResponse:
    """Standard response structure for CLI commands."""

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": RESPONSE_VERSION})


def _build_meta(warnings: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"version": RESPONSE_VERSION}
    if warnings:
        meta["warnings"] = list(warnings)
    return meta


def _emit(response: CliResponse) -> None:
    click.echo(json.dumps(asdict(response), indent=2, default=str))


def emit_success(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
) -> None:
    """Write a success envelope to stdout."""
    _emit(CliResponse(success=True, data=dict(data or {}), meta=_build_meta(warnings)))


def emit_error(
    message: str,
    *,
    code: str = "INTERNAL_ERROR",
    error_type: str = "internal",
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    exit_code: int = 1,
) -> NoReturn:
    """Write an error envelope to stdout and exit with *exit_code*."""
    payload: Dict[str, Any] = {"error_code": code, "error_type": error_type}
    if remediation is not None:
        payload["remediation"] = remediation
    if details:
        payload["details"] = dict(details)
    _emit(CliResponse(success=False, data=payload, error=message, meta=_build_meta()))
    raise SystemExit(exit_code)
