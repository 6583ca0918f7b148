"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from collections.abc import Callable


def _prefixes() -> list[tuple[type[Exception], str]]:
    """Message prefix per error type; the first ``isinstance`` match wins."""
    from hcp_provisioner.config.loader import ConfigError
    from hcp_provisioner.core.client import APIError
    from hcp_provisioner.core.errors import LocationError, ScopeError
    from hcp_provisioner.engine.errors import (
        ApplyCanceled,
        ApplyError,
        StalePlanError,
        StateLockError,
        StateOrganizationMismatchError,
        ValidationError,
    )

    return [
        (ConfigError, "Configuration error"),
        (ScopeError, "Provider configuration failed"),
        (LocationError, "Invalid resource identifier"),
        (ValidationError, "Validation failed"),
        (StalePlanError, "Plan is stale"),
        (StateOrganizationMismatchError, "State mismatch"),
        (StateLockError, "State lock"),
        (ApplyError, "Apply failed"),
        (ApplyCanceled, "Apply canceled"),
        (APIError, "HCP API error"),
    ]


def _details(exc: Exception, *, color: bool) -> list[str]:
    """Extra lines printed after the headline for errors that carry context."""
    from hcp_provisioner.cli.formatting import format_diagnostics
    from hcp_provisioner.core.errors import ScopeError
    from hcp_provisioner.core.scope import Severity
    from hcp_provisioner.engine.errors import ApplyError, ValidationError

    if isinstance(exc, ValidationError):
        return [f"  - {e}" for e in exc.errors]
    if isinstance(exc, ScopeError):
        warnings = [d for d in exc.diagnostics if d.severity is Severity.WARNING]
        return [format_diagnostics(warnings, color=color)] if warnings else []
    if isinstance(exc, ApplyError):
        s = exc.result.summary()
        done = [
            f"{s[action]} {verb}"
            for action, verb in (("create", "added"), ("update", "replaced"), ("delete", "destroyed"))
            if s[action]
        ]
        return [f"  Partial result: {', '.join(done)}."] if done else []
    return []


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1. No tracebacks are printed.
    """
    from hcp_provisioner.engine.errors import ApplyCanceled, ValidationError

    style: Callable[..., str] = typer.style if color else (lambda text, **_kw: text)
    prefix = next((p for cls, p in _prefixes() if isinstance(exc, cls)), "Error")

    if isinstance(exc, ValidationError | ApplyCanceled):
        headline = f"{prefix}." if isinstance(exc, ApplyCanceled) else f"{prefix}:"
    else:
        headline = f"{prefix}: {exc}"

    typer.echo(style(headline, fg=typer.colors.RED), err=True)
    for line in _details(exc, color=color):
        typer.echo(line, err=True)
    return 1
