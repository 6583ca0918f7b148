"""Command-line entry point: ``hcp-provisioner``."""

from __future__ import annotations

import logging
import os
import sys

import typer

from hcp_provisioner import __version__

app = typer.Typer(
    name="hcp-provisioner",
    no_args_is_help=True,
    add_completion=False,
)

LOG_ENV_VAR = "HCP_LOG"
_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_LEVELS_BY_NAME = {
    name: getattr(logging, name) for name in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
}
_LEVELS_BY_VERBOSITY = (logging.INFO, logging.DEBUG)

# Loggers of the HTTP stack; they only follow the package level at DEBUG.
_TRANSPORT_LOGGERS = ("urllib3", "requests")


def _resolve_log_level(verbose: int) -> int | None:
    """Return the package log level, or None to leave logging unconfigured.

    ``HCP_LOG`` wins over ``-v`` flags. An unknown value falls back to INFO.
    """
    name = os.environ.get(LOG_ENV_VAR, "").strip().upper()
    if name:
        if name not in _LEVELS_BY_NAME:
            typer.echo(
                f"WARNING: invalid {LOG_ENV_VAR} level '{name}', "
                f"expected one of {', '.join(_LEVELS_BY_NAME)}; defaulting to INFO",
                err=True,
            )
        return _LEVELS_BY_NAME.get(name, logging.INFO)
    if verbose <= 0:
        return None
    return _LEVELS_BY_VERBOSITY[min(verbose, len(_LEVELS_BY_VERBOSITY)) - 1]


def _configure_logging(verbose: int) -> None:
    level = _resolve_log_level(verbose)
    if level is None:
        return
    # Root stays at WARNING; only our package (and, when debugging, HTTP) gets louder.
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("hcp_provisioner").setLevel(level)
    if level <= logging.DEBUG:
        for name in _TRANSPORT_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"hcp-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help=f"Increase log verbosity (-v info, -vv debug). {LOG_ENV_VAR} overrides.",
    ),
) -> None:
    """Plan and apply HashiCorp Cloud Platform networks from YAML."""
    _ = version
    _configure_logging(verbose)


# Commands register themselves on ``app`` at import time.
from hcp_provisioner.cli import commands as _commands  # noqa: E402, F401
