"""CLI command implementations."""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer

from hcp_provisioner.cli import app
from hcp_provisioner.cli.errors import handle_error

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hcp_provisioner.config.schema import Config
    from hcp_provisioner.engine.types import ApplyResult, Plan

DEFAULT_CONFIG = Path("hcp-provisioner.yaml")

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file."),
]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Skip interactive approval.")]
NoRefresh = Annotated[
    bool,
    typer.Option("--no-refresh", help="Skip reading current state from HCP before planning."),
]


def _use_color(no_color: bool) -> bool:
    return not (no_color or os.environ.get("NO_COLOR"))


@contextlib.contextmanager
def _reported(color: bool) -> Iterator[None]:
    """Turn any error raised in the block into a clean message and exit code 1."""
    try:
        yield
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


def _confirm(question: str, canceled: str) -> None:
    try:
        typer.confirm(question, abort=True)
    except typer.Abort as e:
        typer.echo(canceled, err=True)
        raise typer.Exit(1) from e


def _echo_diagnostics(cfg: Config, *, color: bool) -> None:
    """Print warnings produced while resolving the provider's default project."""
    from hcp_provisioner.cli.formatting import format_diagnostics
    from hcp_provisioner.config import scope as scope_fn

    _, diagnostics = scope_fn(cfg)
    if diagnostics:
        typer.echo(format_diagnostics(diagnostics, color=color) + "\n", err=True)


def _apply_with_progress(plan_obj: Plan, cfg: Config, *, color: bool) -> ApplyResult:
    """Apply with a Rich progress bar; one status line per finished resource."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    from hcp_provisioner.cli.formatting import ACTION_STYLES
    from hcp_provisioner.config import apply
    from hcp_provisioner.engine.types import Action, ResourceChange

    pending = sum(c.action != Action.NOOP for c in plan_obj.changes)
    columns = (
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
    )
    with Progress(*columns, console=Console(no_color=not color)) as progress:
        task = progress.add_task("Applying", total=pending)

        def on_progress(change: ResourceChange, event: Literal["start", "done"]) -> None:
            style = ACTION_STYLES[change.action]
            if event == "start":
                progress.update(task, description=f"{change.address}: {style.progress_verb}...")
                return
            progress.console.print(f"  {change.address}: {style.done_verb}")
            progress.advance(task)

        return apply(plan_obj, cfg, progress=on_progress)


def _show_and_apply(
    plan_obj: Plan,
    cfg: Config,
    *,
    color: bool,
    auto_approve: bool,
    question: str,
    nothing_to_do: str,
) -> None:
    from hcp_provisioner.cli.formatting import (
        format_apply_summary,
        format_plan,
        format_plan_summary,
        has_actionable_changes,
    )

    if not has_actionable_changes(plan_obj):
        typer.echo(nothing_to_do)
        return

    typer.echo(format_plan(plan_obj, color=color) + "\n")
    typer.echo(format_plan_summary(plan_obj.summary(), color=color) + "\n")
    if not auto_approve:
        _confirm(question, "Apply canceled.")

    with _reported(color):
        result = _apply_with_progress(plan_obj, cfg, color=color)
    typer.echo("\n" + format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[Path | None, typer.Option("--out", "-o", help="Save plan to file.")] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show changes required by the configuration. Exits 2 when there are changes."""
    from hcp_provisioner.cli.formatting import (
        format_plan,
        format_plan_summary,
        has_actionable_changes,
    )
    from hcp_provisioner.config import load
    from hcp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    with _reported(color):
        cfg = load(config)
        _echo_diagnostics(cfg, color=color)
        plan_obj = plan_fn(cfg, refresh=not no_refresh)

    typer.echo(format_plan(plan_obj, color=color) + "\n")
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))
    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")

    if has_actionable_changes(plan_obj):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[Path | None, typer.Argument(help="Saved plan file to apply.")] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Apply the changes required by the configuration (or a saved plan)."""
    from hcp_provisioner.config import load
    from hcp_provisioner.config import plan as plan_fn
    from hcp_provisioner.engine.types import Plan

    color = _use_color(no_color)
    with _reported(color):
        cfg = load(config)
        if plan_file is None:
            _echo_diagnostics(cfg, color=color)
            plan_obj = plan_fn(cfg, refresh=not no_refresh)
        else:
            plan_obj = Plan.load(plan_file)

    _show_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you want to apply these changes?",
        nothing_to_do="No changes. Resources are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Destroy every resource tracked in state."""
    from hcp_provisioner.config import load
    from hcp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    with _reported(color):
        cfg = load(config)
        plan_obj = plan_fn(cfg, destroy=True)

    _show_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you really want to destroy all resources?",
        nothing_to_do="No resources to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Update the state file from what currently exists in HCP."""
    from hcp_provisioner.cli.formatting import changes_summary, format_changes, format_plan_summary
    from hcp_provisioner.config import load, save_state
    from hcp_provisioner.config import refresh as refresh_fn

    color = _use_color(no_color)
    with _reported(color):
        cfg = load(config)
        changes, state = refresh_fn(cfg)

    if not changes:
        typer.echo("No changes. State is up-to-date with HCP.")
        return

    typer.echo(format_changes(changes, color=color) + "\n")
    summary = format_plan_summary(changes_summary(changes), color=color, header="Refresh")
    typer.echo(summary + "\n")
    if not auto_approve:
        _confirm("Do you want to update the state file?", "Refresh canceled.")

    save_state(cfg, state)
    count = len(state.resources)
    typer.echo(f"State refreshed. {count} resource{'' if count == 1 else 's'} tracked.")


@app.command()
def drift(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Show differences between the state file and HCP without changing anything."""
    from hcp_provisioner.cli.formatting import format_changes
    from hcp_provisioner.config import drift as drift_fn
    from hcp_provisioner.config import load

    color = _use_color(no_color)
    with _reported(color):
        changes = drift_fn(load(config))

    if changes:
        typer.echo("Drift detected:\n")
        typer.echo(format_changes(changes, color=color))
    else:
        typer.echo("No drift detected. State is up-to-date with HCP.")


@app.command(name="import")
def import_cmd(
    address: Annotated[str, typer.Argument(help="Resource address, e.g. hcp_hvn.main.")],
    import_id: Annotated[
        str,
        typer.Argument(help="hvn_id or HVN link URL; [project_id:]hvn_id:peering_id for peerings."),
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Adopt an existing HCP object into state."""
    from hcp_provisioner.cli.formatting import format_attributes, styler
    from hcp_provisioner.config import import_resource, load
    from hcp_provisioner.config.loader import ConfigError

    color = _use_color(no_color)
    with _reported(color):
        resource_type, _, name = address.partition(".")
        if not resource_type or not name:
            raise ConfigError(f"invalid resource address {address!r}, expected TYPE.NAME")
        instance = import_resource(load(config), resource_type, name, import_id)

    typer.echo(styler(color)(f"{instance.address}: Import complete", fg="green", bold=True))
    typer.echo(format_attributes(instance.attributes))


@app.command()
def lookup(
    hvn_id: Annotated[str, typer.Argument(help="ID of the HVN to read.")],
    project_id: Annotated[
        str | None,
        typer.Option("--project-id", help="Search this project instead of the default one."),
    ] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Print the attributes of an existing HVN without managing it."""
    from hcp_provisioner.cli.formatting import format_attributes
    from hcp_provisioner.config import load, lookup_hvn

    color = _use_color(no_color)
    with _reported(color):
        attrs = lookup_hvn(load(config), hvn_id, project_id)
    typer.echo(format_attributes(attrs))


@app.command()
def scope(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Show the organization and default project the credentials resolve to."""
    from hcp_provisioner.config import load
    from hcp_provisioner.config import scope as scope_fn

    color = _use_color(no_color)
    with _reported(color):
        cfg = load(config)
        _echo_diagnostics(cfg, color=color)
        provider_scope, _ = scope_fn(cfg)

    typer.echo(f"Organization: {provider_scope.organization_id}")
    typer.echo(f"Project:      {provider_scope.project_id}")


@app.command()
def validate(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Check the configuration file and resource definitions without applying."""
    from hcp_provisioner.cli.formatting import styler
    from hcp_provisioner.config import load
    from hcp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    with _reported(color):
        plan_fn(load(config), refresh=False)
    typer.echo(styler(color)("Configuration is valid.", fg="green"))
