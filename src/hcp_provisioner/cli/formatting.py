"""Terraform-style rendering of plans, changes and provider diagnostics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from hcp_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from hcp_provisioner.core.scope import Diagnostic
    from hcp_provisioner.engine.types import Plan, ResourceChange


class ActionStyle(NamedTuple):
    color: str
    symbol: str
    description: str
    progress_verb: str
    done_verb: str
    plan_verb: str
    apply_verb: str


# HCP networks cannot be modified in place, so an update is always a replacement.
ACTION_STYLES: dict[Action, ActionStyle] = {
    Action.CREATE: ActionStyle(
        "green", "+", "will be created", "Creating", "Creation complete", "to add", "added"
    ),
    Action.UPDATE: ActionStyle(
        "yellow", "-/+", "must be replaced", "Replacing", "Replacement complete",
        "to replace", "replaced",
    ),
    Action.DELETE: ActionStyle(
        "red", "-", "will be destroyed", "Destroying", "Destroy complete", "to destroy", "destroyed"
    ),
}

_COUNTED = (Action.CREATE, Action.UPDATE, Action.DELETE)
_UNKNOWN = "(known after apply)"


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    return typer.style if color else (lambda text, **_kw: text)


def has_actionable_changes(plan: Plan) -> bool:
    return any(c.action != Action.NOOP for c in plan.changes)


def _quote(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value if value == _UNKNOWN else f'"{value}"'
    return str(value)


def _pairs(items: Mapping[str, str]) -> Iterable[str]:
    width = max((len(k) for k in items), default=0)
    return (f"{k.ljust(width)} = {v}" for k, v in items.items())


def _change_body(change: ResourceChange) -> dict[str, str]:
    if change.action == Action.CREATE:
        body = {k: _quote(v) for k, v in (change.planned or {}).items()}
        body["self_link"] = _UNKNOWN
        return body
    if change.action == Action.UPDATE:
        return {
            k: f"{_quote(d['from'])} -> {_quote(d['to'])}" for k, d in (change.diff or {}).items()
        }
    if change.action == Action.DELETE:
        prior = change.prior or {}
        return {k: _quote(prior[k]) for k in ("self_link",) if k in prior}
    return {}


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """Render one change as a ``resource "type" "name" { ... }`` block."""
    style = styler(color)
    s = ACTION_STYLES[change.action]
    _, _, name = change.address.partition(".")
    head = [
        style(f"  # {change.address} {s.description}", fg=s.color, bold=True),
        style(
            f'  {s.symbol} resource "{change.resource_type}" "{name or change.address}" {{',
            fg=s.color,
        ),
    ]
    body = [style(f"      {line}", fg=s.color) for line in _pairs(_change_body(change))]
    return "\n".join([*head, *body, style("    }", fg=s.color)])


def format_changes(changes: Iterable[ResourceChange], *, color: bool = True) -> str:
    blocks = [format_change(c, color=color) for c in changes if c.action != Action.NOOP]
    return "\n\n".join(blocks) if blocks else "No changes. Resources are up-to-date."


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def format_attributes(attrs: Mapping[str, Any]) -> str:
    """Render the attributes of a looked-up or imported object, sorted by key."""
    return "\n".join(f"  {line}" for line in _pairs({k: _quote(attrs[k]) for k in sorted(attrs)}))


def format_diagnostics(diagnostics: Iterable[Diagnostic], *, color: bool = True) -> str:
    style = styler(color)
    blocks = []
    for d in diagnostics:
        fg = "yellow" if d.severity.value == "warning" else "red"
        block = style(f"{d.severity.value.capitalize()}: {d.summary}", fg=fg, bold=True)
        if d.detail:
            block += f"\n\n  {d.detail}"
        blocks.append(block)
    return "\n\n".join(blocks)


def changes_summary(changes: Iterable[ResourceChange]) -> dict[str, int]:
    summary = {a.value: 0 for a in _COUNTED}
    for c in changes:
        if c.action in ACTION_STYLES:
            summary[c.action.value] += 1
    return summary


def _counts(summary: Mapping[str, int], *, apply: bool, color: bool) -> str:
    style = styler(color)
    parts = []
    for action in _COUNTED:
        s = ACTION_STYLES[action]
        n = summary.get(action.value, 0)
        text = f"{n} {s.apply_verb if apply else s.plan_verb}"
        parts.append(style(text, fg=s.color) if n else text)
    return ", ".join(parts)


def format_plan_summary(
    summary: Mapping[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """``Plan: 2 to add, 1 to replace, 0 to destroy.``"""
    return f"{header}: {_counts(summary, apply=False, color=color)}."


def format_apply_summary(summary: Mapping[str, int], *, color: bool = True) -> str:
    """``Apply complete! Resources: 2 added, 0 replaced, 0 destroyed.``"""
    head = styler(color)("Apply complete!", fg="green", bold=True)
    return f"{head} Resources: {_counts(summary, apply=True, color=color)}."
