"""Colon-delimited composite IDs for child resources.

Two shapes are accepted::

    {project_id}:{parent_id}:{child_id}
    {parent_id}:{child_id}            # project comes from the provider default
"""

from __future__ import annotations

from dataclasses import dataclass

from hcp_provisioner.core.errors import MalformedIDError
from hcp_provisioner.core.location import resolve_project_id


@dataclass(frozen=True)
class ScopedID:
    project_id: str
    parent_id: str
    child_id: str


@dataclass(frozen=True)
class UnscopedID:
    parent_id: str
    child_id: str


def _shapes(parent: str, child: str) -> tuple[str, str]:
    return f"{{{parent}}}:{{{child}}}", f"{{project_id}}:{{{parent}}}:{{{child}}}"


def decode_composite_id(
    resource_id: str,
    *,
    parent: str = "parent_id",
    child: str = "child_id",
) -> ScopedID | UnscopedID:
    """Split *resource_id* into its typed parts.

    *parent* and *child* only name the segments in error messages.
    """
    short, full = _shapes(parent, child)
    parts = resource_id.split(":")

    if len(parts) == 3:
        if not all(parts):
            raise MalformedIDError(resource_id, [full])
        return ScopedID(*parts)
    if len(parts) == 2:
        if not all(parts):
            raise MalformedIDError(resource_id, [short])
        return UnscopedID(*parts)
    raise MalformedIDError(resource_id, [short, full])


def parse_composite_id(
    resource_id: str,
    client_project_id: str | None,
    *,
    parent: str = "parent_id",
    child: str = "child_id",
) -> tuple[str, str, str]:
    """Return ``(project_id, parent_id, child_id)`` for a composite ID.

    The two-part form takes its project from *client_project_id*; a missing
    default raises ``MissingProjectIDError``.
    """
    decoded = decode_composite_id(resource_id, parent=parent, child=child)
    match decoded:
        case ScopedID(project_id, parent_id, child_id):
            return project_id, parent_id, child_id
        case UnscopedID(parent_id, child_id):
            project_id = resolve_project_id(None, client_project_id)
            return project_id, parent_id, child_id


def composite_id(project_id: str, parent_id: str, child_id: str) -> str:
    return f"{project_id}:{parent_id}:{child_id}"
