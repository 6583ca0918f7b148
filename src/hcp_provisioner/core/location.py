"""Location resolution: which organization/project a resource lives in."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from hcp_provisioner.core.errors import InvalidLocationError, MissingProjectIDError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hcp_provisioner.core.client import Project


class Location(BaseModel):
    """An (organization, project) coordinate pair.

    ``None`` means "not known yet". Link URLs never carry the organization, so a
    location decoded from one always has ``organization_id=None`` until the
    caller fills it from the provider scope.
    """

    model_config = ConfigDict(frozen=True)

    organization_id: str | None = None
    project_id: str | None = None


def resolve_project_id(resource_level: str | None, client_level: str | None) -> str:
    """Return the project a resource operation applies to.

    A project set on the resource always wins over the provider default.
    Empty strings count as unset.
    """
    if resource_level:
        return resource_level
    if client_level:
        return client_level
    raise MissingProjectIDError


def location_from_attributes(project_id: str | None, default: Location) -> Location:
    """Resolve a resource location from its own ``project_id`` and the provider default."""
    return Location(
        organization_id=default.organization_id,
        project_id=resolve_project_id(project_id, default.project_id),
    )


def _require_uuid(label: str, value: str | None) -> str:
    try:
        uuid.UUID(value or "")
    except ValueError as e:
        raise InvalidLocationError(f"expected {label} to be a valid UUID, got {value!r}") from e
    assert value is not None
    return value


def location_attributes(location: Location | None) -> dict[str, str]:
    """Render a location as the ``organization_id``/``project_id`` state attributes."""
    if location is None:
        raise InvalidLocationError("expected non-nil location, got None")
    return {
        "organization_id": _require_uuid("Organization ID", location.organization_id),
        "project_id": _require_uuid("Project ID", location.project_id),
    }


def select_oldest(projects: Iterable[Project]) -> Project | None:
    """Return the earliest-created project; the first one seen wins ties."""
    oldest: Project | None = None
    for project in projects:
        if oldest is None or project.created_at < oldest.created_at:
            oldest = project
    return oldest
