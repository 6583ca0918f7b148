"""Read-only lookups of remote objects that are not tracked in state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hcp_provisioner.core.client import NotFoundError
from hcp_provisioner.engine.errors import EngineError
from hcp_provisioner.engine.hvn_handler import hvn_attributes

if TYPE_CHECKING:
    from hcp_provisioner.engine.handlers import EngineContext


class DataSourceNotFoundError(EngineError):
    """Raised when a data source lookup matches no remote object."""


def read_hvn(ctx: EngineContext, hvn_id: str, project_id: str | None = None) -> dict[str, Any]:
    """Look up an HVN in *project_id* (default: the provider project)."""
    location = ctx.location(project_id)
    try:
        network = ctx.provider.client.get_hvn(location, hvn_id)
    except NotFoundError as e:
        raise DataSourceNotFoundError(
            f"HVN {hvn_id!r} not found in project {location.project_id}"
        ) from e
    return hvn_attributes(hvn_id, location, network)
