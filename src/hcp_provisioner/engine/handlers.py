"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from hcp_provisioner.core.location import Location, location_from_attributes
from hcp_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from hcp_provisioner.core import HCPProvider, ProviderScope
    from hcp_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Context passed to handlers.

    ``scope`` is the provider's resolved default scope; handlers read it and
    never change it.
    """

    provider: HCPProvider
    scope: ProviderScope

    def location(self, project_id: str | None = None) -> Location:
        """Location for a resource whose own project is *project_id* (may be unset)."""
        return location_from_attributes(project_id, self.scope.location)


class ResourceHandler(Generic[R]):
    """Base class for resource handlers.

    Handlers translate resources into HCP API calls. Subclass and override
    the CRUD methods. Every attribute dict a handler returns carries the
    resource's ``self_link``, which the engine persists as the instance ID.

    Identifiers are decoded before the first remote call, so a malformed ID
    never results in a partial remote change.

    Set ``replaces_on_update`` for objects that cannot change in place. The
    engine then deletes the old object and records that in state before
    creating the new one, instead of calling ``update``.
    """

    replaces_on_update: ClassVar[bool] = False

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Single-resource validation. Return list of error messages (empty = valid)."""
        _ = ctx, desired
        return []

    def planned_attributes(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        """Attributes the remote object is expected to have after apply."""
        _ = ctx
        return desired.model_dump(exclude_none=True, exclude={"address", "depends_on"})

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Read the resource from HCP. Return None if it no longer exists."""
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        """Create the resource in HCP. Return stored attributes."""
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        """Update the resource in HCP. Return stored attributes."""
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        """Delete the resource from HCP."""
        raise NotImplementedError

    def import_resource(
        self, ctx: EngineContext, name: str, import_id: str
    ) -> dict[str, Any] | None:
        """Read an existing object identified by *import_id*. Return None if absent."""
        raise NotImplementedError
