"""HVN peering connection handler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hcp_provisioner.core.client import NotFoundError
from hcp_provisioner.core.errors import LocationError
from hcp_provisioner.core.ids import parse_composite_id
from hcp_provisioner.core.links import (
    HVN_RESOURCE_TYPE,
    PEERING_RESOURCE_TYPE,
    Link,
    build_link_from_url,
    link_url,
    new_link,
)
from hcp_provisioner.core.location import Location, location_attributes
from hcp_provisioner.engine.handlers import ResourceHandler

if TYPE_CHECKING:
    from hcp_provisioner.core.state import ResourceInstance
    from hcp_provisioner.engine.handlers import EngineContext
    from hcp_provisioner.resources.peering import HvnPeeringConnectionResource

logger = logging.getLogger(__name__)


def _link_payload(link: Link) -> dict[str, Any]:
    assert link.location is not None
    return {
        "type": link.type,
        "id": link.id,
        "location": {
            "organization_id": link.location.organization_id,
            "project_id": link.location.project_id,
        },
    }


def _link_from_payload(payload: dict[str, Any], fallback: Location) -> Link:
    loc = payload.get("location") or {}
    location = Location(
        organization_id=loc.get("organization_id") or fallback.organization_id,
        project_id=loc.get("project_id") or fallback.project_id,
    )
    return new_link(location, payload.get("type") or HVN_RESOURCE_TYPE, payload.get("id", ""))


class HvnPeeringConnectionHandler(ResourceHandler["HvnPeeringConnectionResource"]):
    """CRUD handler for HVN-to-HVN peering connections.

    The instance ID is the peering self link. The owning HVN is recovered
    from the stored ``hvn_1`` self link.
    """

    replaces_on_update = True

    def _hvn_link(self, ctx: EngineContext, ref: str, location: Location) -> Link:
        if ref.startswith("/"):
            return build_link_from_url(ref, HVN_RESOURCE_TYPE, ctx.scope.organization_id)
        return new_link(location, HVN_RESOURCE_TYPE, ref)

    def _links(
        self, ctx: EngineContext, desired: HvnPeeringConnectionResource
    ) -> tuple[Location, Link, Link]:
        """Return the peering's location and both HVN links.

        A peering lives in the project of the HVN that owns it (``hvn_1``). Bare
        HVN IDs resolve against the resource's own project.
        """
        default = ctx.location(desired.project_id)
        hvn_1 = self._hvn_link(ctx, desired.hvn_1, default)
        hvn_2 = self._hvn_link(ctx, desired.hvn_2, default)
        assert hvn_1.location is not None
        return hvn_1.location, hvn_1, hvn_2

    def _prior_links(self, ctx: EngineContext, prior: ResourceInstance) -> tuple[Link, Link]:
        org_id = ctx.scope.organization_id
        peering = build_link_from_url(prior.id, PEERING_RESOURCE_TYPE, org_id)
        hvn = build_link_from_url(prior.attributes.get("hvn_1", ""), HVN_RESOURCE_TYPE, org_id)
        return peering, hvn

    def _attrs(self, name: str, location: Location, peering: dict[str, Any]) -> dict[str, Any]:
        hvn_1 = _link_from_payload(peering.get("hvn") or {}, location)
        target = (peering.get("target") or {}).get("hvn_target", {}).get("hvn") or {}
        hvn_2 = _link_from_payload(target, location)
        peering_id = peering.get("id", "")
        return {
            "name": name,
            **location_attributes(location),
            "peering_id": peering_id,
            "hvn_1": link_url(hvn_1),
            "hvn_2": link_url(hvn_2),
            "state": peering.get("state", ""),
            "created_at": peering.get("created_at", ""),
            "expires_at": peering.get("expires_at", ""),
            "self_link": link_url(new_link(location, PEERING_RESOURCE_TYPE, peering_id)),
        }

    def validate(self, ctx: EngineContext, desired: HvnPeeringConnectionResource) -> list[str]:
        try:
            location, hvn_1, hvn_2 = self._links(ctx, desired)
            location_attributes(location)
            link_url(hvn_1)
            link_url(hvn_2)
        except LocationError as e:
            return [f"{desired.address}: {e}"]
        if desired.project_id and desired.project_id != location.project_id:
            return [
                f"{desired.address}: project_id {desired.project_id!r} does not match "
                f"the project of hvn_1 ({location.project_id!r})"
            ]
        if hvn_1 == hvn_2:
            return [f"{desired.address}: hvn_1 and hvn_2 must be different networks"]
        return []

    def planned_attributes(
        self, ctx: EngineContext, desired: HvnPeeringConnectionResource
    ) -> dict[str, Any]:
        attrs = super().planned_attributes(ctx, desired)
        _, hvn_1, hvn_2 = self._links(ctx, desired)
        attrs["hvn_1"] = link_url(hvn_1)
        attrs["hvn_2"] = link_url(hvn_2)
        return attrs

    def create(self, ctx: EngineContext, desired: HvnPeeringConnectionResource) -> dict[str, Any]:
        location, hvn_1, hvn_2 = self._links(ctx, desired)
        location_attributes(location)
        client = ctx.provider.client
        client.create_peering(
            location,
            hvn_1.id,
            {
                "id": desired.peering_id,
                "hvn": _link_payload(hvn_1),
                "target": {"hvn_target": {"hvn": _link_payload(hvn_2)}},
            },
        )
        logger.info("Created peering %s on HVN %s", desired.peering_id, hvn_1.id)
        peering = client.get_peering(location, hvn_1.id, desired.peering_id)
        return self._attrs(desired.name, location, peering)

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        peering_link, hvn = self._prior_links(ctx, prior)
        assert peering_link.location is not None
        try:
            peering = ctx.provider.client.get_peering(peering_link.location, hvn.id, peering_link.id)
        except NotFoundError:
            logger.debug("Peering %s no longer exists", prior.id)
            return None
        return self._attrs(prior.name, peering_link.location, peering)

    def update(
        self,
        ctx: EngineContext,
        desired: HvnPeeringConnectionResource,
        prior: ResourceInstance,
    ) -> dict[str, Any]:
        # Peerings are immutable remotely: replace.
        self.delete(ctx, prior)
        return self.create(ctx, desired)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        peering_link, hvn = self._prior_links(ctx, prior)
        assert peering_link.location is not None
        try:
            ctx.provider.client.delete_peering(peering_link.location, hvn.id, peering_link.id)
        except NotFoundError:
            logger.debug("Peering %s already deleted", prior.id)

    def import_resource(
        self, ctx: EngineContext, name: str, import_id: str
    ) -> dict[str, Any] | None:
        """Import by ``{hvn_id}:{peering_id}`` or ``{project_id}:{hvn_id}:{peering_id}``."""
        project_id, hvn_id, peering_id = parse_composite_id(
            import_id, ctx.scope.project_id, parent="hvn_id", child="peering_id"
        )
        location = ctx.location(project_id)
        try:
            peering = ctx.provider.client.get_peering(location, hvn_id, peering_id)
        except NotFoundError:
            return None
        return self._attrs(name, location, peering)
