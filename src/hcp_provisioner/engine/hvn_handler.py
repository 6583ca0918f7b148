"""HVN handler implementing CRUD via the HCP network API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hcp_provisioner.core.client import NotFoundError
from hcp_provisioner.core.errors import LocationError
from hcp_provisioner.core.links import (
    HVN_RESOURCE_TYPE,
    build_link_from_url,
    link_url,
    new_link,
)
from hcp_provisioner.core.location import Location, location_attributes
from hcp_provisioner.engine.handlers import ResourceHandler

if TYPE_CHECKING:
    from hcp_provisioner.core.state import ResourceInstance
    from hcp_provisioner.engine.handlers import EngineContext
    from hcp_provisioner.resources.hvn import HvnResource

logger = logging.getLogger(__name__)


def hvn_attributes(name: str, location: Location, network: dict[str, Any]) -> dict[str, Any]:
    """Extract HVN attributes matching ``HvnResource`` field names."""
    region = network.get("location", {}).get("region", {})
    hvn_id = network.get("id", "")
    return {
        "name": name,
        **location_attributes(location),
        "hvn_id": hvn_id,
        "cloud_provider": region.get("provider", ""),
        "region": region.get("region", ""),
        "cidr_block": network.get("cidr_block", ""),
        "provider_account_id": network.get("provider_network_data", {})
        .get("aws", {})
        .get("account_id", ""),
        "state": network.get("state", ""),
        "created_at": network.get("created_at", ""),
        "self_link": link_url(new_link(location, HVN_RESOURCE_TYPE, hvn_id)),
    }


class HvnHandler(ResourceHandler["HvnResource"]):
    """CRUD handler for HVNs.

    The instance ID is the HVN self link; the organization always comes from
    the provider scope because link URLs do not carry it.
    """

    replaces_on_update = True

    def _link_location(self, ctx: EngineContext, prior: ResourceInstance) -> tuple[Location, str]:
        link = build_link_from_url(prior.id, HVN_RESOURCE_TYPE, ctx.scope.organization_id)
        assert link.location is not None
        return link.location, link.id

    def validate(self, ctx: EngineContext, desired: HvnResource) -> list[str]:
        try:
            location_attributes(ctx.location(desired.project_id))
        except LocationError as e:
            return [f"{desired.address}: {e}"]
        return []

    def create(self, ctx: EngineContext, desired: HvnResource) -> dict[str, Any]:
        location = ctx.location(desired.project_id)
        location_attributes(location)
        client = ctx.provider.client
        client.create_hvn(
            location,
            {
                "id": desired.hvn_id,
                "location": {
                    "organization_id": location.organization_id,
                    "project_id": location.project_id,
                    "region": {"provider": desired.cloud_provider, "region": desired.region},
                },
                "cidr_block": desired.cidr_block,
            },
        )
        logger.info("Created HVN %s in project %s", desired.hvn_id, location.project_id)
        return hvn_attributes(desired.name, location, client.get_hvn(location, desired.hvn_id))

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        location, hvn_id = self._link_location(ctx, prior)
        try:
            network = ctx.provider.client.get_hvn(location, hvn_id)
        except NotFoundError:
            logger.debug("HVN %s no longer exists", prior.id)
            return None
        return hvn_attributes(prior.name, location, network)

    def update(
        self, ctx: EngineContext, desired: HvnResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        # HVNs are immutable remotely: replace.
        self.delete(ctx, prior)
        return self.create(ctx, desired)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        location, hvn_id = self._link_location(ctx, prior)
        try:
            ctx.provider.client.delete_hvn(location, hvn_id)
        except NotFoundError:
            logger.debug("HVN %s already deleted", prior.id)

    def import_resource(
        self, ctx: EngineContext, name: str, import_id: str
    ) -> dict[str, Any] | None:
        """Import by bare ``hvn_id`` (provider project) or by HVN self link."""
        if import_id.startswith("/"):
            link = build_link_from_url(import_id, HVN_RESOURCE_TYPE, ctx.scope.organization_id)
            assert link.location is not None
            location, hvn_id = link.location, link.id
        else:
            location, hvn_id = ctx.location(), import_id
        try:
            network = ctx.provider.client.get_hvn(location, hvn_id)
        except NotFoundError:
            return None
        return hvn_attributes(name, location, network)
