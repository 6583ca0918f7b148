"""HVN peering connection resource model."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from hcp_provisioner.core.errors import LocationError
from hcp_provisioner.core.links import HVN_RESOURCE_TYPE, PEERING_RESOURCE_TYPE, parse_link_url
from hcp_provisioner.resources.base import Resource, ResourceRef


class HvnPeeringConnectionResource(Resource):
    """A peering connection between two HVNs.

    ``hvn_1`` and ``hvn_2`` are either HVN self links
    (``/project/{project_id}/hashicorp.network.hvn/{hvn_id}``) or bare HVN IDs,
    which are looked up in this resource's project. The connection is owned
    by ``hvn_1``.
    """

    resource_type: ClassVar[str] = "hcp_hvn_peering_connection"
    link_type: ClassVar[str] = PEERING_RESOURCE_TYPE
    plan_priority: ClassVar[int] = 50

    peering_id: str = Field(pattern=r"^[-\da-zA-Z]{3,36}$")
    hvn_1: str = Field(min_length=1)
    hvn_2: str = Field(min_length=1)

    def references(self) -> list[ResourceRef]:
        refs = []
        for hvn in (self.hvn_1, self.hvn_2):
            if not hvn.startswith("/"):
                refs.append(ResourceRef("hcp_hvn", "hvn_id", hvn))
                continue
            try:
                link = parse_link_url(hvn, HVN_RESOURCE_TYPE)
            except LocationError:
                # Reported by validation.
                continue
            assert link.location is not None
            refs.append(ResourceRef("hcp_hvn", "hvn_id", link.id, link.location.project_id))
        return refs
