"""HashiCorp Virtual Network resource model."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field

from hcp_provisioner.core.links import HVN_RESOURCE_TYPE
from hcp_provisioner.resources.base import Resource


class HvnResource(Resource):
    """An HVN: the isolated network HCP clusters are deployed into.

    HVNs cannot be modified in place; any change replaces the network.
    """

    resource_type: ClassVar[str] = "hcp_hvn"
    link_type: ClassVar[str] = HVN_RESOURCE_TYPE
    plan_priority: ClassVar[int] = 10

    hvn_id: str = Field(pattern=r"^[-\da-zA-Z]{3,36}$")
    cloud_provider: Literal["aws", "azure"]
    region: str = Field(min_length=1)
    cidr_block: str = Field(default="172.25.16.0/20", pattern=r"^\d{1,3}(\.\d{1,3}){3}/\d{1,2}$")
