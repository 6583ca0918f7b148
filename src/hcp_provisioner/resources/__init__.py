"""HCP resource definitions."""

from hcp_provisioner.resources.base import Resource, ResourceRef
from hcp_provisioner.resources.hvn import HvnResource
from hcp_provisioner.resources.peering import HvnPeeringConnectionResource

__all__ = [
    "HvnPeeringConnectionResource",
    "HvnResource",
    "Resource",
    "ResourceRef",
]
