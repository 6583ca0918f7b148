"""Default resource type registry factory."""

from __future__ import annotations

from hcp_provisioner.engine.hvn_handler import HvnHandler
from hcp_provisioner.engine.peering_handler import HvnPeeringConnectionHandler
from hcp_provisioner.engine.registry import ResourceTypeRegistry
from hcp_provisioner.resources.hvn import HvnResource
from hcp_provisioner.resources.peering import HvnPeeringConnectionResource


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()
    registry.register(HvnResource, HvnHandler())
    registry.register(HvnPeeringConnectionResource, HvnPeeringConnectionHandler())
    return registry
