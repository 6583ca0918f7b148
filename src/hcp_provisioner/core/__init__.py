"""Resource identity, location and scope resolution."""

from hcp_provisioner.core.client import APIError, HCPClient, NotFoundError, Organization, Project
from hcp_provisioner.core.ids import (
    ScopedID,
    UnscopedID,
    composite_id,
    decode_composite_id,
    parse_composite_id,
)
from hcp_provisioner.core.links import (
    HVN_RESOURCE_TYPE,
    PEERING_RESOURCE_TYPE,
    Link,
    build_link_from_url,
    link_url,
    new_link,
    parse_link_url,
)
from hcp_provisioner.core.location import (
    Location,
    location_attributes,
    location_from_attributes,
    resolve_project_id,
    select_oldest,
)
from hcp_provisioner.core.provider import ClientCredentials, HCPProvider
from hcp_provisioner.core.scope import (
    Diagnostic,
    ProviderScope,
    ScopeConfigurator,
    ScopeState,
    Severity,
    configure_scope,
)
from hcp_provisioner.core.state import ResourceInstance, State

__all__ = [
    "HVN_RESOURCE_TYPE",
    "PEERING_RESOURCE_TYPE",
    "APIError",
    "ClientCredentials",
    "Diagnostic",
    "HCPClient",
    "HCPProvider",
    "Link",
    "Location",
    "NotFoundError",
    "Organization",
    "Project",
    "ProviderScope",
    "ResourceInstance",
    "ScopeConfigurator",
    "ScopeState",
    "ScopedID",
    "Severity",
    "State",
    "UnscopedID",
    "build_link_from_url",
    "composite_id",
    "configure_scope",
    "decode_composite_id",
    "link_url",
    "location_attributes",
    "location_from_attributes",
    "new_link",
    "parse_composite_id",
    "parse_link_url",
    "resolve_project_id",
    "select_oldest",
]
