"""Link codec: canonical ``/project/{project_id}/{type}/{id}`` resource identifiers.

Segment values are substituted verbatim. Resource IDs and types are URL-safe by
construction upstream; a value containing ``/`` does not survive a round trip.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from hcp_provisioner.core.errors import InvalidLinkError, InvalidURLError, TypeMismatchError
from hcp_provisioner.core.location import Location

HVN_RESOURCE_TYPE = "hashicorp.network.hvn"
PEERING_RESOURCE_TYPE = "hashicorp.network.peering"

_PROJECT_KEYWORD = "project"
_SEGMENT_COUNT = 4


class Link(BaseModel):
    """A fully-qualified reference to a single remote resource."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: str
    location: Location | None = None


def new_link(location: Location, resource_type: str, resource_id: str) -> Link:
    return Link(type=resource_type, id=resource_id, location=location)


def link_url(link: Link) -> str:
    """Render *link* in its canonical URL form.

    The organization is not part of the URL.
    """
    if link.location is None:
        raise InvalidLinkError("link location must not be None")
    if not link.location.project_id:
        raise InvalidLinkError("link location must have a project ID")
    if not link.type:
        raise InvalidLinkError("link must have a resource type")
    if not link.id:
        raise InvalidLinkError("link must have a resource ID")
    return f"/{_PROJECT_KEYWORD}/{link.location.project_id}/{link.type}/{link.id}"


def parse_link_url(url: str, expected_type: str | None = None) -> Link:
    """Decode a canonical link URL.

    Args:
        url: A string of the form ``/project/{project_id}/{type}/{id}``.
        expected_type: When non-empty, the URL's type segment must match it.

    Returns:
        A ``Link`` whose location has no organization ID.

    Raises:
        InvalidURLError: On any structural deviation (segment count, keyword,
            empty segment).
        TypeMismatchError: When the URL's type differs from *expected_type*.
    """
    if not url.startswith("/"):
        raise InvalidURLError(url, "missing leading '/'")

    segments = url[1:].split("/")
    if len(segments) != _SEGMENT_COUNT:
        raise InvalidURLError(
            url, f"expected {_SEGMENT_COUNT} path segments, found {len(segments)}"
        )

    keyword, project_id, resource_type, resource_id = segments
    if keyword != _PROJECT_KEYWORD:
        raise InvalidURLError(url, f"first segment must be {_PROJECT_KEYWORD!r}, got {keyword!r}")
    if not project_id:
        raise InvalidURLError(url, "missing project ID")
    if not resource_type:
        raise InvalidURLError(url, "missing resource type")
    if not resource_id:
        raise InvalidURLError(url, "missing resource ID")
    if expected_type and resource_type != expected_type:
        raise TypeMismatchError(url, expected_type, resource_type)

    return Link(type=resource_type, id=resource_id, location=Location(project_id=project_id))


def build_link_from_url(url: str, expected_type: str, organization_id: str | None) -> Link:
    """Decode *url* and fill in the organization taken from provider context."""
    link = parse_link_url(url, expected_type)
    assert link.location is not None
    location = link.location.model_copy(update={"organization_id": organization_id})
    return link.model_copy(update={"location": location})
