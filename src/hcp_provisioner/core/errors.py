"""Identity and scope resolution error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hcp_provisioner.core.scope import Diagnostic


class LocationError(Exception):
    """Base exception for resource identity and location errors."""


class MissingProjectIDError(LocationError):
    """Raised when neither the resource nor the provider defines a project."""

    def __init__(self) -> None:
        super().__init__(
            "project ID not defined; set it in the provider configuration "
            "or in the resource configuration"
        )


class InvalidLocationError(LocationError):
    """Raised when a location cannot be persisted as resource attributes."""


class InvalidLinkError(LocationError):
    """Raised when a link is missing a field required to render its URL."""


class InvalidURLError(LocationError):
    """Raised when a link URL does not match ``/project/{project_id}/{type}/{id}``."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            f"invalid link URL {url!r}: {reason}; expected /project/{{project_id}}/{{type}}/{{id}}"
        )
        self.url = url
        self.reason = reason


class TypeMismatchError(LocationError):
    """Raised when a link URL carries a different resource type than expected."""

    def __init__(self, url: str, expected: str, got: str) -> None:
        super().__init__(
            f"link URL {url!r} has resource type {got!r}, expected {expected!r}"
        )
        self.url = url
        self.expected = expected
        self.got = got


class MalformedIDError(LocationError):
    """Raised when a colon-delimited resource ID has the wrong shape."""

    def __init__(self, resource_id: str, expected: list[str]) -> None:
        super().__init__(
            f"unexpected format of ID ({resource_id!r}), expected {' or '.join(expected)}"
        )
        self.resource_id = resource_id
        self.expected = expected


class ScopeError(LocationError):
    """Raised when the provider's default organization/project cannot be resolved.

    ``diagnostics`` holds everything reported before the failure, including
    the error itself.
    """

    def __init__(self, message: str, diagnostics: list[Diagnostic] | None = None) -> None:
        super().__init__(message)
        self.diagnostics: list[Diagnostic] = list(diagnostics or [])


class ProjectNotFoundError(ScopeError):
    """Raised when the configured provider project does not exist."""

    def __init__(self, project_id: str, diagnostics: list[Diagnostic] | None = None) -> None:
        super().__init__(f"unable to fetch project {project_id!r}: not found", diagnostics)
        self.project_id = project_id


class AmbiguousOrganizationError(ScopeError):
    """Raised when the credentials do not map to exactly one organization."""

    def __init__(self, count: int, diagnostics: list[Diagnostic] | None = None) -> None:
        super().__init__(
            f"unexpected number of organizations: expected 1, actual: {count}", diagnostics
        )
        self.count = count


class NoProjectsError(ScopeError):
    """Raised when the credentials' organization has no project to default to."""

    def __init__(self, organization_id: str, diagnostics: list[Diagnostic] | None = None) -> None:
        super().__init__(
            f"organization {organization_id!r} has no projects; "
            "create one or set project_id in the provider configuration",
            diagnostics,
        )
        self.organization_id = organization_id


class ScopeAlreadyConfiguredError(ScopeError):
    """Raised when scope configuration is attempted a second time."""
