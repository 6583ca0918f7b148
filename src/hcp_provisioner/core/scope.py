"""Default scope resolution for the provider.

Runs once per provider: it binds the credentials to an organization and a
default project that every resource without its own ``project_id`` uses.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from hcp_provisioner.core.client import APIError, NotFoundError
from hcp_provisioner.core.errors import (
    AmbiguousOrganizationError,
    NoProjectsError,
    ProjectNotFoundError,
    ScopeAlreadyConfiguredError,
    ScopeError,
)
from hcp_provisioner.core.location import Location, select_oldest

if TYPE_CHECKING:
    from hcp_provisioner.core.client import HCPClient, Project

logger = logging.getLogger(__name__)

_MULTIPLE_PROJECTS_SUMMARY = (
    "There is more than one project associated with the organization "
    "of the configured credentials."
)
_MULTIPLE_PROJECTS_DETAIL = (
    "The oldest project has been selected as the default. To configure which "
    "project is used as default, set project_id in the provider configuration. "
    "Resources may also be configured with different projects."
)


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class Diagnostic(BaseModel):
    """A user-facing message produced while configuring the provider."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    summary: str
    detail: str = ""


class ProviderScope(BaseModel):
    """The provider-wide default organization and project."""

    model_config = ConfigDict(frozen=True)

    organization_id: str
    project_id: str

    @property
    def location(self) -> Location:
        return Location(organization_id=self.organization_id, project_id=self.project_id)


class ScopeState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    CONFIGURED = "configured"
    FAILED = "failed"


class ScopeConfigurator:
    """One-shot resolver of the provider's default scope."""

    def __init__(self, client: HCPClient) -> None:
        self._client = client
        self._state = ScopeState.UNCONFIGURED
        self._scope: ProviderScope | None = None
        self._diagnostics: list[Diagnostic] = []
        self._failure: ScopeError | None = None

    @property
    def state(self) -> ScopeState:
        return self._state

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    @property
    def scope(self) -> ProviderScope:
        if self._scope is None:
            raise ScopeError(f"provider scope is not configured (state: {self._state.value})")
        return self._scope

    def configure(self, project_id: str | None = None) -> ProviderScope:
        """Resolve the default scope. May only be called once.

        After a failed attempt every further call raises that same failure
        without contacting HCP again.
        """
        if self._failure is not None:
            raise self._failure
        if self._state is not ScopeState.UNCONFIGURED:
            raise ScopeAlreadyConfiguredError(
                f"provider scope already {self._state.value}; it cannot be reconfigured"
            )
        self._state = ScopeState.CONFIGURING
        try:
            if project_id:
                project = self._fetch_project(project_id)
            else:
                project = self._project_from_credentials()
        except Exception as e:
            failure = e if isinstance(e, ScopeError) else ScopeError(
                f"unable to resolve provider scope: {e}"
            )
            self._state = ScopeState.FAILED
            self._diagnostics.append(Diagnostic(severity=Severity.ERROR, summary=str(failure)))
            failure.diagnostics = self.diagnostics
            self._failure = failure
            if failure is e:
                raise
            raise failure from e

        self._scope = ProviderScope(
            organization_id=project.organization_id,
            project_id=project.id,
        )
        self._state = ScopeState.CONFIGURED
        logger.info(
            "Provider scope: organization=%s project=%s",
            self._scope.organization_id,
            self._scope.project_id,
        )
        return self._scope

    def _fetch_project(self, project_id: str) -> Project:
        try:
            return self._client.get_project(project_id)
        except NotFoundError as e:
            raise ProjectNotFoundError(project_id) from e
        except APIError as e:
            raise ScopeError(f"unable to fetch project {project_id!r}: {e}") from e

    def _project_from_credentials(self) -> Project:
        try:
            organizations = self._client.list_organizations()
        except APIError as e:
            raise ScopeError(f"unable to fetch organization list: {e}") from e
        if len(organizations) != 1:
            raise AmbiguousOrganizationError(len(organizations))
        org_id = organizations[0].id

        try:
            projects = self._client.list_projects(org_id, "ORGANIZATION")
        except APIError as e:
            raise ScopeError(f"unable to fetch projects of organization {org_id!r}: {e}") from e

        if not projects:
            raise NoProjectsError(org_id)
        if len(projects) == 1:
            return projects[0]

        oldest = select_oldest(projects)
        assert oldest is not None
        self._diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                summary=_MULTIPLE_PROJECTS_SUMMARY,
                detail=_MULTIPLE_PROJECTS_DETAIL,
            )
        )
        logger.warning(
            "%d projects found in organization %s; defaulting to the oldest, %s. "
            "Set project_id in the provider configuration to choose explicitly.",
            len(projects),
            org_id,
            oldest.id,
        )
        return oldest


def configure_scope(
    client: HCPClient, project_id: str | None = None
) -> tuple[ProviderScope, list[Diagnostic]]:
    """Resolve the default scope for *client* in one call."""
    configurator = ScopeConfigurator(client)
    scope = configurator.configure(project_id)
    return scope, configurator.diagnostics
