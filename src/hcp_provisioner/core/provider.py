"""HCP Provider - Connection and default scope for the HCP API."""

from __future__ import annotations

from functools import cached_property
from typing import Self

from pydantic import BaseModel, ConfigDict, SecretStr

from hcp_provisioner.core.client import DEFAULT_API_HOST, HCPClient
from hcp_provisioner.core.scope import Diagnostic, ProviderScope, ScopeConfigurator


class ClientCredentials(BaseModel):
    """OAuth2 service principal credentials."""

    client_id: str
    client_secret: SecretStr


class HCPProvider(BaseModel):
    """Connection configuration and resolved default scope.

    The default scope is resolved lazily, exactly once, the first time
    ``scope`` is accessed, and is read-only afterwards.

    Examples:
        provider = HCPProvider(
            credentials=ClientCredentials(client_id="...", client_secret="..."),
            project_id="6f1c...",
        )
        provider.scope.organization_id

        # Testing with a mock client
        provider = HCPProvider.from_client(mock_client)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    credentials: ClientCredentials | None = None
    project_id: str | None = None
    api_host: str = DEFAULT_API_HOST

    # Injected client (for testing)
    _injected_client: HCPClient | None = None

    @classmethod
    def from_client(cls, client: HCPClient, *, project_id: str | None = None) -> Self:
        """Create a provider with an injected client."""
        provider = cls.model_construct(project_id=project_id, api_host=DEFAULT_API_HOST)
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> HCPClient:
        if self._injected_client is not None:
            return self._injected_client

        if self.credentials is None:
            raise ValueError(
                "Either provide credentials, or use HCPProvider.from_client() to inject a client"
            )

        return HCPClient(
            self.credentials.client_id,
            self.credentials.client_secret.get_secret_value(),
            api_host=self.api_host,
        )

    @cached_property
    def _configurator(self) -> ScopeConfigurator:
        return ScopeConfigurator(self.client)

    @cached_property
    def scope(self) -> ProviderScope:
        """Default organization/project, resolved on first access."""
        return self._configurator.configure(self.project_id)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self._configurator.diagnostics
