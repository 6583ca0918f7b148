"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, PrivateAttr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hcp_provisioner.core.client import DEFAULT_API_HOST
from hcp_provisioner.resources.base import Resource  # noqa: TC001  (needed at runtime by pydantic)
from hcp_provisioner.resources.hvn import HvnResource  # noqa: TC001  (needed at runtime by pydantic)
from hcp_provisioner.resources.peering import (
    HvnPeeringConnectionResource,  # noqa: TC001  (needed at runtime by pydantic)
)


class ProviderConfig(BaseSettings):
    """HCP provider settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``HCP_`` prefix. Constructor kwargs take precedence.

    ``client_secret`` is typically provided via the ``HCP_CLIENT_SECRET``
    environment variable rather than YAML to avoid committing secrets.
    """

    model_config = SettingsConfigDict(env_prefix="HCP_")

    client_id: str | None = None
    client_secret: str | None = None
    project_id: str | None = None
    api_host: str = DEFAULT_API_HOST

    @field_validator("project_id")
    @classmethod
    def _project_id_is_uuid(cls, v: str | None) -> str | None:
        if v:
            try:
                uuid.UUID(v)
            except ValueError as e:
                raise ValueError(f"project_id must be a valid UUID, got {v!r}") from e
        return v or None


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


class Config(BaseModel):
    """Provisioning configuration, validated straight from the YAML document."""

    provider: ProviderConfig
    state_path: Path = Path(".hcp-state.json")
    hvns: Annotated[list[HvnResource], BeforeValidator(_none_to_list)] = []
    peering_connections: Annotated[
        list[HvnPeeringConnectionResource],
        BeforeValidator(_none_to_list),
    ] = []
    config_dir: Path = Path()

    # Provider built from this config; its scope is resolved at most once.
    _provider: Any = PrivateAttr(default=None)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        """All declared resources; ordering is not significant."""
        return [*self.hvns, *self.peering_connections]
